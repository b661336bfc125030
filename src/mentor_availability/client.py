"""HTTP clients for the mentorship backend availability endpoints."""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx
import pytz

from .config import Settings, get_settings
from .models import AvailabilityRule, ExpandedSlot, GroupPricingTable

logger = logging.getLogger(__name__)

TEMPLATES_PATH = "/v1/mentors/me/availability/templates"
PROFILE_PATH = "/v1/mentors/me"
BOOKINGS_PATH = "/v1/bookings"


class BackendError(Exception):
    """Base error for backend request failures."""


class BackendAuthError(BackendError):
    """Raised when backend rejects authentication."""


class BackendNotFoundError(BackendError):
    """Raised when backend resource is not found."""


class BackendConnectionError(BackendError):
    """Raised when backend connection fails or times out."""


class BackendRequestError(BackendError):
    """Raised for non-auth backend errors."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _error_detail(response: httpx.Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict):
        return payload.get("detail", payload)
    return payload


def _items(payload: Any, key: str) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        items = payload.get(key)
        if items is None:
            items = payload.get("data", [])
        if isinstance(items, dict):
            items = items.get(key, [])
        return list(items or [])
    return []


class MentorshipApiClient:
    """HTTP client for the mentorship backend API."""

    def __init__(
        self,
        settings: Settings | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.http = http or httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=httpx.Timeout(
                connect=10.0,
                read=self.settings.request_timeout_seconds,
                write=10.0,
                pool=10.0,
            ),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> MentorshipApiClient:
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"X-Request-Id": str(uuid4())}
        token = self.settings.api_token.get_secret_value().strip()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self.http.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(),
            )
        except httpx.TimeoutException as exc:
            raise BackendConnectionError(
                f"backend_timeout: Request to {path} timed out after {self.http.timeout.read}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendConnectionError(f"backend_connection_failed: {exc}") from exc

        if response.status_code in {401, 403}:
            raise BackendAuthError("backend_auth_failed")
        if response.status_code == 404:
            raise BackendNotFoundError("backend_not_found")
        if response.status_code >= 400:
            raise BackendRequestError(
                f"backend_error_{response.status_code}",
                status_code=response.status_code,
                detail=_error_detail(response),
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"status_code": response.status_code, "text": response.text}


class TemplateStorageClient:
    """Availability template CRUD for the signed-in mentor."""

    def __init__(self, api: MentorshipApiClient) -> None:
        self.api = api

    async def list(self) -> list[AvailabilityRule]:
        payload = await self.api.call("GET", TEMPLATES_PATH)
        return [AvailabilityRule.from_wire(item) for item in _items(payload, "templates")]

    async def create(self, rule: AvailabilityRule) -> AvailabilityRule:
        payload = await self.api.call("POST", TEMPLATES_PATH, json=rule.to_wire())
        logger.debug("template_created", extra={"time_range": rule.time_range})
        return AvailabilityRule.from_wire(payload)

    async def update(self, rule_id: str, rule: AvailabilityRule) -> AvailabilityRule:
        payload = await self.api.call(
            "PUT",
            f"{TEMPLATES_PATH}/{quote(rule_id, safe='')}",
            json=rule.to_wire(),
        )
        return AvailabilityRule.from_wire(payload)

    async def delete(self, rule_id: str) -> None:
        await self.api.call("DELETE", f"{TEMPLATES_PATH}/{quote(rule_id, safe='')}")


class SlotExpansionClient:
    """Reads concrete bookable occurrences for a mentor."""

    def __init__(self, api: MentorshipApiClient) -> None:
        self.api = api

    async def expand(self, mentor_id: str, from_date: date, to_date: date) -> list[ExpandedSlot]:
        payload = await self.api.call(
            "GET",
            f"/v1/mentors/{quote(mentor_id, safe='')}/availability",
            params={"from_date": from_date.isoformat(), "to_date": to_date.isoformat()},
        )
        return [ExpandedSlot.from_wire(item) for item in _items(payload, "slots")]


class BookingClient:
    """Creates bookings from a selected slot instant."""

    def __init__(self, api: MentorshipApiClient) -> None:
        self.api = api

    async def create_booking(
        self,
        mentor_id: str,
        start_instant: datetime,
        participants: int,
        duration_minutes: int,
        notes: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "mentor_id": mentor_id,
            "start_at": start_instant.astimezone(pytz.UTC).isoformat().replace("+00:00", "Z"),
            "duration_minutes": duration_minutes,
            "participants": participants,
        }
        if notes:
            body["notes"] = notes
        return await self.api.call("POST", BOOKINGS_PATH, json=body)


class MentorProfileClient:
    """Reads group pricing from the signed-in mentor's profile."""

    def __init__(self, api: MentorshipApiClient) -> None:
        self.api = api

    async def get_group_pricing(self) -> GroupPricingTable:
        payload = await self.api.call("GET", PROFILE_PATH) or {}
        profile = payload.get("mentor_profile", payload)
        prices = profile.get("group_pricing")
        if prices is None and profile.get("group_enabled"):
            # Older profiles carry a single group size and price
            size = profile.get("group_max_participants")
            price = profile.get("group_price_per_session")
            prices = {size: price} if size and price is not None else {}
        return GroupPricingTable(prices=prices or {})
