"""
booking_scheduler/utils/api.py

HTTP adapter for the engine's collaborators.

Engine → REST backend

Implements ScheduleAdminStore, BookingStore, TreatmentCatalog and
LocationDirectory (services.stores) as sub-adapters of one ApiClient:

    api.schedules   GET/PUT/DELETE /schedule/...
    api.bookings    GET/POST/PATCH /bookings...
    api.treatments  GET /treatments
    api.locations   GET /locations

A 404 on a read means "absent" (None) and DELETE ignores it. A 404 on a
write (PUT, POST, PATCH) is an error. Errors are logged and raised, so the
resolver can turn them into a ResolutionFailure.
"""

import logging
from datetime import date, datetime
from typing import Optional

import httpx

from ..config import settings
from ..schemas.availability import DayOverride, DefaultWeeklySchedule
from ..schemas.bookings import Booking, BookingDraft, BookingStatus
from ..schemas.locations import Location
from ..schemas.treatments import Treatment

logger = logging.getLogger(__name__)


class ApiClient:
    """Async client for the scheduling backend."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.resolved_api_url).rstrip("/")
        self.token = token or settings.internal_token
        self.timeout = settings.api_timeout if timeout is None else timeout
        self.transport = transport

        self.schedules = ScheduleApi(self)
        self.bookings = BookingApi(self)
        self.treatments = TreatmentApi(self)
        self.locations = LocationApi(self)

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict = None,
        **kwargs
    ) -> Optional[dict | list]:
        """Base HTTP request. Returns None on 204, and on 404 for GET or DELETE."""
        url = f"{self.base_url}{path}"

        _headers = {"X-Internal-Token": self.token}
        if headers:
            _headers.update(headers)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                resp = await client.request(method, url, headers=_headers, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"API request failed: {method} {path} -> {e}")
                raise

            if resp.status_code == 204:
                return None
            if resp.status_code == 404 and method in ("GET", "DELETE"):
                return None

            if resp.status_code >= 400:
                logger.error(f"API error: {method} {path} -> {resp.status_code}")
                resp.raise_for_status()

            if not resp.content:
                return None
            return resp.json()


# ----------------------------------------------------------------------
# Schedule
# ----------------------------------------------------------------------

class ScheduleApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def get_override(self, target_date: date) -> Optional[DayOverride]:
        """GET /schedule/overrides/{date}"""
        result = await self.client._request("GET", f"/schedule/overrides/{target_date.isoformat()}")
        if result is None:
            return None
        return DayOverride.model_validate({"date": target_date, **result})

    async def get_default_weekly(self) -> Optional[DefaultWeeklySchedule]:
        """GET /schedule/default: weekday → windows, bare or under "days"."""
        result = await self.client._request("GET", "/schedule/default")
        if result is None:
            return None
        if "days" not in result:
            result = {"days": result}
        return DefaultWeeklySchedule.model_validate(result)

    async def set_default_weekly(self, schedule: DefaultWeeklySchedule) -> None:
        """PUT /schedule/default"""
        await self.client._request("PUT", "/schedule/default", json=schedule.model_dump(mode="json"))

    async def set_override(self, override: DayOverride) -> None:
        """PUT /schedule/overrides/{date}"""
        await self.client._request(
            "PUT",
            f"/schedule/overrides/{override.date.isoformat()}",
            json=override.model_dump(mode="json"),
        )

    async def delete_override(self, target_date: date) -> None:
        """DELETE /schedule/overrides/{date}: hard delete, 404 ignored."""
        await self.client._request("DELETE", f"/schedule/overrides/{target_date.isoformat()}")

    async def list_overrides(self, start: date, end: date) -> list[DayOverride]:
        """GET /schedule/overrides?date_from=&date_to="""
        result = await self.client._request(
            "GET",
            "/schedule/overrides",
            params={"date_from": start.isoformat(), "date_to": end.isoformat()},
        )
        return [DayOverride.model_validate(item) for item in result or []]


# ----------------------------------------------------------------------
# Bookings
# ----------------------------------------------------------------------

class BookingApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def find_active_by_date_range(self, start_utc: datetime, end_utc: datetime) -> list[Booking]:
        """GET /bookings?start_from=&start_to=: non-cancelled, timeslot.start in range."""
        result = await self.client._request(
            "GET",
            "/bookings",
            params={
                "start_from": start_utc.isoformat(),
                "start_to": end_utc.isoformat(),
                "active": "true",
            },
        )
        return [Booking.model_validate(item) for item in result or []]

    async def create(self, draft: BookingDraft) -> str:
        """POST /bookings → {"id": ...}"""
        result = await self.client._request("POST", "/bookings", json=draft.model_dump(mode="json"))
        if not result or "id" not in result:
            raise ValueError("Backend did not return a booking id")
        return str(result["id"])

    async def set_status(self, booking_id: str, status: BookingStatus) -> None:
        """PATCH /bookings/{id}"""
        await self.client._request("PATCH", f"/bookings/{booking_id}", json={"status": status.value})

    async def get(self, booking_id: str) -> Optional[Booking]:
        """GET /bookings/{id}"""
        result = await self.client._request("GET", f"/bookings/{booking_id}")
        if result is None:
            return None
        return Booking.model_validate(result)


# ----------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------

class TreatmentApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def list(self) -> list[Treatment]:
        """GET /treatments"""
        result = await self.client._request("GET", "/treatments")
        return [Treatment.model_validate(item) for item in result or []]


class LocationApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def list(self) -> list[Location]:
        """GET /locations"""
        result = await self.client._request("GET", "/locations")
        return [Location.model_validate(item) for item in result or []]


# Singleton
api = ApiClient()
