"""Tests for the HTTP adapter, against httpx.MockTransport."""
import json
from datetime import date, datetime, timezone

import httpx
import pytest

from booking_scheduler.schemas import BookingStatus, DayOverride
from booking_scheduler.utils.api import ApiClient
from conftest import make_booking

WEDNESDAY = date(2026, 10, 21)


def make_client(handler) -> ApiClient:
    return ApiClient(
        base_url="http://backend.test/",
        token="test-token",
        transport=httpx.MockTransport(handler),
    )


class TestSchedules:
    @pytest.mark.asyncio
    async def test_missing_override_is_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/schedule/overrides/2026-10-21"
            assert request.headers["X-Internal-Token"] == "test-token"
            return httpx.Response(404, json={"detail": "Not found"})

        assert await make_client(handler).schedules.get_override(WEDNESDAY) is None

    @pytest.mark.asyncio
    async def test_override_with_event(self):
        def handler(request):
            return httpx.Response(200, json={
                "windows": [],
                "event": {"name": "Holiday", "color": "red"},
            })

        override = await make_client(handler).schedules.get_override(WEDNESDAY)

        assert override.date == WEDNESDAY
        assert override.event.name == "Holiday"

    @pytest.mark.asyncio
    async def test_override_in_stored_workhours_shape(self):
        def handler(request):
            return httpx.Response(200, json={
                "workhours": {"timeSlots": [{"start": "09:00", "end": "12:00", "location": "loc-1"}]},
            })

        override = await make_client(handler).schedules.get_override(WEDNESDAY)

        assert len(override.windows) == 1
        assert override.windows[0].start == "09:00"
        assert override.windows[0].location == "loc-1"

    @pytest.mark.asyncio
    async def test_holiday_in_stored_workhours_shape(self):
        def handler(request):
            return httpx.Response(200, json={
                "workhours": {"timeSlots": []},
                "event": {"name": "Holiday"},
            })

        override = await make_client(handler).schedules.get_override(WEDNESDAY)

        assert override.windows == []
        assert override.event.name == "Holiday"

    @pytest.mark.asyncio
    async def test_default_weekly_bare_mapping(self):
        def handler(request):
            return httpx.Response(200, json={
                "wednesday": {"timeSlots": [{"start": "09:00", "end": "17:00", "location": "loc-1"}]},
            })

        schedule = await make_client(handler).schedules.get_default_weekly()

        assert schedule.windows_for(WEDNESDAY)[0].start == "09:00"

    @pytest.mark.asyncio
    async def test_set_override_sends_json(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(204)

        await make_client(handler).schedules.set_override(DayOverride(date=WEDNESDAY))

        assert seen["method"] == "PUT"
        assert seen["path"] == "/schedule/overrides/2026-10-21"
        assert seen["body"]["date"] == "2026-10-21"

    @pytest.mark.asyncio
    async def test_server_error_is_raised(self):
        def handler(request):
            return httpx.Response(500)

        with pytest.raises(httpx.HTTPStatusError):
            await make_client(handler).schedules.get_default_weekly()


class TestBookings:
    @pytest.mark.asyncio
    async def test_find_active_by_date_range(self):
        booking = make_booking("b1", WEDNESDAY, "10:00", "10:30")

        def handler(request):
            assert request.url.params["active"] == "true"
            assert request.url.params["start_from"].startswith("2026-10-20T22:00")
            return httpx.Response(200, json=[booking.model_dump(mode="json")])

        result = await make_client(handler).bookings.find_active_by_date_range(
            datetime(2026, 10, 20, 22, 0, tzinfo=timezone.utc),
            datetime(2026, 10, 21, 22, 0, tzinfo=timezone.utc),
        )

        assert [b.id for b in result] == ["b1"]
        assert result[0].timeslot.start == booking.timeslot.start

    @pytest.mark.asyncio
    async def test_create_returns_id(self):
        booking = make_booking("ignored", WEDNESDAY, "10:00", "10:30")

        def handler(request):
            assert request.method == "POST"
            return httpx.Response(201, json={"id": 42})

        assert await make_client(handler).bookings.create(booking) == "42"

    @pytest.mark.asyncio
    async def test_set_status(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={})

        await make_client(handler).bookings.set_status("b1", BookingStatus.CANCELLED)
        assert seen["body"] == {"status": "cancelled"}

    @pytest.mark.asyncio
    async def test_set_status_on_missing_booking_is_raised(self):
        def handler(request):
            assert request.method == "PATCH"
            return httpx.Response(404, json={"detail": "Not found"})

        with pytest.raises(httpx.HTTPStatusError):
            await make_client(handler).bookings.set_status("missing", BookingStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_delete_missing_override_is_ignored(self):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(404)

        await make_client(handler).schedules.delete_override(WEDNESDAY)

    @pytest.mark.asyncio
    async def test_transport_error_is_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(httpx.ConnectError):
            await make_client(handler).bookings.get("b1")


class TestCatalog:
    @pytest.mark.asyncio
    async def test_treatments_and_locations(self):
        def handler(request):
            if request.url.path == "/treatments":
                return httpx.Response(200, json=[{
                    "id": "massage",
                    "name": "Massage",
                    "durations": [{"duration": 30, "price": 500}],
                    "discounts": {"groupSize": 3, "prices": {"30": 400}},
                }])
            return httpx.Response(200, json=[{"id": "loc-1", "name": "Oslo sentrum"}])

        client = make_client(handler)
        treatments = await client.treatments.list()
        locations = await client.locations.list()

        assert treatments[0].discounts.group_size_threshold == 3
        assert locations[0].name == "Oslo sentrum"
