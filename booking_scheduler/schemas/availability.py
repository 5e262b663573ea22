# booking_scheduler/schemas/availability.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


DAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
DAY_NAMES_FULL = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class WorkWindow(BaseModel):
    """One contiguous offer window at one location. Times are local "HH:MM"."""
    start: Optional[str] = None
    end: Optional[str] = None
    location: str = ""

    model_config = {"from_attributes": True}

    @field_validator("location", mode="before")
    @classmethod
    def _location_id(cls, value):
        # Stored windows sometimes embed the location object
        if isinstance(value, dict):
            return str(value.get("id") or value.get("name") or "")
        return "" if value is None else str(value)

    @property
    def is_complete(self) -> bool:
        return bool(self.start) and bool(self.end)


class EventMarker(BaseModel):
    """Opaque "provider occupied" label attached to an override."""
    name: str = ""
    location: Optional[str] = None

    model_config = ConfigDict(extra="allow", from_attributes=True)


class DayOverride(BaseModel):
    """Schedule for one date. Fully replaces the default, [] = day off."""
    date: date
    windows: list[WorkWindow] = []
    event: Optional[EventMarker] = None

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def _stored_shape(cls, data):
        # Stored overrides keep windows under workhours.timeSlots
        if isinstance(data, dict) and "windows" not in data and ("workhours" in data or "timeSlots" in data):
            data = dict(data)
            data["windows"] = _normalize_day_value(data) or []
        return data


def _normalize_day_value(value) -> Optional[list]:
    """
    Accepts every stored shape of a weekday entry:

    - None                                      → no entry
    - [{"start", "end", "location"}, ...]       → windows
    - {"workhours": {"timeSlots": [...]}}       → windows
    - {"timeSlots": [...]}                      → windows
    - {"start": "09:00", "end": "17:00"}        → one window
    """
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        if "workhours" in value:
            workhours = value["workhours"] or {}
            return list(workhours.get("timeSlots") or [])
        if "timeSlots" in value:
            return list(value["timeSlots"] or [])
        if "start" in value or "end" in value:
            return [value]
    return []


class DefaultWeeklySchedule(BaseModel):
    """
    Weekday → work windows.

    Keys may be full English names ("monday"), short names ("mon")
    or numeric strings ("0" = Monday).
    """
    days: dict[str, Optional[list[WorkWindow]]] = {}

    model_config = {"from_attributes": True}

    @field_validator("days", mode="before")
    @classmethod
    def _normalize_days(cls, value):
        if not isinstance(value, dict):
            return value
        return {str(k).lower(): _normalize_day_value(v) for k, v in value.items()}

    def windows_for(self, target_date: date) -> Optional[list[WorkWindow]]:
        """
        Windows for target_date's weekday.

        Returns None when the schedule has no entry for that weekday.
        """
        weekday = target_date.weekday()  # 0 = Monday, 6 = Sunday
        for key in (str(weekday), DAY_NAMES_FULL[weekday], DAY_NAMES[weekday]):
            if key in self.days:
                return self.days[key]
        return None


class BookedInterval(BaseModel):
    """Occupied span of a committed booking, end already padded with travel buffer."""
    start: datetime
    end: datetime

    model_config = {"from_attributes": True}


class LocationAvailability(BaseModel):
    location: str
    window: WorkWindow
    offered_slots: list[str]

    model_config = {"from_attributes": True}


class DayAvailability(BaseModel):
    """Unit cached per day-key."""
    per_location: list[LocationAvailability] = []
    event: Optional[EventMarker] = None

    model_config = {"from_attributes": True}

    @classmethod
    def empty(cls, event: Optional[EventMarker] = None) -> "DayAvailability":
        return cls(per_location=[], event=event)

    @property
    def has_slots(self) -> bool:
        return any(loc.offered_slots for loc in self.per_location)

    @property
    def open_slots_count(self) -> int:
        return sum(len(loc.offered_slots) for loc in self.per_location)

    def slots_for(self, location: str) -> list[str]:
        for loc in self.per_location:
            if loc.location == location:
                return loc.offered_slots
        return []
