# booking_scheduler/schemas/treatments.py

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DurationOption(BaseModel):
    duration: int  # minutes per person
    price: float

    model_config = {"from_attributes": True}


class GroupDiscount(BaseModel):
    """Per-person prices for groups of at least group_size_threshold people."""
    group_size_threshold: int = Field(default=0, alias="groupSize")
    prices_by_effective_duration: dict[str, float] = Field(default_factory=dict, alias="prices")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    def price_for(self, effective_duration: int) -> Optional[float]:
        return self.prices_by_effective_duration.get(str(effective_duration))


class Treatment(BaseModel):
    id: str
    name: str
    durations: list[DurationOption] = []
    discounts: GroupDiscount = Field(default_factory=GroupDiscount)

    model_config = {"from_attributes": True, "coerce_numbers_to_str": True}

    def option_for(self, duration: int) -> Optional[DurationOption]:
        for option in self.durations:
            if option.duration == duration:
                return option
        return None

    @property
    def min_duration(self) -> Optional[int]:
        if not self.durations:
            return None
        return min(option.duration for option in self.durations)
