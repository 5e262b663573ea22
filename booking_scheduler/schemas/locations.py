# booking_scheduler/schemas/locations.py

from typing import Optional
from pydantic import BaseModel


class Location(BaseModel):
    id: str
    name: str

    address: Optional[str] = None
    postal_code: Optional[int] = None
    city: Optional[str] = None
    area: Optional[str] = None

    model_config = {"from_attributes": True, "coerce_numbers_to_str": True}
