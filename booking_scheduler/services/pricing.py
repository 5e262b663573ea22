# booking_scheduler/services/pricing.py
"""
Duration / price resolution for a booking.

Individual: the chosen duration must be one of the treatment's published
durations; price is that option's price.

Group: the chosen duration is the TOTAL for the group. The per-person
(effective) duration is total / group_size and must be a whole, published
duration. Discounts do NOT stack with anything:

  group_size >= discounts.group_size_threshold
  and a discounted price exists for the effective duration
      → discount_price × group_size
  otherwise
      → standard price × group_size
"""

from dataclasses import dataclass

from ..errors import BookingValidationError
from ..schemas.treatments import Treatment


@dataclass(frozen=True)
class PriceQuote:
    duration: int            # total minutes booked
    effective_duration: int  # minutes per person
    price_per_person: float
    price: float             # total
    discounted: bool = False


def quote_individual(treatment: Treatment, duration: int | None) -> PriceQuote:
    if not duration:
        raise BookingValidationError("Please choose a duration for the booking.")

    option = treatment.option_for(duration)
    if option is None:
        raise BookingValidationError(
            f"Duration {duration} min is not available for {treatment.name}."
        )
    return PriceQuote(
        duration=duration,
        effective_duration=duration,
        price_per_person=option.price,
        price=option.price,
    )


def quote_group(treatment: Treatment, total_duration: int | None, group_size: int | None) -> PriceQuote:
    if not group_size or group_size < 1:
        raise BookingValidationError("Please choose a valid group size (at least 1 person).")
    if not total_duration:
        raise BookingValidationError("Please choose the total duration for the group.")

    effective, remainder = divmod(total_duration, group_size)
    if remainder:
        raise BookingValidationError(
            f"Effective duration per person ({total_duration / group_size:g} min) "
            f"is not valid for {treatment.name}."
        )

    option = treatment.option_for(effective)
    if option is None:
        raise BookingValidationError(
            f"Effective duration per person ({effective} min) is not valid for {treatment.name}."
        )

    price_per_person = option.price
    discounted = False
    discount_price = treatment.discounts.price_for(effective)
    if group_size >= treatment.discounts.group_size_threshold and discount_price is not None:
        price_per_person = discount_price
        discounted = True

    return PriceQuote(
        duration=total_duration,
        effective_duration=effective,
        price_per_person=price_per_person,
        price=round(price_per_person * group_size, 2),
        discounted=discounted,
    )


def quote(
    treatment: Treatment,
    duration: int | None,
    *,
    is_group: bool = False,
    group_size: int = 1,
) -> PriceQuote:
    """
    Resolve duration and total price.

    Raises:
        BookingValidationError: duration / group size does not match the treatment.
    """
    if is_group:
        return quote_group(treatment, duration, group_size)
    return quote_individual(treatment, duration)
