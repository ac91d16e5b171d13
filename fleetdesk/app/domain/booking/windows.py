"""
Delivery date windows.

Only calendar dates are modeled: a delivery occupies its truck from
delivery_date through delivery_date + duration_days - 1, so two
single-day deliveries conflict exactly when they share a date.
"""

from datetime import date, timedelta
from typing import Tuple

from fleetdesk.app.core.exceptions import BusinessValidationError

MAX_DURATION_DAYS = 31


def delivery_window(delivery_date: date, duration_days: int = 1) -> Tuple[date, date]:
    """
    Return the inclusive (start, end) window of a delivery.

    Raises:
        BusinessValidationError: If the date is missing or the duration is out of range
    """
    if delivery_date is None:
        raise BusinessValidationError("Delivery date is required")
    if duration_days is None or duration_days < 1 or duration_days > MAX_DURATION_DAYS:
        raise BusinessValidationError(
            f"Duration must be between 1 and {MAX_DURATION_DAYS} days",
            details={"duration_days": duration_days}
        )
    return delivery_date, delivery_date + timedelta(days=duration_days - 1)


def windows_overlap(first: Tuple[date, date], second: Tuple[date, date]) -> bool:
    return first[0] <= second[1] and second[0] <= first[1]
