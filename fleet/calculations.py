"""Helper functions for due-date and due-odometer calculations."""

from datetime import date, datetime
from typing import Iterable, Optional, Union

from dateutil.parser import isoparse

from .errors import ValidationError
from .status import Status


def parse_date(value: Union[str, date, None]) -> date:
    """
    Parse an ISO date (or datetime) string into a date.

    Raises ValidationError for empty or unparseable input.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f"Error: missing date value {value!r}")
    try:
        return isoparse(value.strip()).date()
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Error: invalid date {value!r}: {e}") from e


def days_until(due: date, now: Union[date, datetime]) -> int:
    """Whole days from now until due (negative when past)."""
    if isinstance(now, datetime):
        now = now.date()
    return (due - now).days


def check_date_status(days_remaining: int, horizon_days: int) -> Status:
    """
    Classify a day count against the look-ahead horizon.

    - OVERDUE when the due date is in the past
    - DUE_SOON when it falls within the horizon (both ends inclusive)
    - OK otherwise
    """
    if days_remaining < 0:
        return Status.OVERDUE
    if days_remaining <= horizon_days:
        return Status.DUE_SOON
    return Status.OK


def check_km_status(remaining_km: float, threshold_km: float) -> Status:
    """
    Classify remaining distance against a reminder threshold.

    - OVERDUE when the due odometer has been reached
    - DUE_SOON when within threshold_km of it
    - OK otherwise
    """
    if remaining_km <= 0:
        return Status.OVERDUE
    if remaining_km <= threshold_km:
        return Status.DUE_SOON
    return Status.OK


def resolve_odometer(
    current_km: Optional[float], recorded_km: Iterable[Optional[float]] = ()
) -> Optional[float]:
    """Current odometer: the vehicle's own reading, else the highest recorded one."""
    if current_km is not None:
        return current_km
    known = [km for km in recorded_km if km is not None]
    if known:
        return max(known)
    return None


def tire_remaining_km(
    estimated_lifetime_km: Optional[float],
    installed_km: Optional[float],
    odometer_km: Optional[float],
) -> Optional[float]:
    """Estimated distance left on a tire, or None when it can't be known."""
    if not estimated_lifetime_km or installed_km is None or odometer_km is None:
        return None
    driven = odometer_km - installed_km
    return estimated_lifetime_km - driven
