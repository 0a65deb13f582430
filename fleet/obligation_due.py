"""ObligationDue dataclass for calculated obligation status."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .category import Category
from .status import Status


class Basis(Enum):
    """What an obligation's due point is measured in."""

    DATE = "date"
    KM = "km"


@dataclass
class ObligationDue:
    """Calculated due information for one obligation of a vehicle."""

    category: Category
    status: Status
    basis: Basis
    vehicle_id: str
    subject: Optional[str] = None
    due_date: Optional[str] = None
    due_km: Optional[float] = None
    days_remaining: Optional[int] = None
    km_remaining: Optional[float] = None
    threshold: float = 0

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.DUE_SOON)

    @property
    def remaining(self) -> Optional[float]:
        """Remaining days or km, depending on the basis."""
        if self.basis == Basis.DATE:
            return self.days_remaining
        return self.km_remaining

    @property
    def urgency(self) -> float:
        """Remaining-to-threshold ratio; smaller is more urgent."""
        remaining = self.remaining
        if remaining is None:
            return float("inf")
        if self.threshold > 0:
            return remaining / self.threshold
        return float(remaining)

    @property
    def sort_key(self):
        return (self.status.value, self.urgency, self.category.value, self.subject or "")
