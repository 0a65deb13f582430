"""ServiceRecord class for maintenance history."""
from typing import Optional


class ServiceRecord:
    """A maintenance event performed on a vehicle."""

    def __init__(
            self,
            id: Optional[str],
            account_id: str,
            vehicle_id: str,
            date: str,
            current_km: Optional[float] = None,
            next_service_km: Optional[float] = None,
            next_service_date: Optional[str] = None,
            cost: Optional[float] = None,
            title: Optional[str] = None,
            description: Optional[str] = None,
    ):
        self.id = id
        self.account_id = account_id
        self.vehicle_id = vehicle_id
        self.date = date
        self.current_km = current_km
        self.next_service_km = next_service_km
        self.next_service_date = next_service_date
        self.cost = cost
        self.title = title
        self.description = description

    @property
    def schedules_next(self) -> bool:
        """True when the record names a next-due odometer or date."""
        return self.next_service_km is not None or bool(self.next_service_date)
