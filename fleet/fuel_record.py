"""FuelRecord class for refuelling entries."""
from typing import Optional


class FuelRecord:
    """A refuelling entry. The total is always derived from volume and price."""

    def __init__(
            self,
            id: Optional[str],
            account_id: str,
            vehicle_id: str,
            date: str,
            volume: float,
            unit_price: float,
            station: Optional[str] = None,
    ):
        self.id = id
        self.account_id = account_id
        self.vehicle_id = vehicle_id
        self.date = date
        self.volume = volume
        self.unit_price = unit_price
        self.station = station

    @property
    def total(self) -> float:
        return self.volume * self.unit_price
