"""Vehicle class for fleet vehicle identification and tracked dates."""

from typing import Optional


class Vehicle:
    """A fleet vehicle with its odometer and compliance dates."""

    def __init__(
        self,
        id: Optional[str],
        account_id: str,
        plate: str,
        current_km: Optional[float] = None,
        visa_valid_until: Optional[str] = None,
        subject_to_visa: bool = True,
        exhaust_check_date: Optional[str] = None,
        insurance_valid_until: Optional[str] = None,
        make: Optional[str] = None,
        model: Optional[str] = None,
        year: Optional[int] = None,
        axle_count: int = 2,
        last_axle_single: bool = False,
        deleted_at: Optional[str] = None,
    ):
        self.id = id
        self.account_id = account_id
        self.plate = plate
        self.current_km = current_km
        self.visa_valid_until = visa_valid_until
        self.subject_to_visa = True if subject_to_visa is None else subject_to_visa
        self.exhaust_check_date = exhaust_check_date
        self.insurance_valid_until = insurance_valid_until
        self.make = make
        self.model = model
        self.year = year
        self.axle_count = axle_count or 2
        self.last_axle_single = last_axle_single or False
        self.deleted_at = deleted_at

    @property
    def name(self) -> str:
        """Plate followed by year/make/model when known."""
        parts = [str(p) for p in (self.year, self.make, self.model) if p]
        if parts:
            return f"{self.plate} ({' '.join(parts)})"
        return self.plate

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
