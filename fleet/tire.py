"""Tire class and the axle-layout position rule."""

from typing import List, Optional

from .errors import ValidationError


class Tire:
    """A tire mounted at one position of a vehicle."""

    def __init__(
        self,
        id: Optional[str],
        vehicle_id: str,
        position: str,
        brand: Optional[str] = None,
        size: Optional[str] = None,
        pattern: Optional[str] = None,
        condition: Optional[str] = None,
        serial_number: Optional[str] = None,
        dot_number: Optional[str] = None,
        installed_km: Optional[float] = None,
        estimated_lifetime_km: Optional[float] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.position = position
        self.brand = brand
        self.size = size
        self.pattern = pattern
        self.condition = condition
        self.serial_number = serial_number
        self.dot_number = dot_number
        self.installed_km = installed_km
        self.estimated_lifetime_km = estimated_lifetime_km

    @property
    def replacement_km(self) -> Optional[float]:
        """Odometer reading at which the tire reaches its estimated lifetime."""
        if not self.estimated_lifetime_km or self.installed_km is None:
            return None
        return self.installed_km + self.estimated_lifetime_km


def generate_tire_positions(axle_count: int, last_axle_single: bool = False) -> List[str]:
    """
    Position names for a vehicle's axle layout.

    The front axle always carries two tires. Every further axle is dual
    (four tires) except the last one when last_axle_single is set.
    """
    if axle_count is None or axle_count < 1:
        raise ValidationError(f"Error: axle count must be at least 1, got {axle_count}")

    positions = ["Axle 1 - Left", "Axle 1 - Right"]
    for axle in range(2, axle_count + 1):
        if axle == axle_count and last_axle_single:
            positions.append(f"Axle {axle} - Left")
            positions.append(f"Axle {axle} - Right")
        else:
            positions.append(f"Axle {axle} - Left Inner")
            positions.append(f"Axle {axle} - Left Outer")
            positions.append(f"Axle {axle} - Right Inner")
            positions.append(f"Axle {axle} - Right Outer")
    return positions
