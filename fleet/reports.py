"""Summary statistics over fetched fleet records."""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

from .category import Category
from .fuel_record import FuelRecord
from .service_record import ServiceRecord
from .task import Task
from .vehicle import Vehicle


@dataclass
class FuelSummary:
    total_volume: float = 0.0
    total_cost: float = 0.0
    average_cost_per_vehicle: float = 0.0
    top_vehicles: List[Tuple[str, float]] = field(default_factory=list)


def fuel_summary(
    records: Iterable[FuelRecord], vehicles: Sequence[Vehicle], top_n: int = 5
) -> FuelSummary:
    """
    Fuel totals for an account.

    The average is spread over all vehicles, including ones with no
    fuel records. top_vehicles lists (plate, cost), highest cost first.
    """
    plates = {v.id: v.plate for v in vehicles}
    cost_by_vehicle: Dict[str, float] = defaultdict(float)
    summary = FuelSummary()

    for record in records:
        summary.total_volume += record.volume
        summary.total_cost += record.total
        cost_by_vehicle[record.vehicle_id] += record.total

    if vehicles:
        summary.average_cost_per_vehicle = summary.total_cost / len(vehicles)

    ranked = sorted(
        cost_by_vehicle.items(),
        key=lambda item: (-item[1], plates.get(item[0], item[0])),
    )
    summary.top_vehicles = [
        (plates.get(vehicle_id, vehicle_id), cost) for vehicle_id, cost in ranked[:top_n]
    ]
    return summary


def service_cost_by_vehicle(records: Iterable[ServiceRecord]) -> Dict[str, float]:
    """Total service cost per vehicle id. Records without a cost count as 0."""
    totals: Dict[str, float] = defaultdict(float)
    for record in records:
        totals[record.vehicle_id] += record.cost or 0
    return dict(totals)


def task_counts_by_category(tasks: Iterable[Task]) -> Dict[Category, int]:
    """Open task count for every category (zero included)."""
    counts = Counter(t.category for t in tasks if not t.completed)
    return {category: counts.get(category, 0) for category in Category}
