"""
Fleet maintenance reminder core.

This package decides which reminder tasks a fleet needs:
- Status / Category: urgency levels and task categories
- Vehicle, ServiceRecord, Tire, Task, FuelRecord: fleet records
- ObligationDue: calculated status of one obligation
- evaluate_vehicle: due-item evaluation for a vehicle
- TaskSynchronizer: keeps persisted tasks in line with evaluations
- upcoming_notifications: open tasks due within the horizon
- MemoryStore / YamlStore: persistence collaborators
"""

from .status import Status
from .category import Category
from .errors import FleetError, ValidationError, PersistenceError, ConflictError
from .config import Thresholds
from .vehicle import Vehicle
from .service_record import ServiceRecord
from .tire import Tire, generate_tire_positions
from .task import Task
from .fuel_record import FuelRecord
from .obligation_due import Basis, ObligationDue
from .calculations import (
    parse_date,
    days_until,
    check_date_status,
    check_km_status,
    resolve_odometer,
    tire_remaining_km,
)
from .evaluator import evaluate_vehicle, governing_dues, exempt_categories
from .store import FleetStore, MemoryStore, YamlStore
from .synchronizer import SyncReport, TaskSynchronizer
from .projector import Notification, upcoming_notifications
from .reports import fuel_summary, service_cost_by_vehicle, task_counts_by_category

__all__ = [
    "Status",
    "Category",
    "FleetError",
    "ValidationError",
    "PersistenceError",
    "ConflictError",
    "Thresholds",
    "Vehicle",
    "ServiceRecord",
    "Tire",
    "generate_tire_positions",
    "Task",
    "FuelRecord",
    "Basis",
    "ObligationDue",
    "parse_date",
    "days_until",
    "check_date_status",
    "check_km_status",
    "resolve_odometer",
    "tire_remaining_km",
    "evaluate_vehicle",
    "governing_dues",
    "exempt_categories",
    "FleetStore",
    "MemoryStore",
    "YamlStore",
    "SyncReport",
    "TaskSynchronizer",
    "Notification",
    "upcoming_notifications",
    "fuel_summary",
    "service_cost_by_vehicle",
    "task_counts_by_category",
]
