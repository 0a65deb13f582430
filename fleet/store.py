"""
Persistence collaborators for fleet data.

FleetStore is the interface the reminder core talks to. Every read and
write is scoped by account id; records owned by another account are
treated as missing. MemoryStore keeps everything in process, and
YamlStore persists a MemoryStore to a single YAML file.
"""

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from .category import Category
from .errors import PersistenceError, ValidationError
from .fuel_record import FuelRecord
from .service_record import ServiceRecord
from .task import Task
from .tire import Tire, generate_tire_positions
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

TABLES = (
    "settings",
    "vehicles",
    "service_records",
    "tires",
    "tasks",
    "fuel_records",
)

VEHICLE_FIELDS = (
    "plate",
    "current_km",
    "visa_valid_until",
    "subject_to_visa",
    "exhaust_check_date",
    "insurance_valid_until",
    "make",
    "model",
    "year",
    "axle_count",
    "last_axle_single",
)


def normalize_plate(plate: str) -> str:
    """Plate comparison key: upper case without whitespace."""
    return "".join(plate.split()).upper()


class FleetStore(ABC):
    """Table-style read/write operations used by the reminder core."""

    @abstractmethod
    def list_vehicles(self, account_id: str) -> List[Vehicle]:
        ...

    @abstractmethod
    def list_service_records(
        self, account_id: str, vehicle_id: Optional[str] = None
    ) -> List[ServiceRecord]:
        ...

    @abstractmethod
    def list_tires(self, account_id: str, vehicle_id: str) -> List[Tire]:
        ...

    @abstractmethod
    def list_open_tasks(
        self,
        account_id: str,
        vehicle_id: Optional[str] = None,
        category: Optional[Category] = None,
    ) -> List[Task]:
        ...

    @abstractmethod
    def upsert_task(self, task: Task) -> Task:
        """Insert when task.id is None, otherwise update the stored task."""

    @abstractmethod
    def mark_task_completed(self, account_id: str, task_id: str) -> None:
        ...


class MemoryStore(FleetStore):
    """In-process store. Returned objects are copies; mutate via store methods."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._lock = threading.RLock()
        self.settings: Dict[str, Any] = {}
        self.vehicles: Dict[str, Vehicle] = {}
        self.service_records: Dict[str, ServiceRecord] = {}
        self.tires: Dict[str, Tire] = {}
        self.tasks: Dict[str, Task] = {}
        self.fuel_records: Dict[str, FuelRecord] = {}

    # ---------- Hooks ----------
    def _commit(self) -> None:
        """Called after every successful write."""

    def _new_id(self) -> str:
        return str(uuid.uuid4())

    def _timestamp(self) -> str:
        return self._clock().isoformat(timespec="microseconds")

    def _snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {key: copy.copy(value) for key, value in getattr(self, name).items()}
            for name in TABLES
        }

    @contextmanager
    def _transaction(self):
        """
        Apply a write and commit it, or leave the store as it was.

        Any exception raised by the write or by _commit restores every
        table, so memory never runs ahead of what was persisted.
        """
        with self._lock:
            saved = self._snapshot()
            try:
                yield
                self._commit()
            except Exception:
                for name, table in saved.items():
                    setattr(self, name, table)
                raise

    def _owned_vehicle(self, account_id: str, vehicle_id: str) -> Vehicle:
        vehicle = self.vehicles.get(vehicle_id)
        if vehicle is None or vehicle.account_id != account_id or vehicle.is_deleted:
            raise PersistenceError(f"Error: vehicle not found: {vehicle_id}")
        return vehicle

    # ---------- Vehicles ----------
    def list_vehicles(self, account_id: str) -> List[Vehicle]:
        with self._lock:
            found = [
                v
                for v in self.vehicles.values()
                if v.account_id == account_id and not v.is_deleted
            ]
            return [copy.copy(v) for v in sorted(found, key=lambda v: v.plate)]

    def get_vehicle(self, account_id: str, vehicle_id: str) -> Vehicle:
        with self._lock:
            return copy.copy(self._owned_vehicle(account_id, vehicle_id))

    def find_vehicle_by_plate(self, account_id: str, plate: str) -> Optional[Vehicle]:
        key = normalize_plate(plate)
        with self._lock:
            for vehicle in self.vehicles.values():
                if (
                    vehicle.account_id == account_id
                    and not vehicle.is_deleted
                    and normalize_plate(vehicle.plate) == key
                ):
                    return copy.copy(vehicle)
        return None

    def add_vehicle(
        self, vehicle: Vehicle, tires: Optional[List[Tire]] = None
    ) -> Vehicle:
        """
        Register a vehicle. Plates are unique per account.

        Without explicit tires, one blank tire is created for every
        position of the vehicle's axle layout.
        """
        with self._transaction():
            if self.find_vehicle_by_plate(vehicle.account_id, vehicle.plate):
                raise PersistenceError(f"Error: plate already in use: {vehicle.plate}")
            if tires is None:
                tires = [
                    Tire(None, None, position, installed_km=vehicle.current_km)
                    for position in generate_tire_positions(
                        vehicle.axle_count, vehicle.last_axle_single
                    )
                ]
            stored = copy.copy(vehicle)
            stored.id = stored.id or self._new_id()
            self.vehicles[stored.id] = stored
            for tire in tires:
                tire = copy.copy(tire)
                tire.id = tire.id or self._new_id()
                tire.vehicle_id = stored.id
                self.tires[tire.id] = tire
            return copy.copy(stored)

    def update_vehicle(self, account_id: str, vehicle_id: str, **changes) -> Vehicle:
        """Update vehicle fields in place. Unknown field names are rejected."""
        unknown = set(changes) - set(VEHICLE_FIELDS)
        if unknown:
            raise ValidationError(f"Error: unknown vehicle fields: {sorted(unknown)}")
        with self._transaction():
            vehicle = self._owned_vehicle(account_id, vehicle_id)
            if "plate" in changes:
                other = self.find_vehicle_by_plate(account_id, changes["plate"])
                if other is not None and other.id != vehicle_id:
                    raise PersistenceError(
                        f"Error: plate already in use: {changes['plate']}"
                    )
            for name, value in changes.items():
                setattr(vehicle, name, value)
            return copy.copy(vehicle)

    def delete_vehicle(self, account_id: str, vehicle_id: str) -> List[str]:
        """
        Soft-delete a vehicle.

        The vehicle is marked deleted and drops out of every vehicle
        lookup, its tires are removed and its open tasks are completed.
        Service, fuel and completed task history is kept. Returns the ids
        of the tasks that were completed.
        """
        with self._transaction():
            vehicle = self._owned_vehicle(account_id, vehicle_id)
            now = self._timestamp()
            vehicle.deleted_at = now
            for tire in list(self.tires.values()):
                if tire.vehicle_id == vehicle_id:
                    del self.tires[tire.id]
            completed = []
            for task in self.tasks.values():
                if task.vehicle_id == vehicle_id and task.is_open:
                    task.completed = True
                    task.updated_at = now
                    completed.append(task.id)
        logger.info(
            "Deleted vehicle %s, completed %d open tasks", vehicle.plate, len(completed)
        )
        return completed

    # ---------- Service records ----------
    def list_service_records(
        self, account_id: str, vehicle_id: Optional[str] = None
    ) -> List[ServiceRecord]:
        with self._lock:
            found = [
                r
                for r in self.service_records.values()
                if r.account_id == account_id
                and (vehicle_id is None or r.vehicle_id == vehicle_id)
            ]
            found.sort(key=lambda r: (r.date or "", r.current_km or 0))
            return [copy.copy(r) for r in found]

    def add_service_record(self, record: ServiceRecord) -> ServiceRecord:
        with self._transaction():
            self._owned_vehicle(record.account_id, record.vehicle_id)
            stored = copy.copy(record)
            stored.id = stored.id or self._new_id()
            self.service_records[stored.id] = stored
            return copy.copy(stored)

    # ---------- Tires ----------
    def list_tires(self, account_id: str, vehicle_id: str) -> List[Tire]:
        with self._lock:
            vehicle = self.vehicles.get(vehicle_id)
            if vehicle is None or vehicle.account_id != account_id:
                return []
            found = [t for t in self.tires.values() if t.vehicle_id == vehicle_id]
            return [copy.copy(t) for t in found]

    def replace_tire(self, account_id: str, tire: Tire) -> Tire:
        """Install a tire at its position, replacing whatever was there."""
        with self._transaction():
            self._owned_vehicle(account_id, tire.vehicle_id)
            for existing in list(self.tires.values()):
                if (
                    existing.vehicle_id == tire.vehicle_id
                    and existing.position == tire.position
                ):
                    del self.tires[existing.id]
            stored = copy.copy(tire)
            stored.id = stored.id or self._new_id()
            self.tires[stored.id] = stored
            return copy.copy(stored)

    # ---------- Tasks ----------
    def list_tasks(self, account_id: str) -> List[Task]:
        with self._lock:
            found = [t for t in self.tasks.values() if t.account_id == account_id]
            found.sort(key=lambda t: (t.created_at or "", t.id))
            return [copy.copy(t) for t in found]

    def list_open_tasks(
        self,
        account_id: str,
        vehicle_id: Optional[str] = None,
        category: Optional[Category] = None,
    ) -> List[Task]:
        return [
            t
            for t in self.list_tasks(account_id)
            if t.is_open
            and (vehicle_id is None or t.vehicle_id == vehicle_id)
            and (category is None or t.category == category)
        ]

    def upsert_task(self, task: Task) -> Task:
        with self._transaction():
            self._owned_vehicle(task.account_id, task.vehicle_id)
            stored = copy.copy(task)
            now = self._timestamp()
            if stored.id is None:
                stored.id = self._new_id()
                stored.created_at = stored.created_at or now
            else:
                existing = self.tasks.get(stored.id)
                if existing is None or existing.account_id != task.account_id:
                    raise PersistenceError(f"Error: task not found: {stored.id}")
                stored.created_at = existing.created_at
            stored.updated_at = now
            self.tasks[stored.id] = stored
            return copy.copy(stored)

    def mark_task_completed(self, account_id: str, task_id: str) -> None:
        with self._transaction():
            task = self.tasks.get(task_id)
            if task is None or task.account_id != account_id:
                raise PersistenceError(f"Error: task not found: {task_id}")
            task.completed = True
            task.updated_at = self._timestamp()

    # ---------- Fuel ----------
    def list_fuel_records(
        self, account_id: str, vehicle_id: Optional[str] = None
    ) -> List[FuelRecord]:
        with self._lock:
            found = [
                r
                for r in self.fuel_records.values()
                if r.account_id == account_id
                and (vehicle_id is None or r.vehicle_id == vehicle_id)
            ]
            found.sort(key=lambda r: r.date or "")
            return [copy.copy(r) for r in found]

    def add_fuel_record(self, record: FuelRecord) -> FuelRecord:
        with self._transaction():
            self._owned_vehicle(record.account_id, record.vehicle_id)
            stored = copy.copy(record)
            stored.id = stored.id or self._new_id()
            self.fuel_records[stored.id] = stored
            return copy.copy(stored)


# =============================================================================
# YAML persistence
# =============================================================================


def _date_str(value: Any) -> Optional[str]:
    """YAML turns unquoted dates into date objects; keep them as ISO strings."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values for cleaner YAML."""
    return {k: v for k, v in d.items() if v is not None}


def _vehicle_from_dict(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        dct["id"],
        dct["accountId"],
        dct["plate"],
        current_km=dct.get("currentKm"),
        visa_valid_until=_date_str(dct.get("visaValidUntil")),
        subject_to_visa=dct.get("isVehicleSubjectToVisa", True),
        exhaust_check_date=_date_str(dct.get("egzozMuayeneTarihi")),
        insurance_valid_until=_date_str(dct.get("insuranceValidUntil")),
        make=dct.get("make"),
        model=dct.get("model"),
        year=dct.get("year"),
        axle_count=dct.get("axleCount", 2),
        last_axle_single=dct.get("lastAxleSingleTire", False),
        deleted_at=_date_str(dct.get("deletedAt")),
    )


def _vehicle_to_dict(v: Vehicle) -> Dict[str, Any]:
    return _compact(
        {
            "id": v.id,
            "accountId": v.account_id,
            "plate": v.plate,
            "make": v.make,
            "model": v.model,
            "year": v.year,
            "currentKm": v.current_km,
            "isVehicleSubjectToVisa": v.subject_to_visa,
            "visaValidUntil": v.visa_valid_until,
            "egzozMuayeneTarihi": v.exhaust_check_date,
            "insuranceValidUntil": v.insurance_valid_until,
            "axleCount": v.axle_count,
            "lastAxleSingleTire": v.last_axle_single,
            "deletedAt": v.deleted_at,
        }
    )


def _service_record_from_dict(dct: Dict[str, Any]) -> ServiceRecord:
    return ServiceRecord(
        dct["id"],
        dct["accountId"],
        dct["vehicleId"],
        _date_str(dct["date"]),
        current_km=dct.get("currentKm"),
        next_service_km=dct.get("nextServiceKm"),
        next_service_date=_date_str(dct.get("nextServiceDate")),
        cost=dct.get("cost"),
        title=dct.get("title"),
        description=dct.get("description"),
    )


def _service_record_to_dict(r: ServiceRecord) -> Dict[str, Any]:
    return _compact(
        {
            "id": r.id,
            "accountId": r.account_id,
            "vehicleId": r.vehicle_id,
            "date": r.date,
            "currentKm": r.current_km,
            "nextServiceKm": r.next_service_km,
            "nextServiceDate": r.next_service_date,
            "cost": r.cost,
            "title": r.title,
            "description": r.description,
        }
    )


def _tire_from_dict(dct: Dict[str, Any]) -> Tire:
    return Tire(
        dct["id"],
        dct["vehicleId"],
        dct["position"],
        brand=dct.get("brand"),
        size=dct.get("size"),
        pattern=dct.get("pattern"),
        condition=dct.get("condition"),
        serial_number=dct.get("serialNumber"),
        dot_number=dct.get("dotNumber"),
        installed_km=dct.get("installedKm"),
        estimated_lifetime_km=dct.get("estimatedLifetime"),
    )


def _tire_to_dict(t: Tire) -> Dict[str, Any]:
    return _compact(
        {
            "id": t.id,
            "vehicleId": t.vehicle_id,
            "position": t.position,
            "brand": t.brand,
            "size": t.size,
            "pattern": t.pattern,
            "condition": t.condition,
            "serialNumber": t.serial_number,
            "dotNumber": t.dot_number,
            "installedKm": t.installed_km,
            "estimatedLifetime": t.estimated_lifetime_km,
        }
    )


def _task_from_dict(dct: Dict[str, Any]) -> Task:
    try:
        category = Category.parse(dct["category"])
    except ValueError as e:
        raise PersistenceError(f"Error: task {dct.get('id')}: {e}") from e
    return Task(
        account_id=dct["accountId"],
        vehicle_id=dct["vehicleId"],
        category=category,
        title=dct.get("title", category.label),
        description=dct.get("description"),
        due_date=_date_str(dct.get("date")),
        due_km=dct.get("dueKm"),
        completed=bool(dct.get("completed", False)),
        id=dct["id"],
        created_at=_date_str(dct.get("createdAt")),
        updated_at=_date_str(dct.get("updatedAt")),
    )


def _task_to_dict(t: Task) -> Dict[str, Any]:
    return _compact(
        {
            "id": t.id,
            "accountId": t.account_id,
            "vehicleId": t.vehicle_id,
            "category": t.category.value,
            "title": t.title,
            "description": t.description,
            "date": t.due_date,
            "dueKm": t.due_km,
            "completed": t.completed,
            "createdAt": t.created_at,
            "updatedAt": t.updated_at,
        }
    )


def _fuel_record_from_dict(dct: Dict[str, Any]) -> FuelRecord:
    # A stored "total" is ignored; FuelRecord derives it.
    return FuelRecord(
        dct["id"],
        dct["accountId"],
        dct["vehicleId"],
        _date_str(dct["date"]),
        dct["volume"],
        dct["unitPrice"],
        station=dct.get("station"),
    )


def _fuel_record_to_dict(r: FuelRecord) -> Dict[str, Any]:
    return _compact(
        {
            "id": r.id,
            "accountId": r.account_id,
            "vehicleId": r.vehicle_id,
            "date": r.date,
            "volume": r.volume,
            "unitPrice": r.unit_price,
            "station": r.station,
        }
    )


class YamlStore(MemoryStore):
    """
    A MemoryStore backed by one YAML file.

    The file is read once on construction and rewritten after every
    write. A missing file starts an empty store that is created on the
    first write.
    """

    def __init__(
        self, filename: Union[str, Path], clock: Callable[[], datetime] = datetime.now
    ):
        super().__init__(clock=clock)
        self.filename = Path(filename)
        if self.filename.exists():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.filename, "r") as fp:
                data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Error: cannot read {self.filename}: {e}") from e

        try:
            self.settings = data.get("settings") or {}
            for dct in data.get("vehicles") or []:
                vehicle = _vehicle_from_dict(dct)
                self.vehicles[vehicle.id] = vehicle
            for dct in data.get("serviceRecords") or []:
                record = _service_record_from_dict(dct)
                self.service_records[record.id] = record
            for dct in data.get("tires") or []:
                tire = _tire_from_dict(dct)
                self.tires[tire.id] = tire
            for dct in data.get("tasks") or []:
                task = _task_from_dict(dct)
                self.tasks[task.id] = task
            for dct in data.get("fuelRecords") or []:
                record = _fuel_record_from_dict(dct)
                self.fuel_records[record.id] = record
        except (KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(
                f"Error: malformed data in {self.filename}: {e!r}"
            ) from e

        logger.debug(
            "Loaded %s: %d vehicles, %d tasks",
            self.filename,
            len(self.vehicles),
            len(self.tasks),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.settings:
            data["settings"] = self.settings
        data["vehicles"] = [_vehicle_to_dict(v) for v in self.vehicles.values()]
        data["serviceRecords"] = [
            _service_record_to_dict(r) for r in self.service_records.values()
        ]
        data["tires"] = [_tire_to_dict(t) for t in self.tires.values()]
        data["tasks"] = [_task_to_dict(t) for t in self.tasks.values()]
        data["fuelRecords"] = [
            _fuel_record_to_dict(r) for r in self.fuel_records.values()
        ]
        return data

    def _commit(self) -> None:
        try:
            with open(self.filename, "w") as fp:
                yaml.dump(
                    self.to_dict(),
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except OSError as e:
            raise PersistenceError(f"Error: cannot write {self.filename}: {e}") from e
