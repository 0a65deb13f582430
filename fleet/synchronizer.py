"""
Reconciliation of reminder tasks with evaluated obligations.

For each vehicle and category the synchronizer makes the persisted open
task match what the evaluator reports: create it when something becomes
due, update it in place when the due point moves, and complete it when
the obligation is satisfied. Re-running with unchanged data performs no
writes.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Union

from .category import Category
from .config import Thresholds
from .errors import ConflictError, PersistenceError
from .evaluator import evaluate_vehicle, exempt_categories, governing_dues
from .obligation_due import ObligationDue
from .status import Status
from .store import FleetStore
from .task import Task
from .vehicle import Vehicle

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Writes and problems from one synchronizer run over a vehicle."""

    vehicle_id: Optional[str]
    plate: Optional[str] = None
    created: List[Task] = field(default_factory=list)
    updated: List[Task] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.created) + len(self.updated) + len(self.completed)

    @property
    def ok(self) -> bool:
        return not self.warnings


class KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple, threading.Lock] = {}

    @contextmanager
    def hold(self, *key):
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


def task_title(due: ObligationDue) -> str:
    if due.category == Category.SERVICE and due.subject:
        return f"Scheduled service: {due.subject}"
    return due.category.label


def task_description(due: ObligationDue, plate: str) -> str:
    """Reminder text. Depends only on the due point, never on today's date."""
    category = due.category
    if category == Category.INSPECTION:
        return f"Inspection renewal for {plate}"
    if category == Category.EXHAUST:
        return f"Exhaust emission check for {plate}"
    if category == Category.INSURANCE:
        return f"Insurance renewal for {plate}"
    if category == Category.TIRE:
        text = f"Tire replacement for {plate}: {due.subject}"
        if due.due_km is not None:
            text += f" (at {due.due_km:,.0f} km)"
        return text
    text = f"Scheduled service for {plate}"
    if due.subject:
        text += f": {due.subject}"
    points = []
    if due.due_km is not None:
        points.append(f"{due.due_km:,.0f} km")
    if due.due_date:
        points.append(due.due_date)
    if points:
        text += f" (due at {' / '.join(points)})"
    return text


def _needs_update(task: Task, wanted: Task) -> bool:
    return (
        task.due_date != wanted.due_date
        or task.due_km != wanted.due_km
        or task.title != wanted.title
        or task.description != wanted.description
    )


class TaskSynchronizer:
    """
    Keeps the store's open tasks in line with evaluator output.

    Each (vehicle, category) pair is reconciled independently and under
    its own lock, so a failing store call for one category is logged and
    reported without stopping the others.
    """

    def __init__(self, store: FleetStore, thresholds: Optional[Thresholds] = None):
        self.store = store
        self.thresholds = thresholds or Thresholds()
        self._locks = KeyedLocks()

    def sync_account(
        self, account_id: str, now: Union[date, datetime]
    ) -> List[SyncReport]:
        """Synchronize every vehicle of an account. One report per vehicle."""
        try:
            vehicles = self.store.list_vehicles(account_id)
        except PersistenceError as e:
            logger.error("Could not list vehicles for %s: %s", account_id, e)
            return [SyncReport(vehicle_id=None, warnings=[str(e)])]

        reports = []
        for vehicle in vehicles:
            try:
                reports.append(self.sync_vehicle(account_id, vehicle, now))
            except PersistenceError as e:
                logger.error("Sync failed for %s: %s", vehicle.plate, e)
                reports.append(
                    SyncReport(vehicle.id, vehicle.plate, warnings=[str(e)])
                )
        return reports

    def sync_vehicle(
        self, account_id: str, vehicle: Vehicle, now: Union[date, datetime]
    ) -> SyncReport:
        """
        Reconcile one vehicle's tasks with its current state.

        Raises PersistenceError only when the vehicle's source records
        can't be read; per-category write failures end up in the report.
        """
        records = self.store.list_service_records(account_id, vehicle.id)
        tires = self.store.list_tires(account_id, vehicle.id)
        dues = governing_dues(
            evaluate_vehicle(vehicle, records, tires, now, self.thresholds)
        )
        exempt = set(exempt_categories(vehicle, records))

        report = SyncReport(vehicle.id, vehicle.plate)
        for category in Category:
            with self._locks.hold(vehicle.id, category):
                try:
                    self._sync_category(
                        account_id,
                        vehicle,
                        category,
                        dues.get(category),
                        category in exempt,
                        report,
                    )
                except PersistenceError as e:
                    message = f"{vehicle.plate} {category.value}: {e}"
                    logger.warning("Task sync failed: %s", message)
                    report.warnings.append(message)

        if report.writes:
            logger.info(
                "Synced %s: %d created, %d updated, %d completed",
                vehicle.plate,
                len(report.created),
                len(report.updated),
                len(report.completed),
            )
        return report

    def _open_task(
        self, account_id: str, vehicle: Vehicle, category: Category, report: SyncReport
    ) -> Optional[Task]:
        """The single open task for the pair, closing any duplicates."""
        tasks = self.store.list_open_tasks(account_id, vehicle.id, category)
        if len(tasks) <= 1:
            return tasks[0] if tasks else None

        tasks.sort(key=lambda t: (t.created_at or "", t.id))
        keep, extras = tasks[0], tasks[1:]
        conflict = ConflictError(
            f"{len(tasks)} open {category.value} tasks for {vehicle.plate}",
            task_ids=[t.id for t in tasks],
        )
        logger.warning("Data integrity: %s; keeping %s", conflict, keep.id)
        report.conflicts.append(str(conflict))
        for extra in extras:
            self.store.mark_task_completed(account_id, extra.id)
            report.completed.append(extra.id)
        return keep

    def _sync_category(
        self,
        account_id: str,
        vehicle: Vehicle,
        category: Category,
        due: Optional[ObligationDue],
        exempt: bool,
        report: SyncReport,
    ) -> None:
        if due is None and not exempt:
            # Unknown obligation: leave whatever is stored alone.
            return

        task = self._open_task(account_id, vehicle, category, report)

        if exempt or due.status == Status.OK:
            if task is not None:
                self.store.mark_task_completed(account_id, task.id)
                report.completed.append(task.id)
                logger.info("Completed %s task for %s", category.value, vehicle.plate)
            return

        wanted = Task(
            account_id=account_id,
            vehicle_id=vehicle.id,
            category=category,
            title=task_title(due),
            description=task_description(due, vehicle.plate),
            due_date=due.due_date,
            due_km=due.due_km,
        )

        if task is None:
            report.created.append(self.store.upsert_task(wanted))
            logger.info("Created %s task for %s", category.value, vehicle.plate)
        elif _needs_update(task, wanted):
            changed = replace(
                task,
                title=wanted.title,
                description=wanted.description,
                due_date=wanted.due_date,
                due_km=wanted.due_km,
            )
            report.updated.append(self.store.upsert_task(changed))
            logger.info("Updated %s task for %s", category.value, vehicle.plate)
