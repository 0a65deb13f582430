"""Upcoming-notification view over the task collection."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Union

from .calculations import days_until, parse_date
from .config import DEFAULT_HORIZON_DAYS
from .errors import ValidationError
from .task import Task
from .vehicle import Vehicle

UNKNOWN_PLATE = "Unknown vehicle"


@dataclass
class Notification:
    """An open task due within the horizon, annotated for display."""

    task: Task
    plate: str
    days_remaining: int

    @property
    def label(self) -> str:
        """e.g. '34 ABC 123 Inspection 20 days left'."""
        unit = "day" if self.days_remaining == 1 else "days"
        return f"{self.plate} {self.task.category.label} {self.days_remaining} {unit} left"


def upcoming_notifications(
    tasks: Iterable[Task],
    now: Union[date, datetime],
    vehicle_lookup: Callable[[str], Optional[Vehicle]],
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> List[Notification]:
    """
    Open tasks due between today and today + horizon_days (inclusive).

    Tasks without a parseable due date are skipped. Results are ordered
    soonest first, then by plate.
    """
    notifications = []
    for task in tasks:
        if task.completed or not task.due_date:
            continue
        try:
            due = parse_date(task.due_date)
        except ValidationError:
            continue
        days = days_until(due, now)
        if not 0 <= days <= horizon_days:
            continue
        vehicle = vehicle_lookup(task.vehicle_id)
        plate = vehicle.plate if vehicle is not None else UNKNOWN_PLATE
        notifications.append(Notification(task=task, plate=plate, days_remaining=days))

    notifications.sort(key=lambda n: (n.days_remaining, n.plate, n.task.id or ""))
    return notifications
