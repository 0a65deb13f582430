"""Task dataclass for persisted reminder records."""

from dataclasses import dataclass
from typing import Optional

from .category import Category


@dataclass
class Task:
    """A reminder for one vehicle and category. Open while not completed."""

    account_id: str
    vehicle_id: str
    category: Category
    title: str
    description: Optional[str] = None
    due_date: Optional[str] = None
    due_km: Optional[float] = None
    completed: bool = False
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return not self.completed
