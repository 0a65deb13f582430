"""Closed set of reminder task categories."""

from enum import Enum


class Category(Enum):
    """Obligation categories a reminder task can belong to."""

    INSPECTION = "inspection"
    EXHAUST = "exhaust"
    SERVICE = "service"
    INSURANCE = "insurance"
    TIRE = "tire"

    @property
    def label(self) -> str:
        """Human-readable category name."""
        return _LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Look up a category by stored value or name (case-insensitive)."""
        key = value.strip().lower()
        for category in cls:
            if key in (category.value, category.name.lower()):
                return category
        raise ValueError(f"Unknown category '{value}'")


_LABELS = {
    Category.INSPECTION: "Inspection",
    Category.EXHAUST: "Exhaust emission check",
    Category.SERVICE: "Service",
    Category.INSURANCE: "Insurance renewal",
    Category.TIRE: "Tire change",
}
