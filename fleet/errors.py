"""
Exception types for the fleet reminder core.

Callers catch FleetError to handle anything raised by the core; the
subclasses let the synchronizer and CLI tell bad input apart from
store failures and data-integrity problems.
"""


class FleetError(Exception):
    """Base class for all fleet reminder errors."""

    default_message = "Error: fleet operation failed"

    def __init__(self, message: str = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ValidationError(FleetError):
    """Raised when an input value is malformed or missing (e.g. a bad date)."""

    default_message = "Error: invalid input"


class PersistenceError(FleetError):
    """Raised when a store operation fails or the target record is not found."""

    default_message = "Error: store operation failed"


class ConflictError(FleetError):
    """Raised when more than one open task exists for a vehicle and category."""

    default_message = "Error: duplicate open tasks"

    def __init__(self, message: str = None, task_ids=None) -> None:
        super().__init__(message)
        self.task_ids = list(task_ids or [])
