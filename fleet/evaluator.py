"""
Due-item evaluation for a single vehicle.

Pure functions: the current date and thresholds are always passed in and
nothing is read from or written to a store. Obligations whose inputs are
missing or unparseable are left out of the result instead of being given
a status.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .calculations import (
    check_date_status,
    check_km_status,
    days_until,
    parse_date,
    resolve_odometer,
    tire_remaining_km,
)
from .category import Category
from .config import Thresholds
from .errors import ValidationError
from .obligation_due import Basis, ObligationDue
from .service_record import ServiceRecord
from .tire import Tire
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

Today = Union[date, datetime]

VISA_CATEGORIES = (Category.INSPECTION, Category.EXHAUST)


def _evaluate_date(
    vehicle: Vehicle,
    category: Category,
    raw_date: Optional[str],
    now: Today,
    horizon_days: int,
    subject: Optional[str] = None,
    due_km: Optional[float] = None,
) -> Optional[ObligationDue]:
    if not raw_date:
        return None
    try:
        due = parse_date(raw_date)
    except ValidationError as e:
        logger.debug("Skipping %s for %s: %s", category.value, vehicle.plate, e)
        return None
    days = days_until(due, now)
    return ObligationDue(
        category=category,
        status=check_date_status(days, horizon_days),
        basis=Basis.DATE,
        vehicle_id=vehicle.id,
        subject=subject,
        due_date=due.isoformat(),
        due_km=due_km,
        days_remaining=days,
        threshold=horizon_days,
    )


def evaluate_inspection(
    vehicle: Vehicle, now: Today, thresholds: Thresholds
) -> Optional[ObligationDue]:
    """Visa/inspection validity. None when exempt or the date is unknown."""
    if not vehicle.subject_to_visa:
        return None
    return _evaluate_date(
        vehicle, Category.INSPECTION, vehicle.visa_valid_until, now, thresholds.horizon_days
    )


def evaluate_exhaust(
    vehicle: Vehicle, now: Today, thresholds: Thresholds
) -> Optional[ObligationDue]:
    """Exhaust emission check. Follows the same exemption as inspection."""
    if not vehicle.subject_to_visa:
        return None
    return _evaluate_date(
        vehicle, Category.EXHAUST, vehicle.exhaust_check_date, now, thresholds.horizon_days
    )


def evaluate_insurance(
    vehicle: Vehicle, now: Today, thresholds: Thresholds
) -> Optional[ObligationDue]:
    return _evaluate_date(
        vehicle,
        Category.INSURANCE,
        vehicle.insurance_valid_until,
        now,
        thresholds.horizon_days,
    )


def latest_service_record(
    records: Iterable[ServiceRecord],
) -> Optional[ServiceRecord]:
    """Most recent service record by date, then odometer."""
    records = list(records)
    if not records:
        return None
    return max(records, key=lambda r: (r.date or "", r.current_km or 0))


def evaluate_service(
    vehicle: Vehicle,
    record: Optional[ServiceRecord],
    odometer_km: Optional[float],
    now: Today,
    thresholds: Thresholds,
) -> List[ObligationDue]:
    """
    Scheduled service status from the latest service record.

    Returns up to two items: one measured in km (when next_service_km and
    the odometer are known) and one measured in days (when
    next_service_date parses). Both carry the record's next-due values.
    """
    if record is None:
        return []

    subject = record.title
    dues = []

    next_date = None
    if record.next_service_date:
        try:
            next_date = parse_date(record.next_service_date).isoformat()
        except ValidationError as e:
            logger.debug("Ignoring next service date for %s: %s", vehicle.plate, e)

    if record.next_service_km is not None and odometer_km is not None:
        remaining = record.next_service_km - odometer_km
        dues.append(
            ObligationDue(
                category=Category.SERVICE,
                status=check_km_status(remaining, thresholds.service_km),
                basis=Basis.KM,
                vehicle_id=vehicle.id,
                subject=subject,
                due_date=next_date,
                due_km=record.next_service_km,
                km_remaining=remaining,
                threshold=thresholds.service_km,
            )
        )

    if next_date is not None:
        dues.append(
            _evaluate_date(
                vehicle,
                Category.SERVICE,
                next_date,
                now,
                thresholds.horizon_days,
                subject=subject,
                due_km=record.next_service_km,
            )
        )

    return dues


def evaluate_tires(
    vehicle: Vehicle,
    tires: Iterable[Tire],
    odometer_km: Optional[float],
    thresholds: Thresholds,
) -> List[ObligationDue]:
    """Replacement status for each tire with a known lifetime."""
    dues = []
    for tire in tires:
        remaining = tire_remaining_km(
            tire.estimated_lifetime_km, tire.installed_km, odometer_km
        )
        if remaining is None:
            continue
        dues.append(
            ObligationDue(
                category=Category.TIRE,
                status=check_km_status(remaining, thresholds.tire_km),
                basis=Basis.KM,
                vehicle_id=vehicle.id,
                subject=tire.position,
                due_km=tire.replacement_km,
                km_remaining=remaining,
                threshold=thresholds.tire_km,
            )
        )
    return dues


def evaluate_vehicle(
    vehicle: Vehicle,
    service_records: Sequence[ServiceRecord],
    tires: Sequence[Tire],
    now: Today,
    thresholds: Optional[Thresholds] = None,
) -> List[ObligationDue]:
    """
    Evaluate every tracked obligation of a vehicle, most urgent first.

    The odometer is resolved once here and shared by the service and
    tire rules.
    """
    thresholds = thresholds or Thresholds()
    odometer_km = resolve_odometer(
        vehicle.current_km, (r.current_km for r in service_records)
    )

    dues = [
        evaluate_inspection(vehicle, now, thresholds),
        evaluate_exhaust(vehicle, now, thresholds),
        evaluate_insurance(vehicle, now, thresholds),
    ]
    dues += evaluate_service(
        vehicle, latest_service_record(service_records), odometer_km, now, thresholds
    )
    dues += evaluate_tires(vehicle, tires, odometer_km, thresholds)

    return sorted((d for d in dues if d is not None), key=lambda d: d.sort_key)


def governing_dues(dues: Iterable[ObligationDue]) -> Dict[Category, ObligationDue]:
    """The most urgent item per category."""
    governing: Dict[Category, ObligationDue] = {}
    for due in dues:
        current = governing.get(due.category)
        if current is None or due.sort_key < current.sort_key:
            governing[due.category] = due
    return governing


def exempt_categories(
    vehicle: Vehicle, service_records: Sequence[ServiceRecord]
) -> List[Category]:
    """
    Categories whose obligation is known not to exist for this vehicle.

    Inspection and exhaust are exempt when the vehicle is not subject to
    visa. Service is exempt when the latest service record schedules no
    next service.
    """
    exempt = []
    if not vehicle.subject_to_visa:
        exempt.extend(VISA_CATEGORIES)
    latest = latest_service_record(service_records)
    if latest is not None and not latest.schedules_next:
        exempt.append(Category.SERVICE)
    return exempt
