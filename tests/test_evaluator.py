#!/usr/bin/env python3
"""Tests for due-item evaluation."""

from datetime import date, datetime

from fleet import (
    Basis,
    Category,
    ServiceRecord,
    Status,
    Thresholds,
    Tire,
    Vehicle,
    evaluate_vehicle,
    exempt_categories,
    governing_dues,
)
from fleet.evaluator import (
    evaluate_exhaust,
    evaluate_inspection,
    evaluate_insurance,
    evaluate_service,
    evaluate_tires,
    latest_service_record,
)

TODAY = date(2026, 10, 17)
THRESHOLDS = Thresholds()


def make_vehicle(**kwargs):
    kwargs.setdefault("current_km", 59600)
    return Vehicle("v1", "acme", "34 ABC 123", **kwargs)


def make_record(date_str="2026-04-01", **kwargs):
    return ServiceRecord("r1", "acme", "v1", date_str, **kwargs)


class TestEvaluateInspection:
    """Tests for the inspection (visa) rule."""

    def test_due_soon_within_horizon(self):
        due = evaluate_inspection(make_vehicle(visa_valid_until="2026-11-06"), TODAY, THRESHOLDS)
        assert due.status == Status.DUE_SOON
        assert due.days_remaining == 20
        assert due.basis == Basis.DATE
        assert due.due_date == "2026-11-06"

    def test_horizon_boundary(self):
        at_edge = evaluate_inspection(make_vehicle(visa_valid_until="2026-11-16"), TODAY, THRESHOLDS)
        past_edge = evaluate_inspection(make_vehicle(visa_valid_until="2026-11-17"), TODAY, THRESHOLDS)
        assert at_edge.days_remaining == 30
        assert at_edge.status == Status.DUE_SOON
        assert past_edge.status == Status.OK

    def test_due_today_is_not_overdue(self):
        due = evaluate_inspection(make_vehicle(visa_valid_until="2026-10-17"), TODAY, THRESHOLDS)
        assert due.status == Status.DUE_SOON

    def test_overdue(self):
        due = evaluate_inspection(make_vehicle(visa_valid_until="2026-10-01"), TODAY, THRESHOLDS)
        assert due.status == Status.OVERDUE
        assert due.days_remaining == -16

    def test_exempt_vehicle(self):
        vehicle = make_vehicle(visa_valid_until="2026-10-01", subject_to_visa=False)
        assert evaluate_inspection(vehicle, TODAY, THRESHOLDS) is None

    def test_missing_date(self):
        assert evaluate_inspection(make_vehicle(), TODAY, THRESHOLDS) is None

    def test_invalid_date_is_unknown(self):
        vehicle = make_vehicle(visa_valid_until="someday")
        assert evaluate_inspection(vehicle, TODAY, THRESHOLDS) is None

    def test_custom_horizon(self):
        vehicle = make_vehicle(visa_valid_until="2026-11-06")
        due = evaluate_inspection(vehicle, TODAY, Thresholds(horizon_days=7))
        assert due.status == Status.OK

    def test_datetime_now(self):
        vehicle = make_vehicle(visa_valid_until="2026-11-06")
        due = evaluate_inspection(vehicle, datetime(2026, 10, 17, 18, 45), THRESHOLDS)
        assert due.days_remaining == 20


class TestEvaluateExhaustAndInsurance:
    """Tests for the exhaust and insurance date rules."""

    def test_exhaust_due_soon(self):
        due = evaluate_exhaust(make_vehicle(exhaust_check_date="2026-10-27"), TODAY, THRESHOLDS)
        assert due.category == Category.EXHAUST
        assert due.status == Status.DUE_SOON

    def test_exhaust_follows_visa_exemption(self):
        vehicle = make_vehicle(exhaust_check_date="2026-10-27", subject_to_visa=False)
        assert evaluate_exhaust(vehicle, TODAY, THRESHOLDS) is None

    def test_insurance_not_visa_gated(self):
        vehicle = make_vehicle(insurance_valid_until="2026-10-10", subject_to_visa=False)
        due = evaluate_insurance(vehicle, TODAY, THRESHOLDS)
        assert due.category == Category.INSURANCE
        assert due.status == Status.OVERDUE


class TestLatestServiceRecord:
    """Tests for latest_service_record."""

    def test_empty(self):
        assert latest_service_record([]) is None

    def test_latest_by_date(self):
        old = ServiceRecord("a", "acme", "v1", "2025-01-01", current_km=40000)
        new = ServiceRecord("b", "acme", "v1", "2026-01-01", current_km=50000)
        assert latest_service_record([new, old]) is new

    def test_same_date_higher_km_wins(self):
        low = ServiceRecord("a", "acme", "v1", "2026-01-01", current_km=40000)
        high = ServiceRecord("b", "acme", "v1", "2026-01-01", current_km=41000)
        assert latest_service_record([high, low]) is high


class TestEvaluateService:
    """Tests for the scheduled service rule."""

    def test_km_due_soon(self):
        """400 km left with a 500 km threshold is due soon."""
        record = make_record(next_service_km=60000, title="Oil change")
        dues = evaluate_service(make_vehicle(), record, 59600, TODAY, THRESHOLDS)
        assert len(dues) == 1
        assert dues[0].status == Status.DUE_SOON
        assert dues[0].km_remaining == 400
        assert dues[0].basis == Basis.KM
        assert dues[0].subject == "Oil change"
        assert dues[0].due_km == 60000

    def test_km_overdue(self):
        record = make_record(next_service_km=60000)
        dues = evaluate_service(make_vehicle(), record, 60100, TODAY, THRESHOLDS)
        assert dues[0].status == Status.OVERDUE
        assert dues[0].km_remaining == -100

    def test_km_reached_exactly_is_overdue(self):
        record = make_record(next_service_km=60000)
        dues = evaluate_service(make_vehicle(), record, 60000, TODAY, THRESHOLDS)
        assert dues[0].status == Status.OVERDUE

    def test_km_ok(self):
        record = make_record(next_service_km=70000)
        dues = evaluate_service(make_vehicle(), record, 59600, TODAY, THRESHOLDS)
        assert dues[0].status == Status.OK

    def test_date_and_km(self):
        record = make_record(next_service_km=70000, next_service_date="2026-10-30")
        dues = evaluate_service(make_vehicle(), record, 59600, TODAY, THRESHOLDS)
        by_basis = {d.basis: d for d in dues}
        assert by_basis[Basis.KM].status == Status.OK
        assert by_basis[Basis.DATE].status == Status.DUE_SOON
        assert by_basis[Basis.DATE].due_km == 70000
        assert by_basis[Basis.KM].due_date == "2026-10-30"

    def test_unknown_odometer_skips_km(self):
        record = make_record(next_service_km=60000)
        assert evaluate_service(make_vehicle(), record, None, TODAY, THRESHOLDS) == []

    def test_no_record(self):
        assert evaluate_service(make_vehicle(), None, 59600, TODAY, THRESHOLDS) == []

    def test_invalid_next_date_ignored(self):
        record = make_record(next_service_km=60000, next_service_date="soon")
        dues = evaluate_service(make_vehicle(), record, 59600, TODAY, THRESHOLDS)
        assert len(dues) == 1
        assert dues[0].basis == Basis.KM
        assert dues[0].due_date is None


class TestEvaluateTires:
    """Tests for the tire replacement rule."""

    def test_statuses(self):
        tires = [
            Tire("t1", "v1", "Axle 1 - Left", installed_km=20000, estimated_lifetime_km=40000),
            Tire("t2", "v1", "Axle 1 - Right", installed_km=55000, estimated_lifetime_km=40000),
            Tire("t3", "v1", "Axle 2 - Left", installed_km=19000, estimated_lifetime_km=40000),
        ]
        dues = evaluate_tires(make_vehicle(), tires, 59600, THRESHOLDS)
        by_position = {d.subject: d for d in dues}
        assert by_position["Axle 1 - Left"].status == Status.DUE_SOON
        assert by_position["Axle 1 - Left"].km_remaining == 400
        assert by_position["Axle 1 - Left"].due_km == 60000
        assert by_position["Axle 1 - Right"].status == Status.OK
        assert by_position["Axle 2 - Left"].status == Status.OVERDUE

    def test_unknown_lifetime_skipped(self):
        tires = [Tire("t1", "v1", "Axle 1 - Left", installed_km=20000)]
        assert evaluate_tires(make_vehicle(), tires, 59600, THRESHOLDS) == []

    def test_unknown_install_odometer_skipped(self):
        """A tire with no install reading is not assumed to have run from 0 km."""
        vehicle = make_vehicle(current_km=120000)
        tires = [Tire("t1", "v1", "Axle 1 - Left", estimated_lifetime_km=50000)]
        assert evaluate_vehicle(vehicle, [], tires, TODAY, THRESHOLDS) == []

    def test_custom_threshold(self):
        tires = [Tire("t1", "v1", "Axle 1 - Left", installed_km=20000, estimated_lifetime_km=40000)]
        dues = evaluate_tires(make_vehicle(), tires, 58000, Thresholds(tire_km=2500))
        assert dues[0].status == Status.DUE_SOON


class TestEvaluateVehicle:
    """Tests for evaluate_vehicle ordering and odometer resolution."""

    def test_sorted_most_urgent_first(self):
        vehicle = make_vehicle(
            visa_valid_until="2026-11-06",
            exhaust_check_date="2027-06-01",
            insurance_valid_until="2026-10-01",
        )
        records = [make_record(next_service_km=60000)]
        dues = evaluate_vehicle(vehicle, records, [], TODAY, THRESHOLDS)
        assert [d.category for d in dues] == [
            Category.INSURANCE,
            Category.INSPECTION,
            Category.SERVICE,
            Category.EXHAUST,
        ]

    def test_ties_within_status_go_by_ratio(self):
        vehicle = make_vehicle(visa_valid_until="2026-11-06")
        tires = [Tire("t1", "v1", "Axle 1 - Left", installed_km=20000, estimated_lifetime_km=40100)]
        dues = evaluate_vehicle(vehicle, [], tires, TODAY, THRESHOLDS)
        # tire 500/1000 = 0.5, inspection 20/30 = 0.67
        assert [d.category for d in dues] == [Category.TIRE, Category.INSPECTION]

    def test_odometer_from_records_when_vehicle_unknown(self):
        vehicle = make_vehicle(current_km=None)
        records = [
            ServiceRecord("a", "acme", "v1", "2025-01-01", current_km=59600),
            ServiceRecord("b", "acme", "v1", "2024-01-01", current_km=40000, next_service_km=60000),
        ]
        tires = [Tire("t1", "v1", "Axle 1 - Left", installed_km=20000, estimated_lifetime_km=40000)]
        dues = evaluate_vehicle(vehicle, records, tires, TODAY, THRESHOLDS)
        assert [d.category for d in dues] == [Category.TIRE]
        assert dues[0].km_remaining == 400

    def test_nothing_known(self):
        vehicle = make_vehicle(current_km=None)
        assert evaluate_vehicle(vehicle, [], [], TODAY) == []

    def test_default_thresholds(self):
        vehicle = make_vehicle(visa_valid_until="2026-11-16")
        dues = evaluate_vehicle(vehicle, [], [], TODAY)
        assert dues[0].status == Status.DUE_SOON

    def test_deterministic(self):
        vehicle = make_vehicle(visa_valid_until="2026-11-06", insurance_valid_until="2026-11-06")
        first = evaluate_vehicle(vehicle, [], [], TODAY, THRESHOLDS)
        second = evaluate_vehicle(vehicle, [], [], TODAY, THRESHOLDS)
        assert first == second
        assert [d.category for d in first] == [Category.INSPECTION, Category.INSURANCE]


class TestGoverningDues:
    """Tests for governing_dues."""

    def test_most_urgent_per_category(self):
        tires = [
            Tire("t1", "v1", "Axle 1 - Left", installed_km=20000, estimated_lifetime_km=40000),
            Tire("t2", "v1", "Axle 1 - Right", installed_km=19000, estimated_lifetime_km=40000),
        ]
        dues = evaluate_vehicle(make_vehicle(), [], tires, TODAY, THRESHOLDS)
        governing = governing_dues(dues)
        assert list(governing) == [Category.TIRE]
        assert governing[Category.TIRE].subject == "Axle 1 - Right"
        assert governing[Category.TIRE].status == Status.OVERDUE

    def test_service_km_vs_date(self):
        record = make_record(next_service_km=60000, next_service_date="2027-03-01")
        dues = evaluate_vehicle(make_vehicle(), [record], [], TODAY, THRESHOLDS)
        assert governing_dues(dues)[Category.SERVICE].basis == Basis.KM


class TestExemptCategories:
    """Tests for exempt_categories."""

    def test_visa_exempt(self):
        vehicle = make_vehicle(subject_to_visa=False)
        assert exempt_categories(vehicle, []) == [Category.INSPECTION, Category.EXHAUST]

    def test_service_exempt_when_nothing_scheduled(self):
        records = [make_record(current_km=59000)]
        assert exempt_categories(make_vehicle(), records) == [Category.SERVICE]

    def test_service_scheduled(self):
        records = [make_record(next_service_km=60000)]
        assert exempt_categories(make_vehicle(), records) == []

    def test_no_records(self):
        assert exempt_categories(make_vehicle(), []) == []
