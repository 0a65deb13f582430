#!/usr/bin/env python3
"""
Unified CLI for fleet maintenance reminders.

Commands:
  status        - Show which obligations are overdue, due soon or ok
  sync          - Bring reminder tasks in line with vehicle state
  notifications - List open tasks due within the horizon
  add-vehicle   - Register a vehicle with blank tire slots
  log-service   - Add a service record
  update-km     - Update a vehicle's odometer
  renew         - Record new inspection / exhaust / insurance dates
  delete-vehicle - Delete a vehicle and complete its open tasks
  complete      - Mark a task completed
  tires         - Show tire positions and remaining life
  change-tire   - Install a new tire at a position
  fuel          - Add a fuel record
  report        - Fuel and service cost summary
"""

import argparse
import logging
import sys
from datetime import date
from typing import Dict, List, Optional

from tabulate import tabulate

from fleet import (
    FleetError,
    FuelRecord,
    Notification,
    ObligationDue,
    ServiceRecord,
    Status,
    SyncReport,
    TaskSynchronizer,
    Thresholds,
    Tire,
    Vehicle,
    YamlStore,
    evaluate_vehicle,
    fuel_summary,
    parse_date,
    resolve_odometer,
    service_cost_by_vehicle,
    task_counts_by_category,
    tire_remaining_km,
    upcoming_notifications,
)
from fleet.config import LOG_LEVELS, default_data_file, default_log_level
from fleet.logging_config import setup_logging

logger = logging.getLogger("fleet.cli")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format a distance for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"{cost:,.2f}" if cost is not None else "-"


def format_time_remaining(days: Optional[int]) -> str:
    """Format remaining time for display (e.g., '3mo 15d' or '-2mo 5d')."""
    if days is None:
        return "-"

    sign = "-" if days < 0 else ""
    days = abs(days)
    months = days // 30
    remaining_days = days % 30
    if months > 0:
        return f"{sign}{months}mo {remaining_days}d"
    return f"{sign}{days}d"


def truncate(text: Optional[str], max_len: int = 40) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def describe_due(due: ObligationDue) -> str:
    """Category plus subject, e.g. 'Tire change [Axle 1 - Left]'."""
    if due.subject:
        return f"{due.category.label} [{due.subject}]"
    return due.category.label


# =============================================================================
# Shared setup
# =============================================================================


def resolve_today(args) -> date:
    if args.today:
        return parse_date(args.today)
    return date.today()


def optional_date(value: Optional[str]) -> Optional[str]:
    """Normalize a date argument to ISO format, passing None through."""
    return parse_date(value).isoformat() if value else None


def resolve_thresholds(args, store: YamlStore) -> Thresholds:
    return Thresholds.from_dict(store.settings).with_overrides(
        horizon_days=args.horizon_days,
        service_km=args.service_km,
        tire_km=args.tire_km,
    )


def find_vehicle(store: YamlStore, args) -> Vehicle:
    vehicle = store.find_vehicle_by_plate(args.account, args.plate)
    if vehicle is None:
        raise FleetError(f"Error: no vehicle with plate '{args.plate}'")
    return vehicle


def current_odometer(store: YamlStore, args, vehicle: Vehicle) -> Optional[float]:
    """The odometer reading the evaluator will use for this vehicle."""
    return resolve_odometer(
        vehicle.current_km,
        (r.current_km for r in store.list_service_records(args.account, vehicle.id)),
    )


def print_sync_reports(reports: List[SyncReport]) -> None:
    created = sum(len(r.created) for r in reports)
    updated = sum(len(r.updated) for r in reports)
    completed = sum(len(r.completed) for r in reports)
    print(f"Tasks: {created} created, {updated} updated, {completed} completed")
    for report in reports:
        for conflict in report.conflicts:
            print(f"  Warning: duplicate tasks resolved: {conflict}")
        for warning in report.warnings:
            print(f"  Warning: {warning}")


def sync_after_write(store: YamlStore, args, vehicle_id: str) -> int:
    """Re-run the synchronizer for a vehicle after one of its records changed."""
    vehicle = store.get_vehicle(args.account, vehicle_id)
    synchronizer = TaskSynchronizer(store, resolve_thresholds(args, store))
    report = synchronizer.sync_vehicle(args.account, vehicle, resolve_today(args))
    print_sync_reports([report])
    return 0 if report.ok else 1


# =============================================================================
# Status command
# =============================================================================


def make_status_table(dues: List[ObligationDue], plates: Dict[str, str]) -> List[List[str]]:
    """Convert obligation status list to table rows."""
    rows = []
    for due in dues:
        rows.append(
            [
                plates.get(due.vehicle_id, due.vehicle_id),
                describe_due(due),
                format_km(due.due_km),
                due.due_date or "-",
                format_km(due.km_remaining),
                format_time_remaining(due.days_remaining),
            ]
        )
    return rows


def cmd_status(args, store: YamlStore) -> int:
    """Show which obligations are overdue, due soon or ok."""
    today = resolve_today(args)
    thresholds = resolve_thresholds(args, store)

    vehicles = store.list_vehicles(args.account)
    if args.plate:
        vehicles = [find_vehicle(store, args)]

    dues = []
    for vehicle in vehicles:
        records = store.list_service_records(args.account, vehicle.id)
        tires = store.list_tires(args.account, vehicle.id)
        dues += evaluate_vehicle(vehicle, records, tires, today, thresholds)
    dues.sort(key=lambda d: d.sort_key)

    print(f"Account: {args.account}")
    print(f"As of: {today.isoformat()}")
    print(
        f"Thresholds: {thresholds.horizon_days} days, "
        f"service {format_km(thresholds.service_km)} km, "
        f"tires {format_km(thresholds.tire_km)} km"
    )
    print(f"Vehicles: {len(vehicles)}")
    print()

    plates = {v.id: v.plate for v in vehicles}
    headers = ["Plate", "Obligation", "Due (km)", "Due (date)", "Remaining (km)", "Remaining (time)"]
    for status, title in (
        (Status.OVERDUE, "OVERDUE:"),
        (Status.DUE_SOON, "DUE SOON:"),
        (Status.OK, "OK:"),
    ):
        group = [d for d in dues if d.status == status]
        if group:
            print(title)
            print(tabulate(make_status_table(group, plates), headers=headers, tablefmt="simple"))
            print()

    if not dues:
        print("Nothing to track (no dates, service schedules or tire lifetimes recorded).")

    return 0


# =============================================================================
# Sync command
# =============================================================================


def cmd_sync(args, store: YamlStore) -> int:
    """Bring reminder tasks in line with vehicle state."""
    synchronizer = TaskSynchronizer(store, resolve_thresholds(args, store))
    reports = synchronizer.sync_account(args.account, resolve_today(args))
    print(f"Vehicles synced: {len(reports)}")
    print_sync_reports(reports)
    return 0 if all(r.ok for r in reports) else 1


# =============================================================================
# Notifications command
# =============================================================================


def make_notification_table(notifications: List[Notification]) -> List[List[str]]:
    rows = []
    for n in notifications:
        rows.append(
            [
                n.task.due_date,
                str(n.days_remaining),
                n.plate,
                n.task.category.label,
                truncate(n.task.description),
            ]
        )
    return rows


def cmd_notifications(args, store: YamlStore) -> int:
    """List open tasks due within the horizon."""
    today = resolve_today(args)
    thresholds = resolve_thresholds(args, store)
    vehicles = {v.id: v for v in store.list_vehicles(args.account)}

    notifications = upcoming_notifications(
        store.list_open_tasks(args.account),
        today,
        vehicles.get,
        thresholds.horizon_days,
    )

    if not notifications:
        print(f"No tasks due in the next {thresholds.horizon_days} days.")
        return 0

    headers = ["Date", "Days", "Plate", "Category", "Description"]
    print(tabulate(make_notification_table(notifications), headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Vehicle commands
# =============================================================================


def cmd_add_vehicle(args, store: YamlStore) -> int:
    """Register a vehicle with blank tire slots."""
    vehicle = Vehicle(
        None,
        args.account,
        args.plate,
        current_km=args.km,
        visa_valid_until=optional_date(args.visa),
        subject_to_visa=not args.no_visa,
        exhaust_check_date=optional_date(args.exhaust),
        insurance_valid_until=optional_date(args.insurance),
        make=args.make,
        model=args.model,
        year=args.year,
        axle_count=args.axles,
        last_axle_single=args.single_last_axle,
    )

    print(f"Adding vehicle {vehicle.name}")
    print(f"  Axles: {vehicle.axle_count} ({'single' if vehicle.last_axle_single else 'dual'} last axle)")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    saved = store.add_vehicle(vehicle)
    print(f"Vehicle saved with {len(store.list_tires(args.account, saved.id))} tire positions.")
    return sync_after_write(store, args, saved.id)


def cmd_log_service(args, store: YamlStore) -> int:
    """Add a service record."""
    vehicle = find_vehicle(store, args)
    record = ServiceRecord(
        None,
        args.account,
        vehicle.id,
        parse_date(args.date or resolve_today(args)).isoformat(),
        current_km=args.km,
        next_service_km=args.next_km,
        next_service_date=optional_date(args.next_date),
        cost=args.cost,
        title=args.title,
        description=args.description,
    )

    print(f"Adding service record for {vehicle.plate}:")
    print(f"  Title:   {record.title}")
    print(f"  Date:    {record.date}")
    if record.current_km is not None:
        print(f"  Km:      {format_km(record.current_km)}")
    if record.next_service_km is not None:
        print(f"  Next km: {format_km(record.next_service_km)}")
    if record.next_service_date:
        print(f"  Next:    {record.next_service_date}")
    if record.cost is not None:
        print(f"  Cost:    {format_cost(record.cost)}")
    if not record.schedules_next:
        print("  Warning: no next service km or date; no service reminder will be kept.")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.add_service_record(record)
    if record.current_km is not None and (vehicle.current_km or 0) < record.current_km:
        store.update_vehicle(args.account, vehicle.id, current_km=record.current_km)
    print("Service record saved.")
    return sync_after_write(store, args, vehicle.id)


def cmd_update_km(args, store: YamlStore) -> int:
    """Update a vehicle's odometer."""
    vehicle = find_vehicle(store, args)
    old_km = current_odometer(store, args, vehicle)

    print(f"Vehicle: {vehicle.name}")
    print(f"Current km: {format_km(old_km)}")
    print(f"New km:     {format_km(args.km)}")
    print()

    if old_km is not None and args.km < old_km and not args.force:
        print("Error: odometer can't go backwards (use --force to override)")
        return 1

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.update_vehicle(args.account, vehicle.id, current_km=args.km)
    print("Odometer updated.")
    return sync_after_write(store, args, vehicle.id)


def cmd_renew(args, store: YamlStore) -> int:
    """Record new inspection / exhaust / insurance dates."""
    vehicle = find_vehicle(store, args)
    changes = {}
    if args.visa:
        changes["visa_valid_until"] = parse_date(args.visa).isoformat()
    if args.exhaust:
        changes["exhaust_check_date"] = parse_date(args.exhaust).isoformat()
    if args.insurance:
        changes["insurance_valid_until"] = parse_date(args.insurance).isoformat()

    if not changes:
        print("Error: give at least one of --visa, --exhaust, --insurance")
        return 1

    print(f"Vehicle: {vehicle.name}")
    for name, value in changes.items():
        print(f"  {name.replace('_', ' ')}: {getattr(vehicle, name) or '-'} -> {value}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.update_vehicle(args.account, vehicle.id, **changes)
    print("Dates updated.")
    return sync_after_write(store, args, vehicle.id)


def cmd_delete_vehicle(args, store: YamlStore) -> int:
    """Delete a vehicle, its tires and its open reminders."""
    vehicle = find_vehicle(store, args)
    open_tasks = store.list_open_tasks(args.account, vehicle.id)

    print(f"Deleting vehicle {vehicle.name}")
    print(f"  Tires removed:   {len(store.list_tires(args.account, vehicle.id))}")
    print(f"  Tasks completed: {len(open_tasks)}")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.delete_vehicle(args.account, vehicle.id)
    print("Vehicle deleted.")
    return 0


# =============================================================================
# Task commands
# =============================================================================


def cmd_complete(args, store: YamlStore) -> int:
    """Mark a task completed."""
    if args.dry_run:
        print(f"Would complete task {args.task_id}")
        print("(dry run - no changes made)")
        return 0
    store.mark_task_completed(args.account, args.task_id)
    print(f"Task {args.task_id} completed.")
    return 0


# =============================================================================
# Tire commands
# =============================================================================


def make_tire_table(tires: List[Tire], odometer_km: Optional[float]) -> List[List[str]]:
    rows = []
    for tire in tires:
        rows.append(
            [
                tire.position,
                tire.brand or "-",
                tire.size or "-",
                format_km(tire.installed_km),
                format_km(tire.estimated_lifetime_km),
                format_km(
                    tire_remaining_km(
                        tire.estimated_lifetime_km, tire.installed_km, odometer_km
                    )
                ),
            ]
        )
    return rows


def cmd_tires(args, store: YamlStore) -> int:
    """Show tire positions and remaining life."""
    vehicle = find_vehicle(store, args)
    odometer_km = current_odometer(store, args, vehicle)
    tires = sorted(store.list_tires(args.account, vehicle.id), key=lambda t: t.position)

    print(f"Vehicle: {vehicle.name}")
    print(f"Current km: {format_km(odometer_km)}")
    print()

    if not tires:
        print("No tires recorded.")
        return 0

    headers = ["Position", "Brand", "Size", "Installed (km)", "Lifetime (km)", "Remaining (km)"]
    print(tabulate(make_tire_table(tires, odometer_km), headers=headers, tablefmt="simple"))
    return 0


def cmd_change_tire(args, store: YamlStore) -> int:
    """Install a new tire at a position."""
    vehicle = find_vehicle(store, args)
    positions = {t.position for t in store.list_tires(args.account, vehicle.id)}
    if positions and args.position not in positions:
        print(f"Error: unknown position '{args.position}'")
        print("\nPositions:")
        for position in sorted(positions):
            print(f"  {position}")
        return 1

    installed_km = args.km if args.km is not None else current_odometer(store, args, vehicle)
    tire = Tire(
        None,
        vehicle.id,
        args.position,
        brand=args.brand,
        size=args.size,
        installed_km=installed_km,
        estimated_lifetime_km=args.lifetime,
    )

    print(f"Installing tire on {vehicle.plate} at {tire.position}")
    print(f"  Installed at: {format_km(installed_km)} km")
    print(f"  Lifetime:     {format_km(tire.estimated_lifetime_km)} km")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.replace_tire(args.account, tire)
    print("Tire saved.")
    return sync_after_write(store, args, vehicle.id)


# =============================================================================
# Fuel and report commands
# =============================================================================


def cmd_fuel(args, store: YamlStore) -> int:
    """Add a fuel record."""
    vehicle = find_vehicle(store, args)
    record = FuelRecord(
        None,
        args.account,
        vehicle.id,
        parse_date(args.date or resolve_today(args)).isoformat(),
        args.volume,
        args.unit_price,
        station=args.station,
    )

    print(f"Adding fuel record for {vehicle.plate}:")
    print(f"  Volume: {record.volume:,.2f}")
    print(f"  Price:  {format_cost(record.unit_price)}")
    print(f"  Total:  {format_cost(record.total)}")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.add_fuel_record(record)
    print("Fuel record saved.")
    return 0


def cmd_report(args, store: YamlStore) -> int:
    """Fuel and service cost summary."""
    vehicles = store.list_vehicles(args.account)
    plates = {v.id: v.plate for v in vehicles}
    summary = fuel_summary(store.list_fuel_records(args.account), vehicles, args.top)
    service_costs = service_cost_by_vehicle(store.list_service_records(args.account))
    task_counts = task_counts_by_category(store.list_open_tasks(args.account))

    print(f"Vehicles: {len(vehicles)}")
    print(f"Fuel volume: {summary.total_volume:,.2f}")
    print(f"Fuel cost: {format_cost(summary.total_cost)}")
    print(f"Average fuel cost per vehicle: {format_cost(summary.average_cost_per_vehicle)}")
    print()

    if summary.top_vehicles:
        print(f"Top {len(summary.top_vehicles)} vehicles by fuel cost:")
        rows = [[plate, format_cost(cost)] for plate, cost in summary.top_vehicles]
        print(tabulate(rows, headers=["Plate", "Fuel cost"], tablefmt="simple"))
        print()

    if service_costs:
        print("Service cost by vehicle:")
        rows = sorted(
            ([plates.get(vid, vid), format_cost(cost)] for vid, cost in service_costs.items()),
        )
        print(tabulate(rows, headers=["Plate", "Service cost"], tablefmt="simple"))
        print()

    print("Open tasks:")
    rows = [[category.label, count] for category, count in task_counts.items()]
    print(tabulate(rows, headers=["Category", "Open"], tablefmt="simple"))
    return 0


# =============================================================================
# Main
# =============================================================================


COMMANDS = {
    "status": cmd_status,
    "sync": cmd_sync,
    "notifications": cmd_notifications,
    "add-vehicle": cmd_add_vehicle,
    "log-service": cmd_log_service,
    "update-km": cmd_update_km,
    "renew": cmd_renew,
    "delete-vehicle": cmd_delete_vehicle,
    "complete": cmd_complete,
    "tires": cmd_tires,
    "change-tire": cmd_change_tire,
    "fuel": cmd_fuel,
    "report": cmd_report,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet maintenance reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --account acme status
  %(prog)s --account acme sync
  %(prog)s --account acme notifications --horizon-days 14
  %(prog)s --account acme add-vehicle "34 ABC 123" --km 42000 --visa 2026-11-06
  %(prog)s --account acme log-service "34 ABC 123" "Oil change" \\
      --km 50000 --next-km 60000
  %(prog)s --account acme update-km "34 ABC 123" 59600
  %(prog)s --account acme renew "34 ABC 123" --visa 2027-11-06
""",
    )
    parser.add_argument(
        "--data",
        type=str,
        default=str(default_data_file()),
        help="Path to fleet YAML file (default: $FLEET_DATA_FILE or fleet.yaml)",
    )
    parser.add_argument("--account", required=True, help="Owning account id")
    parser.add_argument("--today", type=str, help="Evaluate as of this date (YYYY-MM-DD)")
    parser.add_argument("--horizon-days", type=int, help="Reminder horizon in days")
    parser.add_argument("--service-km", type=float, help="Service reminder distance")
    parser.add_argument("--tire-km", type=float, help="Tire reminder distance")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=default_log_level(),
        help="Logging level (default: $FLEET_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--log-json", action="store_true", help="Log as JSON lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    status_parser = subparsers.add_parser(
        "status", help="Show which obligations are overdue, due soon or ok"
    )
    status_parser.add_argument("--plate", type=str, help="Only this vehicle")

    subparsers.add_parser("sync", help="Bring reminder tasks in line with vehicle state")
    subparsers.add_parser("notifications", help="List open tasks due within the horizon")

    add_parser = subparsers.add_parser("add-vehicle", help="Register a vehicle")
    add_parser.add_argument("plate", type=str)
    add_parser.add_argument("--make", type=str)
    add_parser.add_argument("--model", type=str)
    add_parser.add_argument("--year", type=int)
    add_parser.add_argument("--km", type=float, help="Current odometer")
    add_parser.add_argument("--visa", type=str, help="Inspection valid until (YYYY-MM-DD)")
    add_parser.add_argument("--exhaust", type=str, help="Exhaust check date (YYYY-MM-DD)")
    add_parser.add_argument("--insurance", type=str, help="Insurance valid until (YYYY-MM-DD)")
    add_parser.add_argument(
        "--no-visa", action="store_true", help="Vehicle is not subject to inspection"
    )
    add_parser.add_argument("--axles", type=int, default=2, help="Axle count (default: 2)")
    add_parser.add_argument(
        "--single-last-axle", action="store_true", help="Last axle has single tires"
    )
    add_parser.add_argument("--dry-run", action="store_true")

    log_parser = subparsers.add_parser("log-service", help="Add a service record")
    log_parser.add_argument("plate", type=str)
    log_parser.add_argument("title", type=str, help="Service title (e.g., 'Oil change')")
    log_parser.add_argument("--date", type=str, help="Service date (default: today)")
    log_parser.add_argument("--km", type=float, help="Odometer at service")
    log_parser.add_argument("--next-km", type=float, help="Next service odometer")
    log_parser.add_argument("--next-date", type=str, help="Next service date")
    log_parser.add_argument("--cost", type=float)
    log_parser.add_argument("--description", type=str)
    log_parser.add_argument("--dry-run", action="store_true")

    km_parser = subparsers.add_parser("update-km", help="Update a vehicle's odometer")
    km_parser.add_argument("plate", type=str)
    km_parser.add_argument("km", type=float)
    km_parser.add_argument("--force", action="store_true", help="Allow a lower reading")
    km_parser.add_argument("--dry-run", action="store_true")

    renew_parser = subparsers.add_parser("renew", help="Record renewed dates")
    renew_parser.add_argument("plate", type=str)
    renew_parser.add_argument("--visa", type=str)
    renew_parser.add_argument("--exhaust", type=str)
    renew_parser.add_argument("--insurance", type=str)
    renew_parser.add_argument("--dry-run", action="store_true")

    delete_parser = subparsers.add_parser(
        "delete-vehicle", help="Delete a vehicle and complete its open tasks"
    )
    delete_parser.add_argument("plate", type=str)
    delete_parser.add_argument("--dry-run", action="store_true")

    complete_parser = subparsers.add_parser("complete", help="Mark a task completed")
    complete_parser.add_argument("task_id", type=str)
    complete_parser.add_argument("--dry-run", action="store_true")

    tires_parser = subparsers.add_parser("tires", help="Show tires of a vehicle")
    tires_parser.add_argument("plate", type=str)

    change_parser = subparsers.add_parser("change-tire", help="Install a new tire")
    change_parser.add_argument("plate", type=str)
    change_parser.add_argument("position", type=str, help="e.g., 'Axle 1 - Left'")
    change_parser.add_argument("--lifetime", type=float, required=True, help="Estimated km")
    change_parser.add_argument("--km", type=float, help="Odometer at install (default: current)")
    change_parser.add_argument("--brand", type=str)
    change_parser.add_argument("--size", type=str)
    change_parser.add_argument("--dry-run", action="store_true")

    fuel_parser = subparsers.add_parser("fuel", help="Add a fuel record")
    fuel_parser.add_argument("plate", type=str)
    fuel_parser.add_argument("volume", type=float)
    fuel_parser.add_argument("unit_price", type=float)
    fuel_parser.add_argument("--date", type=str)
    fuel_parser.add_argument("--station", type=str)
    fuel_parser.add_argument("--dry-run", action="store_true")

    report_parser = subparsers.add_parser("report", help="Fuel and service cost summary")
    report_parser.add_argument("--top", type=int, default=5, help="Top N vehicles (default: 5)")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, json_output=args.log_json)

    try:
        store = YamlStore(args.data)
        return COMMANDS[args.command](args, store)
    except FleetError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(e)
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
