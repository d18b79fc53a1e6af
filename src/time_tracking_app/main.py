from __future__ import annotations

import argparse
import getpass
import logging
import sys
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path

from time_tracking_app.config import settings as settings_module
from time_tracking_app.data import Database
from time_tracking_app.errors import TimeTrackingError
from time_tracking_app.models import ScanResult, Student, StudentStatus
from time_tracking_app.services import (
    AdminService,
    QRScanner,
    ReportService,
    ScanHandler,
    StudentService,
    TimeRecordService,
    decode_image,
    default_export_filename,
    generate_student_qr,
)
from time_tracking_app.utils import InvalidDateInput, format_clock, format_relative_time, parse_day, parse_timestamp

logger = logging.getLogger("time_tracking_app")


@dataclass
class Services:
    database: Database
    students: StudentService
    records: TimeRecordService
    admins: AdminService
    reports: ReportService


def build_services(database_path: Path) -> Services:
    database = Database(database_path)
    database.initialize()
    students = StudentService(database)
    records = TimeRecordService(database)
    return Services(
        database=database,
        students=students,
        records=records,
        admins=AdminService(database),
        reports=ReportService(students, records),
    )


def build_scan_handler(services: Services) -> ScanHandler:
    settings = settings_module.settings
    return ScanHandler(
        services.students,
        services.records,
        cooldown_seconds=settings.scan_cooldown_seconds,
        recent_limit=settings.recent_scan_limit,
        continuous=settings.continuous_mode,
    )


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
def _cmd_init(services: Services, args: argparse.Namespace) -> int:
    print(f"Database ready at {services.database.path}")
    return 0


def _cmd_create_admin(services: Services, args: argparse.Namespace) -> int:
    password = args.password or settings_module.settings.default_admin_password
    user = services.admins.ensure_default_admin(password)
    print(f"Admin account '{user.username}' is ready.")
    return 0


def _cmd_add_admin(services: Services, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    user = services.admins.create_admin(
        username=args.username,
        password=password,
        name=args.name,
        email=args.email,
        role=args.role,
    )
    print(f"Created {user.role} account '{user.username}'.")
    return 0


def _cmd_add_student(services: Services, args: argparse.Namespace) -> int:
    student = services.students.create_student(
        Student(
            student_id=args.student_id,
            last_name=args.last_name,
            first_name=args.first_name,
            middle_name=args.middle_name,
            year_level=args.year_level,
            course=args.course,
            status=StudentStatus(args.status),
        )
    )
    print(f"Registered {student.display_name} ({student.student_id}).")
    return 0


def _cmd_students(services: Services, args: argparse.Namespace) -> int:
    students = services.students.list_students()
    if not students:
        print("No students registered.")
        return 0
    for student in students:
        print(f"{student.student_id:<14} {student.display_name:<32} {student.year_level:<10} "
              f"{student.course:<12} {student.status.value}")
    return 0


def _print_scan_result(result: ScanResult) -> None:
    if result.accepted and result.record is not None:
        print(f"{result.message} ({format_clock(result.record.timestamp)})")
    else:
        print(result.message)


def _cmd_scan(services: Services, args: argparse.Namespace) -> int:
    handler = build_scan_handler(services)
    _print_scan_result(handler.handle(args.payload))
    return 0


def _cmd_watch(services: Services, args: argparse.Namespace) -> int:
    handler = build_scan_handler(services)
    scanner = QRScanner(camera_index=settings_module.settings.qr_camera_index)
    done = threading.Event()

    def _on_payload(payload: str) -> None:
        try:
            result = handler.handle(payload)
        except TimeTrackingError as exc:
            print(str(exc), file=sys.stderr)
            return
        _print_scan_result(result)
        if result.accepted and not result.continuous:
            done.set()

    def _on_error(message: str) -> None:
        print(message, file=sys.stderr)
        done.set()

    if not scanner.start(_on_payload, on_error=_on_error):
        return 1

    print("Scanner active. Press Ctrl+C to stop.")
    try:
        while scanner.is_running and not done.wait(timeout=0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        scanner.stop()

    recent = handler.recent_scans
    if recent:
        print("Recent scans:")
        for scan in recent:
            print(f"  {scan.student.display_name:<32} {scan.type.label:<10} "
                  f"{format_relative_time(scan.time)}")
    return 0


def _cmd_record(services: Services, args: argparse.Namespace) -> int:
    record = services.records.create_record(args.student_id, parse_timestamp(args.timestamp), args.type)
    print(f"Recorded {record.type.label} for {record.student_id} at {record.timestamp} [{record.id}]")
    return 0


def _cmd_edit_record(services: Services, args: argparse.Namespace) -> int:
    record = services.records.update_record(
        args.record_id,
        timestamp=parse_timestamp(args.timestamp) if args.timestamp else None,
        record_type=args.type,
    )
    print(f"Updated {record.id}: {record.type.label} at {record.timestamp}")
    return 0


def _cmd_delete_record(services: Services, args: argparse.Namespace) -> int:
    services.records.delete_record(args.record_id)
    print(f"Deleted {args.record_id}")
    return 0


def _cmd_report(services: Services, args: argparse.Namespace) -> int:
    day = parse_day(args.date, default=date.today())
    rows = services.reports.build_day_report(day, record_filter=args.type)
    print(f"Time records for {day.isoformat()}")
    if not rows:
        print("No records found for this date.")
        return 0

    for row in rows:
        session = row.session
        check_ins = ", ".join(format_clock(record.timestamp) for record in session.check_ins) or "-"
        check_outs = ", ".join(format_clock(record.timestamp) for record in session.check_outs) or "-"
        print(f"{row.display_name:<32} {row.student_id:<14} in: {check_ins:<24} out: {check_outs:<24} "
              f"total: {session.total_duration}")

    summary = services.reports.summary(day)
    print(
        f"Students: {summary['total_students']}  Check-ins: {summary['total_check_ins']}  "
        f"Active on {day.isoformat()}: {summary['active_today']}"
    )
    return 0


def _cmd_counts(services: Services, args: argparse.Namespace) -> int:
    end = parse_day(args.end, default=date.today())
    start = parse_day(args.start, default=end - timedelta(days=6))
    for item in services.reports.daily_check_in_counts(start, end):
        print(f"{item['date']}  {item['count']}")
    return 0


def _cmd_export(services: Services, args: argparse.Namespace) -> int:
    start = parse_day(args.start)
    end = parse_day(args.end, default=start)
    extension = "xlsx" if args.format == "xlsx" else "csv"
    destination = Path(args.output) if args.output else Path.cwd() / default_export_filename(
        start, end, extension=extension
    )

    if extension == "xlsx":
        count = services.reports.export_excel(start, end, destination)
    else:
        count = services.reports.export_csv(start, end, destination)
    print(f"Exported {count} rows to {destination}.")
    return 0


def _cmd_qr(services: Services, args: argparse.Namespace) -> int:
    student = services.students.get_by_student_id(args.student_id)
    destination = Path(args.output) if args.output else Path.cwd() / f"{student.student_id}.png"
    generate_student_qr(student.student_id, destination)
    print(f"QR code for {student.display_name} written to {destination}.")
    return 0


def _cmd_decode(services: Services, args: argparse.Namespace) -> int:
    payloads = decode_image(Path(args.image))
    if not payloads:
        print("No QR code found in image.", file=sys.stderr)
        return 1
    handler = build_scan_handler(services) if args.record else None
    for payload in payloads:
        if handler is None:
            print(payload)
        else:
            _print_scan_result(handler.handle(payload))
    return 0


def _cmd_config(services: Services, args: argparse.Namespace) -> int:
    changes = {}
    if args.cooldown is not None:
        changes["scan_cooldown_seconds"] = args.cooldown
    if args.recent_limit is not None:
        changes["recent_scan_limit"] = args.recent_limit
    if args.continuous is not None:
        changes["continuous_mode"] = args.continuous == "on"
    if changes:
        settings_module.user_settings_store.update(**changes)
        settings_module.refresh_settings_from_store()
    print(settings_module.settings.describe())
    return 0


# ----------------------------------------------------------------------
# Parser
# ----------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="time-tracking",
        description="Student check-in/check-out time tracking.",
    )
    parser.add_argument("--database", type=Path, help="SQLite database path (defaults to DATABASE_PATH).")
    parser.add_argument("--log-level", help="Logging level (defaults to LOG_LEVEL).")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create or migrate the database.").set_defaults(handler=_cmd_init)

    create_admin = sub.add_parser("create-admin", help="Create the default admin account or reset its password.")
    create_admin.add_argument("--password")
    create_admin.set_defaults(handler=_cmd_create_admin)

    add_admin = sub.add_parser("add-admin", help="Create an additional admin or staff account.")
    add_admin.add_argument("username")
    add_admin.add_argument("--name", required=True)
    add_admin.add_argument("--email", required=True)
    add_admin.add_argument("--role", choices=("admin", "staff"), default="staff")
    add_admin.add_argument("--password")
    add_admin.set_defaults(handler=_cmd_add_admin)

    add_student = sub.add_parser("add-student", help="Register a student.")
    add_student.add_argument("student_id")
    add_student.add_argument("--last-name", required=True)
    add_student.add_argument("--first-name", required=True)
    add_student.add_argument("--middle-name", default="")
    add_student.add_argument("--year-level", default="")
    add_student.add_argument("--course", default="")
    add_student.add_argument("--status", choices=("active", "inactive"), default="active")
    add_student.set_defaults(handler=_cmd_add_student)

    sub.add_parser("students", help="List registered students.").set_defaults(handler=_cmd_students)

    scan = sub.add_parser("scan", help="Process one scanned QR payload.")
    scan.add_argument("payload")
    scan.set_defaults(handler=_cmd_scan)

    sub.add_parser("watch", help="Scan QR codes from the camera.").set_defaults(handler=_cmd_watch)

    record = sub.add_parser("record", help="Add a time record manually.")
    record.add_argument("student_id")
    record.add_argument("timestamp", help="YYYY-MM-DD HH:MM[:SS]")
    record.add_argument("type", choices=("in", "out"))
    record.set_defaults(handler=_cmd_record)

    edit_record = sub.add_parser("edit-record", help="Change a time record's timestamp or type.")
    edit_record.add_argument("record_id")
    edit_record.add_argument("--timestamp")
    edit_record.add_argument("--type", choices=("in", "out"))
    edit_record.set_defaults(handler=_cmd_edit_record)

    delete_record = sub.add_parser("delete-record", help="Delete a time record.")
    delete_record.add_argument("record_id")
    delete_record.set_defaults(handler=_cmd_delete_record)

    report = sub.add_parser("report", help="Paired check-ins/check-outs and totals for one day.")
    report.add_argument("--date")
    report.add_argument("--type", choices=("all", "in", "out"), default="all")
    report.set_defaults(handler=_cmd_report)

    counts = sub.add_parser("counts", help="Unique students checked in per day.")
    counts.add_argument("--start")
    counts.add_argument("--end")
    counts.set_defaults(handler=_cmd_counts)

    export = sub.add_parser("export", help="Export time records for a date range.")
    export.add_argument("--from", dest="start", required=True)
    export.add_argument("--to", dest="end")
    export.add_argument("--format", choices=("csv", "xlsx"), default="csv")
    export.add_argument("--output")
    export.set_defaults(handler=_cmd_export)

    qr = sub.add_parser("qr", help="Generate a QR code for a student.")
    qr.add_argument("student_id")
    qr.add_argument("--output")
    qr.set_defaults(handler=_cmd_qr)

    decode = sub.add_parser("decode", help="Read QR codes from an image file.")
    decode.add_argument("image")
    decode.add_argument("--record", action="store_true", help="Treat each code as a scan.")
    decode.set_defaults(handler=_cmd_decode)

    config = sub.add_parser("config", help="Show or change scanner preferences.")
    config.add_argument("--cooldown", type=float)
    config.add_argument("--recent-limit", type=int)
    config.add_argument("--continuous", choices=("on", "off"))
    config.set_defaults(handler=_cmd_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = settings_module.settings
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug(settings.describe())

    try:
        services = build_services(args.database or settings.database_path)
        return args.handler(services, args)
    except (TimeTrackingError, InvalidDateInput, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
