from __future__ import annotations

import csv
import logging
from collections import defaultdict
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Iterable

from openpyxl import Workbook

from time_tracking_app.models import DayReportRow, RecordType, Student, TimeRecord
from time_tracking_app.services.session_pairing import pair_and_sum
from time_tracking_app.services.student_service import StudentService
from time_tracking_app.services.time_record_service import TimeRecordService

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Date",
    "Time",
    "Type",
    "Student ID",
    "Last Name",
    "First Name",
    "Middle Name",
    "Year Level",
    "Course",
]

RECORD_FILTERS = ("all", "in", "out")


def _coerce_day(value: date | str) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value.strip())


def default_export_filename(start: date | str, end: date | str | None = None, *, extension: str = "csv") -> str:
    start_day = _coerce_day(start)
    end_day = _coerce_day(end) if end is not None else start_day
    stub = f"time-records-{start_day.isoformat()}"
    if end_day != start_day:
        stub += f"-to-{end_day.isoformat()}"
    return f"{stub}.{extension}"


def group_day_report(
    records: Iterable[TimeRecord],
    students: dict[str, Student],
) -> list[DayReportRow]:
    """Pair each student's records and order rows by name, unknown students last."""
    grouped: dict[str, list[TimeRecord]] = defaultdict(list)
    for record in records:
        grouped[record.student_id].append(record)

    rows = [
        DayReportRow(
            student_id=student_id,
            student=students.get(student_id),
            session=pair_and_sum(student_records, student_id=student_id),
        )
        for student_id, student_records in grouped.items()
    ]

    rows.sort(
        key=lambda row: (
            row.student is None,
            row.student.sort_name.lower() if row.student else "",
            row.student_id,
        )
    )
    return rows


class ReportService:
    def __init__(self, students: StudentService, records: TimeRecordService) -> None:
        self._students = students
        self._records = records

    def build_day_report(self, day: date | str, *, record_filter: str = "all") -> list[DayReportRow]:
        if record_filter not in RECORD_FILTERS:
            raise ValueError(f"Filter must be one of: {', '.join(RECORD_FILTERS)}")

        records = self._records.list_records(day=day)
        if record_filter != "all":
            wanted = RecordType(record_filter)
            records = [record for record in records if record.type is wanted]

        return group_day_report(records, self._students.students_by_business_key())

    def daily_check_in_counts(self, start: date | str, end: date | str) -> list[dict[str, Any]]:
        """Unique students with at least one check-in, for every day in the range."""
        start_day, end_day = sorted((_coerce_day(start), _coerce_day(end)))
        checked_in: dict[str, set[str]] = defaultdict(set)
        for record in self._records.list_records_between(start_day, end_day):
            if record.type is RecordType.IN:
                checked_in[record.date].add(record.student_id)

        counts: list[dict[str, Any]] = []
        current = start_day
        while current <= end_day:
            key = current.isoformat()
            counts.append({"date": key, "count": len(checked_in.get(key, ()))})
            current += timedelta(days=1)
        return counts

    def summary(self, today: date | str | None = None) -> dict[str, int]:
        today_key = _coerce_day(today).isoformat() if today is not None else date.today().isoformat()
        active_today = {
            record.student_id
            for record in self._records.list_records(day=today_key)
            if record.type is RecordType.IN
        }
        return {
            "total_students": self._students.count_students(),
            "total_check_ins": self._records.count_check_ins(),
            "active_today": len(active_today),
        }

    def build_export_rows(self, start: date | str, end: date | str) -> list[list[str]]:
        students = self._students.students_by_business_key()
        rows: list[list[str]] = []
        for record in self._records.list_records_between(start, end):
            student = students.get(record.student_id)
            rows.append(
                [
                    record.timestamp.date().isoformat(),
                    record.timestamp.strftime("%H:%M:%S"),
                    record.type.label,
                    record.student_id,
                    student.last_name if student else "Unknown",
                    student.first_name if student else "Unknown",
                    student.middle_name if student else "",
                    student.year_level if student else "",
                    student.course if student else "",
                ]
            )
        return rows

    def export_csv(self, start: date | str, end: date | str, destination: Path) -> int:
        rows = self.build_export_rows(start, end)
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        with destination.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(EXPORT_HEADERS)
            writer.writerows(rows)

        logger.info("Exported %d time records to %s", len(rows), destination)
        return len(rows)

    def export_excel(self, start: date | str, end: date | str, destination: Path) -> int:
        rows = self.build_export_rows(start, end)
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        wb = Workbook()
        sheet = wb.active
        sheet.title = "Time Records"
        sheet.append(EXPORT_HEADERS)
        for row in rows:
            sheet.append(row)
        wb.save(destination)

        logger.info("Exported %d time records to %s", len(rows), destination)
        return len(rows)
