from __future__ import annotations

import os
import tempfile
from datetime import datetime

import pytest

# Keep user settings written during the test run out of the real home directory.
os.environ.setdefault("TIME_TRACKING_HOME", tempfile.mkdtemp(prefix="time-tracking-tests-"))

from time_tracking_app.data import Database  # noqa: E402
from time_tracking_app.models import RecordType, Student, StudentStatus, TimeRecord  # noqa: E402
from time_tracking_app.services import ReportService, StudentService, TimeRecordService  # noqa: E402


@pytest.fixture
def database(tmp_path):
    database = Database(tmp_path / "time_tracking.db")
    database.initialize()
    return database


@pytest.fixture
def student_service(database):
    return StudentService(database)


@pytest.fixture
def record_service(database):
    return TimeRecordService(database)


@pytest.fixture
def report_service(student_service, record_service):
    return ReportService(student_service, record_service)


@pytest.fixture
def alice(student_service):
    return student_service.create_student(
        Student(
            student_id="2024-0001",
            last_name="Reyes",
            first_name="Alice",
            middle_name="Marie",
            year_level="2nd Year",
            course="BSCS",
        )
    )


@pytest.fixture
def inactive_student(student_service):
    return student_service.create_student(
        Student(
            student_id="2024-0099",
            last_name="Cruz",
            first_name="Ben",
            year_level="4th Year",
            course="BSIT",
            status=StudentStatus.INACTIVE,
        )
    )


def make_record(kind: str, clock: str, *, student_id: str = "2024-0001", day: str = "2025-03-10") -> TimeRecord:
    return TimeRecord.create(student_id, datetime.fromisoformat(f"{day}T{clock}"), RecordType(kind))
