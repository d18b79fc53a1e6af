import threading
from datetime import datetime, timedelta, timezone

import pytest

from time_tracking_app.errors import InvalidScanPayload, StudentNotEligible, StudentNotFound
from time_tracking_app.models import RecordType
from time_tracking_app.services import ScanHandler, parse_payload

MORNING = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def handler(student_service, record_service):
    return ScanHandler(student_service, record_service, cooldown_seconds=2, recent_limit=3)


def test_scans_alternate_between_check_in_and_check_out(handler, record_service, alice):
    first = handler.handle("2024-0001", now=MORNING)
    second = handler.handle("2024-0001", now=MORNING + timedelta(hours=3))
    third = handler.handle("2024-0001", now=MORNING + timedelta(hours=4))

    assert [first.record.type, second.record.type, third.record.type] == [
        RecordType.IN,
        RecordType.OUT,
        RecordType.IN,
    ]
    assert first.accepted
    assert first.message == "Alice Reyes checked in successfully!"
    assert second.message == "Alice Reyes checked out successfully!"

    stored = record_service.records_for_student_on("2024-0001", "2025-03-10")
    assert [record.type for record in stored] == [RecordType.IN, RecordType.OUT, RecordType.IN]
    assert all(record.date == "2025-03-10" for record in stored)


def test_new_day_starts_with_a_check_in(handler, alice):
    handler.handle("2024-0001", now=MORNING)
    next_day = handler.handle("2024-0001", now=MORNING + timedelta(days=1))

    assert next_day.record.type is RecordType.IN
    assert next_day.record.date == "2025-03-11"


def test_inactive_student_is_rejected_without_a_record(handler, record_service, inactive_student):
    with pytest.raises(StudentNotEligible) as excinfo:
        handler.handle("2024-0099", now=MORNING)

    assert "Ben Cruz is inactive" in str(excinfo.value)
    assert record_service.list_records(student_id="2024-0099") == []
    assert handler.recent_scans == []


def test_unknown_student_is_rejected(handler, record_service):
    with pytest.raises(StudentNotFound):
        handler.handle("9999-0000", now=MORNING)

    assert record_service.list_records() == []


def test_scans_inside_cooldown_are_ignored(handler, record_service, alice):
    handler.handle("2024-0001", now=MORNING)
    ignored = handler.handle("2024-0001", now=MORNING + timedelta(seconds=1))
    accepted = handler.handle("2024-0001", now=MORNING + timedelta(seconds=2))

    assert ignored.status == "cooldown"
    assert ignored.record is None
    assert accepted.accepted
    assert len(record_service.list_records()) == 2


def test_recent_scans_are_bounded_and_newest_first(handler, alice):
    for step in range(5):
        handler.handle("2024-0001", now=MORNING + timedelta(minutes=step))

    recent = handler.recent_scans
    assert len(recent) == 3
    assert [scan.time for scan in recent] == [
        MORNING + timedelta(minutes=4),
        MORNING + timedelta(minutes=3),
        MORNING + timedelta(minutes=2),
    ]
    assert recent[0].type is RecordType.IN
    assert recent[0].student.student_id == "2024-0001"


def test_payload_with_name_uses_student_id_part(handler, alice):
    result = handler.handle("  2024-0001 | Alice Reyes ", now=MORNING)

    assert result.record.student_id == "2024-0001"


def test_parse_payload():
    assert parse_payload(b"2024-0001") == ("2024-0001", None)
    assert parse_payload("2024-0001|Alice Reyes") == ("2024-0001", "Alice Reyes")

    with pytest.raises(InvalidScanPayload):
        parse_payload("   ")
    with pytest.raises(InvalidScanPayload):
        parse_payload("|Alice Reyes")


def test_continuous_mode_is_reported(student_service, record_service, alice):
    handler = ScanHandler(student_service, record_service, continuous=False)

    result = handler.handle("2024-0001", now=MORNING)

    assert result.continuous is False


def test_concurrent_scans_alternate(student_service, record_service, alice):
    handler = ScanHandler(student_service, record_service, cooldown_seconds=0)
    start = threading.Barrier(6)
    errors = []

    def scan():
        start.wait()
        try:
            handler.handle("2024-0001", now=MORNING)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=scan) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stored = sorted(record_service.records_for_student_on("2024-0001", "2025-03-10"), key=lambda r: r.sequence)
    assert errors == []
    assert [record.type for record in stored] == [RecordType.IN, RecordType.OUT] * 3


def test_backdated_scan_keeps_current_day_lock(handler):
    today = handler._lock_for("2024-0001", MORNING)
    handler._lock_for("2024-0001", MORNING - timedelta(days=1))

    assert handler._lock_for("2024-0001", MORNING) is today

    handler._lock_for("2024-0001", MORNING + timedelta(days=1))
    assert handler._lock_for("2024-0001", MORNING) is not today


def test_aware_scan_time_is_stored_as_local_time(handler, alice):
    aware = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    result = handler.handle("2024-0001", now=aware)

    assert result.record.timestamp.tzinfo is None
    assert result.record.timestamp == aware.astimezone().replace(tzinfo=None)
