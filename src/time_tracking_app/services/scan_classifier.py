from __future__ import annotations

from typing import Iterable

from time_tracking_app.errors import InvalidRecord
from time_tracking_app.models import RecordType, TimeRecord


def latest_record(records: Iterable[TimeRecord]) -> TimeRecord | None:
    """Return the most recent record, using the insertion sequence to break timestamp ties."""
    latest: TimeRecord | None = None
    for record in records:
        if record.timestamp is None:
            raise InvalidRecord(f"Time record {record.id} has no timestamp.")
        if latest is None or record.sort_key() >= latest.sort_key():
            latest = record
    return latest


def classify(records: Iterable[TimeRecord]) -> RecordType:
    """Decide whether the next scan for a student is a check-in or a check-out.

    ``records`` are the student's records for the day being scanned. With no
    records the scan is a check-in; otherwise it is the opposite of the most
    recent record's type.
    """
    latest = latest_record(records)
    if latest is None:
        return RecordType.IN
    return RecordType.parse(latest.type).opposite()
