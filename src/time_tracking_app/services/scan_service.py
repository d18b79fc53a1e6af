from __future__ import annotations

import logging
import threading
import unicodedata
from collections import deque
from datetime import datetime
from typing import Callable

from time_tracking_app.errors import InvalidScanPayload, StudentNotEligible, StudentNotFound
from time_tracking_app.models import RecentScan, RecordType, ScanResult, to_local_naive
from time_tracking_app.services.student_service import StudentService
from time_tracking_app.services.time_record_service import TimeRecordService

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 2.0
DEFAULT_RECENT_LIMIT = 10


def parse_payload(raw: bytes | str | None) -> tuple[str, str | None]:
    """Split a QR payload into ``(student_id, name)``.

    Payloads are either a bare student ID or ``"<student_id>|<name>"``.
    """
    if not raw:
        raise InvalidScanPayload("QR code is empty.")

    if isinstance(raw, bytes):
        text = raw.decode("utf-8", errors="ignore")
    else:
        text = raw

    cleaned = unicodedata.normalize("NFC", text).strip()
    name: str | None = None
    if "|" in cleaned:
        code_part, name_part = cleaned.split("|", 1)
        cleaned = code_part.strip()
        name = name_part.strip() or None

    if not cleaned:
        raise InvalidScanPayload("QR code missing student ID.")
    return cleaned, name


class ScanHandler:
    """Turns scanned QR payloads into stored check-in/check-out records."""

    def __init__(
        self,
        students: StudentService,
        records: TimeRecordService,
        *,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
        continuous: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._students = students
        self._records = records
        self._cooldown_seconds = max(0.0, float(cooldown_seconds))
        self._recent: deque[RecentScan] = deque(maxlen=max(1, int(recent_limit)))
        self._continuous = continuous
        self._clock = clock
        self._last_scan_at: datetime | None = None
        self._state_lock = threading.Lock()
        self._key_locks: dict[tuple[str, str], threading.Lock] = {}

    @property
    def recent_scans(self) -> list[RecentScan]:
        """Most recent successful scans, newest first."""
        with self._state_lock:
            return list(self._recent)

    @property
    def continuous(self) -> bool:
        return self._continuous

    @continuous.setter
    def continuous(self, value: bool) -> None:
        self._continuous = bool(value)

    def handle(self, payload: bytes | str, *, now: datetime | None = None) -> ScanResult:
        student_id, _ = parse_payload(payload)
        moment = to_local_naive(now or self._clock())

        if self._in_cooldown(moment):
            logger.debug("Ignoring scan of %s during cooldown", student_id)
            return ScanResult(
                status="cooldown",
                message="Scan ignored; please wait before scanning again.",
                payload=student_id,
                continuous=self._continuous,
            )

        student = self._students.find_by_student_id(student_id)
        if student is None:
            logger.info("Rejected scan for unknown student %s", student_id)
            raise StudentNotFound(student_id)

        if not student.is_active:
            logger.info("Rejected scan for inactive student %s", student_id)
            raise StudentNotEligible(student.student_id, f"{student.first_name} {student.last_name}")

        try:
            with self._lock_for(student.student_id, moment):
                record = self._records.record_scan(student.student_id, moment)
        except Exception:
            logger.exception("Error processing scan for %s", student.student_id)
            raise

        with self._state_lock:
            self._recent.appendleft(RecentScan(student=student, type=record.type, time=record.timestamp))

        verb = "in" if record.type is RecordType.IN else "out"
        logger.info("%s checked %s at %s", student.student_id, verb, record.timestamp.isoformat(timespec="seconds"))
        return ScanResult(
            status="recorded",
            message=f"{student.first_name} {student.last_name} checked {verb} successfully!",
            payload=student_id,
            student=student,
            record=record,
            continuous=self._continuous,
        )

    def _in_cooldown(self, moment: datetime) -> bool:
        with self._state_lock:
            last = self._last_scan_at
            if last is not None and 0 <= (moment - last).total_seconds() < self._cooldown_seconds:
                return True
            self._last_scan_at = moment
            return False

    def _lock_for(self, student_id: str, moment: datetime) -> threading.Lock:
        key = (student_id, moment.date().isoformat())
        with self._state_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                # Keys for earlier dates can no longer be contended.
                for stale in [k for k in self._key_locks if k[1] < key[1]]:
                    del self._key_locks[stale]
                lock = self._key_locks[key] = threading.Lock()
            return lock
