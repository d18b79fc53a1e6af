from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from time_tracking_app.errors import InvalidRecord

DEFAULT_PHOTO_URL = "/placeholder.svg?height=100&width=100"
UNKNOWN_STUDENT_LABEL = "Unknown Student"


def new_identifier() -> str:
    return uuid.uuid4().hex


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


class RecordType(str, Enum):
    IN = "in"
    OUT = "out"

    @classmethod
    def parse(cls, value: "RecordType | str | None") -> "RecordType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidRecord(f"Record type must be 'in' or 'out', got {value!r}.")

    @property
    def label(self) -> str:
        return "Check In" if self is RecordType.IN else "Check Out"

    def opposite(self) -> "RecordType":
        return RecordType.OUT if self is RecordType.IN else RecordType.IN


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(slots=True)
class Student:
    student_id: str
    last_name: str
    first_name: str
    middle_name: str = ""
    year_level: str = ""
    course: str = ""
    status: StudentStatus = StudentStatus.ACTIVE
    photo_url: str = DEFAULT_PHOTO_URL
    id: str = field(default_factory=new_identifier)

    @property
    def is_active(self) -> bool:
        return self.status is StudentStatus.ACTIVE

    @property
    def display_name(self) -> str:
        name = f"{self.last_name}, {self.first_name}"
        if self.middle_name:
            name = f"{name} {self.middle_name[0]}."
        return name

    @property
    def sort_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"

    @property
    def initials(self) -> str:
        return f"{self.first_name[:1]}{self.last_name[:1]}".upper()


@dataclass(slots=True)
class TimeRecord:
    """A single check-in or check-out event.

    ``date`` is the ``YYYY-MM-DD`` calendar day of ``timestamp`` and is what
    records are bucketed by. ``sequence`` is assigned by storage on insert and
    orders records whose timestamps are identical.
    """

    student_id: str
    timestamp: datetime
    type: RecordType
    date: str
    id: str = field(default_factory=new_identifier)
    sequence: Optional[int] = None

    @classmethod
    def create(
        cls,
        student_id: str,
        timestamp: datetime,
        record_type: RecordType | str,
        *,
        record_id: str | None = None,
    ) -> "TimeRecord":
        moment = truncate_to_millis(to_local_naive(timestamp))
        record = cls(
            student_id=student_id.strip(),
            timestamp=moment,
            type=RecordType.parse(record_type),
            date=moment.date().isoformat(),
            id=record_id or new_identifier(),
        )
        record.validate()
        return record

    def validate(self) -> None:
        if not self.student_id:
            raise InvalidRecord("Time record is missing a student ID.")
        if not isinstance(self.timestamp, datetime):
            raise InvalidRecord(f"Time record {self.id} has no valid timestamp.")
        if self.timestamp.tzinfo is not None:
            raise InvalidRecord(f"Time record {self.id} has a timezone-aware timestamp; store local time.")
        if not isinstance(self.type, RecordType):
            raise InvalidRecord(f"Time record {self.id} has no valid type.")
        expected = self.timestamp.date().isoformat()
        if self.date != expected:
            raise InvalidRecord(
                f"Time record {self.id} is dated {self.date} but its timestamp falls on {expected}."
            )

    def sort_key(self) -> tuple[datetime, int]:
        return self.timestamp, self.sequence if self.sequence is not None else 0


@dataclass(frozen=True, slots=True)
class DurationTotal:
    hours: int = 0
    minutes: int = 0

    @classmethod
    def from_timedelta(cls, value: timedelta) -> "DurationTotal":
        total_seconds = max(0, int(value.total_seconds()))
        hours, remainder = divmod(total_seconds, 3600)
        return cls(hours=hours, minutes=remainder // 60)

    @property
    def total_minutes(self) -> int:
        return self.hours * 60 + self.minutes

    def __str__(self) -> str:
        return f"{self.hours}h {self.minutes}m"


@dataclass(frozen=True, slots=True)
class SessionPair:
    check_in: TimeRecord
    check_out: TimeRecord

    @property
    def duration(self) -> timedelta:
        return self.check_out.timestamp - self.check_in.timestamp


@dataclass(slots=True)
class PairedSession:
    student_id: str
    check_ins: list[TimeRecord] = field(default_factory=list)
    check_outs: list[TimeRecord] = field(default_factory=list)
    pairs: list[SessionPair] = field(default_factory=list)
    unpaired_check_ins: list[TimeRecord] = field(default_factory=list)
    unpaired_check_outs: list[TimeRecord] = field(default_factory=list)
    elapsed: timedelta = timedelta(0)

    @property
    def total_duration(self) -> DurationTotal:
        return DurationTotal.from_timedelta(self.elapsed)

    @property
    def is_present(self) -> bool:
        """True while the latest check-in has no check-out after it."""
        if not self.check_ins:
            return False
        return self.check_ins[-1] in self.unpaired_check_ins


@dataclass(slots=True)
class DayReportRow:
    student_id: str
    student: Optional[Student]
    session: PairedSession

    @property
    def display_name(self) -> str:
        return self.student.display_name if self.student else UNKNOWN_STUDENT_LABEL


@dataclass(slots=True)
class AdminUser:
    username: str
    name: str
    email: str
    role: str = "admin"
    password_hash: str = field(default="", repr=False)
    id: str = field(default_factory=new_identifier)

    def public_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }


@dataclass(slots=True)
class RecentScan:
    student: Student
    type: RecordType
    time: datetime


@dataclass(slots=True)
class ScanResult:
    status: str
    message: str
    payload: str
    student: Optional[Student] = None
    record: Optional[TimeRecord] = None
    continuous: bool = True

    @property
    def accepted(self) -> bool:
        return self.status == "recorded"
