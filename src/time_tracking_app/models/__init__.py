from .timekeeping import (
    DEFAULT_PHOTO_URL,
    UNKNOWN_STUDENT_LABEL,
    AdminUser,
    DayReportRow,
    DurationTotal,
    PairedSession,
    RecentScan,
    RecordType,
    ScanResult,
    SessionPair,
    Student,
    StudentStatus,
    TimeRecord,
    new_identifier,
    to_local_naive,
    truncate_to_millis,
)

__all__ = [
    "DEFAULT_PHOTO_URL",
    "UNKNOWN_STUDENT_LABEL",
    "AdminUser",
    "DayReportRow",
    "DurationTotal",
    "PairedSession",
    "RecentScan",
    "RecordType",
    "ScanResult",
    "SessionPair",
    "Student",
    "StudentStatus",
    "TimeRecord",
    "new_identifier",
    "to_local_naive",
    "truncate_to_millis",
]
