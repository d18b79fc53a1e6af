from __future__ import annotations


class TimeTrackingError(RuntimeError):
    """Base class for errors reported back to the caller."""


class StudentNotFound(TimeTrackingError):
    """Raised when no student matches the given identifier."""

    def __init__(self, student_id: str) -> None:
        super().__init__(f"Student not found with ID: {student_id}")
        self.student_id = student_id


class StudentNotEligible(TimeTrackingError):
    """Raised when an inactive student tries to check in or out."""

    def __init__(self, student_id: str, display_name: str | None = None) -> None:
        who = display_name or student_id
        super().__init__(f"{who} is inactive and cannot check in/out.")
        self.student_id = student_id


class DuplicateStudentError(TimeTrackingError):
    """Raised when a student ID is already registered."""


class RecordNotFound(TimeTrackingError):
    """Raised when a time record targeted by an edit or delete is missing."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Time record not found: {record_id}")
        self.record_id = record_id


class InvalidRecord(TimeTrackingError, ValueError):
    """Raised for malformed time records (bad type, timestamp or date)."""


class InvalidScanPayload(TimeTrackingError, ValueError):
    """Raised when a scanned QR payload carries no student ID."""


class DuplicateAdminError(TimeTrackingError):
    """Raised when a username or email is already taken."""


class AdminNotFound(TimeTrackingError):
    pass


class InvalidCredentials(TimeTrackingError):
    pass
