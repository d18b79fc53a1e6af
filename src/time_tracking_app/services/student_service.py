from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace

from time_tracking_app.data import Database
from time_tracking_app.errors import DuplicateStudentError, StudentNotFound
from time_tracking_app.models import Student, StudentStatus

logger = logging.getLogger(__name__)

_COLUMNS = "id, student_id, last_name, first_name, middle_name, year_level, course, status, photo_url"

_EDITABLE_FIELDS = {
    "student_id",
    "last_name",
    "first_name",
    "middle_name",
    "year_level",
    "course",
    "status",
    "photo_url",
}


def _row_to_student(row: sqlite3.Row) -> Student:
    return Student(
        id=row["id"],
        student_id=row["student_id"],
        last_name=row["last_name"],
        first_name=row["first_name"],
        middle_name=row["middle_name"] or "",
        year_level=row["year_level"] or "",
        course=row["course"] or "",
        status=StudentStatus(row["status"]),
        photo_url=row["photo_url"],
    )


class StudentService:
    def __init__(self, database: Database) -> None:
        self._database = database

    def create_student(self, student: Student) -> Student:
        cleaned = self._clean(student)

        with self._database.connect() as connection:
            existing = connection.execute(
                "SELECT id FROM students WHERE student_id = ?",
                (cleaned.student_id,),
            ).fetchone()

            if existing:
                raise DuplicateStudentError(f"Student ID already exists: {cleaned.student_id}")

            connection.execute(
                f"""
                INSERT INTO students ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    cleaned.id,
                    cleaned.student_id,
                    cleaned.last_name,
                    cleaned.first_name,
                    cleaned.middle_name,
                    cleaned.year_level,
                    cleaned.course,
                    cleaned.status.value,
                    cleaned.photo_url,
                ),
            )

        logger.info("Registered student %s (%s)", cleaned.student_id, cleaned.display_name)
        return cleaned

    def get_student(self, record_id: str) -> Student:
        with self._database.connect() as connection:
            row = connection.execute(
                f"SELECT {_COLUMNS} FROM students WHERE id = ?",
                (record_id,),
            ).fetchone()

        if not row:
            raise StudentNotFound(record_id)
        return _row_to_student(row)

    def find_by_student_id(self, student_id: str) -> Student | None:
        with self._database.connect() as connection:
            row = connection.execute(
                f"SELECT {_COLUMNS} FROM students WHERE student_id = ?",
                (student_id.strip(),),
            ).fetchone()

        return _row_to_student(row) if row else None

    def get_by_student_id(self, student_id: str) -> Student:
        student = self.find_by_student_id(student_id)
        if student is None:
            raise StudentNotFound(student_id)
        return student

    def list_students(self, *, status: StudentStatus | None = None) -> list[Student]:
        sql = f"SELECT {_COLUMNS} FROM students"
        params: tuple = ()
        if status is not None:
            sql += " WHERE status = ?"
            params = (status.value,)
        sql += " ORDER BY LOWER(last_name) ASC, LOWER(first_name) ASC"

        with self._database.connect() as connection:
            rows = connection.execute(sql, params).fetchall()

        return [_row_to_student(row) for row in rows]

    def students_by_business_key(self) -> dict[str, Student]:
        return {student.student_id: student for student in self.list_students()}

    def count_students(self) -> int:
        with self._database.connect() as connection:
            return int(connection.execute("SELECT COUNT(*) FROM students").fetchone()[0])

    def update_student(self, record_id: str, **changes) -> Student:
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown student fields: {', '.join(sorted(unknown))}")

        current = self.get_student(record_id)
        if "status" in changes:
            changes["status"] = StudentStatus(changes["status"])
        updated = self._clean(replace(current, **changes))

        with self._database.connect() as connection:
            if updated.student_id != current.student_id:
                clash = connection.execute(
                    "SELECT id FROM students WHERE student_id = ? AND id <> ?",
                    (updated.student_id, record_id),
                ).fetchone()
                if clash:
                    raise DuplicateStudentError(f"Student ID already exists: {updated.student_id}")

            connection.execute(
                """
                UPDATE students
                   SET student_id = ?,
                       last_name = ?,
                       first_name = ?,
                       middle_name = ?,
                       year_level = ?,
                       course = ?,
                       status = ?,
                       photo_url = ?,
                       updated_at = datetime('now')
                 WHERE id = ?
                """,
                (
                    updated.student_id,
                    updated.last_name,
                    updated.first_name,
                    updated.middle_name,
                    updated.year_level,
                    updated.course,
                    updated.status.value,
                    updated.photo_url,
                    record_id,
                ),
            )

        return updated

    def set_status(self, record_id: str, status: StudentStatus) -> Student:
        return self.update_student(record_id, status=status)

    def delete_student(self, record_id: str) -> None:
        # Time records are kept; they render as an unknown student afterwards.
        with self._database.connect() as connection:
            cursor = connection.execute("DELETE FROM students WHERE id = ?", (record_id,))
            if cursor.rowcount == 0:
                raise StudentNotFound(record_id)
        logger.info("Deleted student record %s", record_id)

    @staticmethod
    def _clean(student: Student) -> Student:
        cleaned = replace(
            student,
            student_id=student.student_id.strip(),
            last_name=student.last_name.strip(),
            first_name=student.first_name.strip(),
            middle_name=(student.middle_name or "").strip(),
            year_level=(student.year_level or "").strip(),
            course=(student.course or "").strip(),
        )
        if not cleaned.student_id:
            raise ValueError("Student ID is required.")
        if not cleaned.last_name or not cleaned.first_name:
            raise ValueError("First and last name are required.")
        return cleaned
