from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime

from time_tracking_app.data import Database
from time_tracking_app.errors import InvalidRecord, RecordNotFound
from time_tracking_app.models import RecordType, TimeRecord, to_local_naive, truncate_to_millis
from time_tracking_app.services.scan_classifier import classify

logger = logging.getLogger(__name__)

_COLUMNS = "sequence, id, student_id, timestamp, type, date"


def _as_day(value: date | str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError as exc:
        raise InvalidRecord(f"Dates must use the YYYY-MM-DD format, got {value!r}.") from exc


def _serialize_timestamp(value: datetime) -> str:
    return truncate_to_millis(value).isoformat(timespec="milliseconds")


def _row_to_record(row: sqlite3.Row) -> TimeRecord:
    try:
        timestamp = to_local_naive(datetime.fromisoformat(row["timestamp"]))
    except (TypeError, ValueError) as exc:
        raise InvalidRecord(f"Stored time record {row['id']} has an unreadable timestamp.") from exc

    return TimeRecord(
        id=row["id"],
        student_id=row["student_id"],
        timestamp=timestamp,
        type=RecordType.parse(row["type"]),
        date=row["date"],
        sequence=int(row["sequence"]),
    )


class TimeRecordService:
    def __init__(self, database: Database) -> None:
        self._database = database

    def add_record(self, record: TimeRecord, *, connection: sqlite3.Connection | None = None) -> TimeRecord:
        record.validate()
        if connection is not None:
            return self._insert(connection, record)
        with self._database.connect() as own_connection:
            return self._insert(own_connection, record)

    def create_record(
        self,
        student_id: str,
        timestamp: datetime,
        record_type: RecordType | str,
    ) -> TimeRecord:
        """Manual entry by an administrator; the record date follows the timestamp."""
        record = self.add_record(TimeRecord.create(student_id, timestamp, record_type))
        logger.info(
            "Manually recorded %s for %s at %s",
            record.type.value,
            record.student_id,
            record.timestamp.isoformat(timespec="seconds"),
        )
        return record

    def get_record(self, record_id: str) -> TimeRecord:
        with self._database.connect() as connection:
            row = connection.execute(
                f"SELECT {_COLUMNS} FROM time_records WHERE id = ?",
                (record_id,),
            ).fetchone()

        if not row:
            raise RecordNotFound(record_id)
        return _row_to_record(row)

    def list_records(
        self,
        *,
        day: date | str | None = None,
        student_id: str | None = None,
    ) -> list[TimeRecord]:
        """Records matching the optional filters, newest first."""
        conditions: list[str] = []
        params: list[str] = []

        if day is not None:
            conditions.append("date = ?")
            params.append(_as_day(day))

        if student_id is not None:
            conditions.append("student_id = ?")
            params.append(student_id.strip())

        sql = f"SELECT {_COLUMNS} FROM time_records"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY timestamp DESC, sequence DESC"

        with self._database.connect() as connection:
            rows = connection.execute(sql, tuple(params)).fetchall()

        return [_row_to_record(row) for row in rows]

    def list_records_between(self, start: date | str, end: date | str) -> list[TimeRecord]:
        start_day, end_day = _as_day(start), _as_day(end)
        if start_day > end_day:
            start_day, end_day = end_day, start_day

        with self._database.connect() as connection:
            rows = connection.execute(
                f"""
                SELECT {_COLUMNS}
                  FROM time_records
                 WHERE date >= ?
                   AND date <= ?
              ORDER BY timestamp ASC, sequence ASC
                """,
                (start_day, end_day),
            ).fetchall()

        return [_row_to_record(row) for row in rows]

    def records_for_student_on(
        self,
        student_id: str,
        day: date | str,
        *,
        connection: sqlite3.Connection | None = None,
    ) -> list[TimeRecord]:
        params = (student_id.strip(), _as_day(day))
        sql = (
            f"SELECT {_COLUMNS} FROM time_records "
            "WHERE student_id = ? AND date = ? ORDER BY timestamp ASC, sequence ASC"
        )

        if connection is not None:
            rows = connection.execute(sql, params).fetchall()
        else:
            with self._database.connect() as own_connection:
                rows = own_connection.execute(sql, params).fetchall()

        return [_row_to_record(row) for row in rows]

    def next_record_type(self, student_id: str, day: date | str) -> RecordType:
        return classify(self.records_for_student_on(student_id, day))

    def record_scan(self, student_id: str, moment: datetime) -> TimeRecord:
        """Classify and store a scan inside one write transaction.

        ``BEGIN IMMEDIATE`` takes SQLite's write lock before the day's records
        are read, so two scans for the same student cannot both observe the
        same latest record.
        """
        moment = truncate_to_millis(to_local_naive(moment))
        day = moment.date()

        with self._database.connect() as connection:
            connection.execute("BEGIN IMMEDIATE")
            existing = self.records_for_student_on(student_id, day, connection=connection)
            record_type = classify(existing)
            record = TimeRecord.create(student_id, moment, record_type)
            return self._insert(connection, record)

    def count_check_ins(self) -> int:
        with self._database.connect() as connection:
            row = connection.execute(
                "SELECT COUNT(*) FROM time_records WHERE type = ?",
                (RecordType.IN.value,),
            ).fetchone()
        return int(row[0] or 0)

    def update_record(
        self,
        record_id: str,
        *,
        timestamp: datetime | None = None,
        record_type: RecordType | str | None = None,
    ) -> TimeRecord:
        current = self.get_record(record_id)

        updated = TimeRecord.create(
            current.student_id,
            timestamp if timestamp is not None else current.timestamp,
            record_type if record_type is not None else current.type,
            record_id=current.id,
        )
        updated.sequence = current.sequence

        with self._database.connect() as connection:
            connection.execute(
                """
                UPDATE time_records
                   SET timestamp = ?,
                       type = ?,
                       date = ?,
                       updated_at = datetime('now')
                 WHERE id = ?
                """,
                (
                    _serialize_timestamp(updated.timestamp),
                    updated.type.value,
                    updated.date,
                    record_id,
                ),
            )

        logger.info("Updated time record %s", record_id)
        return updated

    def delete_record(self, record_id: str) -> None:
        with self._database.connect() as connection:
            cursor = connection.execute("DELETE FROM time_records WHERE id = ?", (record_id,))
            if cursor.rowcount == 0:
                raise RecordNotFound(record_id)
        logger.info("Deleted time record %s", record_id)

    @staticmethod
    def _insert(connection: sqlite3.Connection, record: TimeRecord) -> TimeRecord:
        cursor = connection.execute(
            """
            INSERT INTO time_records (id, student_id, timestamp, type, date)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.student_id,
                _serialize_timestamp(record.timestamp),
                record.type.value,
                record.date,
            ),
        )
        record.sequence = int(cursor.lastrowid)
        return record
