from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from time_tracking_app.errors import InvalidRecord
from time_tracking_app.models import PairedSession, RecordType, SessionPair, TimeRecord


def pair_and_sum(records: Iterable[TimeRecord], *, student_id: str | None = None) -> PairedSession:
    """Pair one student's check-ins with check-outs for a single day and total the time.

    Each check-in, taken in chronological order, is matched with the earliest
    check-out that is strictly later and not yet used by an earlier check-in.
    Check-ins without such a check-out stay open; check-outs that no check-in
    claims are reported but add no time.
    """
    items = list(records)
    owner = _resolve_owner(items, student_id)
    _ensure_single_day(items)

    check_ins: list[TimeRecord] = []
    check_outs: list[TimeRecord] = []
    for record in items:
        record.validate()
        if record.type is RecordType.IN:
            check_ins.append(record)
        else:
            check_outs.append(record)

    check_ins.sort(key=TimeRecord.sort_key)
    check_outs.sort(key=TimeRecord.sort_key)

    available = list(check_outs)
    pairs: list[SessionPair] = []
    unpaired_check_ins: list[TimeRecord] = []
    elapsed = timedelta(0)

    for check_in in check_ins:
        match_index = next(
            (index for index, candidate in enumerate(available) if candidate.timestamp > check_in.timestamp),
            None,
        )
        if match_index is None:
            unpaired_check_ins.append(check_in)
            continue

        check_out = available.pop(match_index)
        pair = SessionPair(check_in=check_in, check_out=check_out)
        pairs.append(pair)
        elapsed += pair.duration

    return PairedSession(
        student_id=owner,
        check_ins=check_ins,
        check_outs=check_outs,
        pairs=pairs,
        unpaired_check_ins=unpaired_check_ins,
        unpaired_check_outs=available,
        elapsed=elapsed,
    )


def _resolve_owner(records: list[TimeRecord], student_id: str | None) -> str:
    owners = {record.student_id for record in records}
    if student_id is not None:
        owners.add(student_id)
    if len(owners) > 1:
        raise InvalidRecord(
            "Records for more than one student were passed for pairing: " + ", ".join(sorted(owners))
        )
    return owners.pop() if owners else ""


def _ensure_single_day(records: list[TimeRecord]) -> None:
    days = {record.date for record in records}
    if len(days) > 1:
        raise InvalidRecord(
            "Records from more than one day were passed for pairing: " + ", ".join(sorted(days))
        )
