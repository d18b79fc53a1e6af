from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_record
from time_tracking_app.errors import InvalidRecord
from time_tracking_app.models import DurationTotal, RecordType, TimeRecord
from time_tracking_app.services import pair_and_sum


def test_two_full_sessions_add_up():
    records = [
        make_record("in", "09:00"),
        make_record("out", "12:00"),
        make_record("in", "13:00"),
        make_record("out", "17:00"),
    ]

    session = pair_and_sum(records)

    assert len(session.pairs) == 2
    assert session.total_duration == DurationTotal(hours=7, minutes=0)
    assert str(session.total_duration) == "7h 0m"
    assert session.unpaired_check_ins == []
    assert session.unpaired_check_outs == []
    assert session.student_id == "2024-0001"


def test_second_check_in_does_not_reuse_check_out():
    first_in = make_record("in", "09:00")
    second_in = make_record("in", "09:30")
    check_out = make_record("out", "10:00")

    session = pair_and_sum([first_in, second_in, check_out])

    assert len(session.pairs) == 1
    assert session.pairs[0].check_in is first_in
    assert session.pairs[0].check_out is check_out
    assert session.unpaired_check_ins == [second_in]
    assert str(session.total_duration) == "1h 0m"
    assert session.is_present


def test_lone_check_out_is_reported_unpaired():
    check_out = make_record("out", "09:00")

    session = pair_and_sum([check_out])

    assert session.pairs == []
    assert session.unpaired_check_outs == [check_out]
    assert session.total_duration == DurationTotal(0, 0)
    assert not session.is_present


def test_check_out_before_check_in_is_skipped():
    early_out = make_record("out", "08:00")
    check_in = make_record("in", "09:00")
    late_out = make_record("out", "11:45")

    session = pair_and_sum([late_out, check_in, early_out])

    assert [(pair.check_in, pair.check_out) for pair in session.pairs] == [(check_in, late_out)]
    assert session.unpaired_check_outs == [early_out]
    assert str(session.total_duration) == "2h 45m"


def test_equal_timestamps_never_pair():
    session = pair_and_sum([make_record("in", "09:00"), make_record("out", "09:00")])

    assert session.pairs == []
    assert session.total_duration.total_minutes == 0


def test_minutes_are_floored():
    check_in = make_record("in", "09:00:00")
    check_out = make_record("out", "10:15:59.999")

    session = pair_and_sum([check_in, check_out])

    assert session.total_duration == DurationTotal(hours=1, minutes=15)


def test_input_order_does_not_matter_and_result_is_repeatable():
    records = [
        make_record("out", "17:00"),
        make_record("in", "13:00"),
        make_record("out", "12:00"),
        make_record("in", "09:00"),
    ]

    first = pair_and_sum(records)
    second = pair_and_sum(records)

    assert first == second
    assert [record.timestamp for record in first.check_ins] == sorted(r.timestamp for r in first.check_ins)
    assert str(first.total_duration) == "7h 0m"


def test_each_check_out_is_used_at_most_once():
    records = [make_record("in", f"{hour:02d}:00") for hour in range(8, 12)]
    records += [make_record("out", f"{hour:02d}:30") for hour in range(8, 12, 2)]

    session = pair_and_sum(records)

    used = [pair.check_out.id for pair in session.pairs]
    assert len(used) == len(set(used))
    assert all(pair.duration > timedelta(0) for pair in session.pairs)


def test_empty_input_gives_zero_total():
    session = pair_and_sum([], student_id="2024-0001")

    assert session.student_id == "2024-0001"
    assert session.total_duration == DurationTotal()


def test_records_for_different_students_are_rejected():
    with pytest.raises(InvalidRecord):
        pair_and_sum([make_record("in", "09:00"), make_record("out", "10:00", student_id="2024-0002")])


def test_record_with_missing_type_is_rejected():
    broken = TimeRecord(
        student_id="2024-0001",
        timestamp=datetime(2025, 3, 10, 9, 0),
        type=None,
        date="2025-03-10",
    )

    with pytest.raises(InvalidRecord):
        pair_and_sum([broken])


def test_record_dated_on_another_day_is_rejected():
    mismatched = TimeRecord(
        student_id="2024-0001",
        timestamp=datetime(2025, 3, 10, 9, 0),
        type=RecordType.IN,
        date="2025-03-11",
    )

    with pytest.raises(InvalidRecord):
        pair_and_sum([mismatched])


def test_records_from_different_days_are_rejected():
    evening = make_record("in", "09:00", day="2025-03-10")
    next_morning = make_record("out", "08:00", day="2025-03-11")

    with pytest.raises(InvalidRecord):
        pair_and_sum([evening, next_morning])


def test_aware_timestamp_is_rejected():
    aware = TimeRecord(
        student_id="2024-0001",
        timestamp=datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc),
        type=RecordType.IN,
        date="2025-03-10",
    )

    with pytest.raises(InvalidRecord):
        pair_and_sum([aware, make_record("out", "12:00")])
