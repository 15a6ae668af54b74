import asyncio
from datetime import date, datetime, timezone

import pytest

from models.attendance import AttendanceRecord, AttendanceState
from models.user import UserProfile
from services.attendance_report import MAX_HISTORY_DAYS, build_history, build_team_summary

BRANCH_LAT = 12.9716
BRANCH_LNG = 77.5946


def _at(hour, minute=0, day=10):
    return datetime(2026, 3, day, hour, minute, tzinfo=timezone.utc)


def test_history_has_a_row_per_day_newest_first():
    records = [
        AttendanceRecord(date="2026-03-09", check_in=_at(3, day=9), check_out=_at(11, 35, day=9)),
        AttendanceRecord(date="2026-03-11", check_in=_at(4, day=11)),
    ]

    history = build_history("u1", date(2026, 3, 9), date(2026, 3, 12), records)

    assert [row.date for row in history.rows] == [
        "2026-03-12", "2026-03-11", "2026-03-10", "2026-03-09",
    ]
    assert history.present == 2
    assert history.absent == 2

    rows = {row.date: row for row in history.rows}
    assert rows["2026-03-09"].duration == "8h 35m"
    assert rows["2026-03-09"].status_label == "Finished"
    assert rows["2026-03-11"].duration == "—"
    assert rows["2026-03-11"].state == AttendanceState.CHECKED_IN
    assert rows["2026-03-10"].state == AttendanceState.NO_RECORD


def test_record_without_check_in_counts_as_absent():
    history = build_history(
        "u1", date(2026, 3, 10), date(2026, 3, 10), [AttendanceRecord(date="2026-03-10")]
    )
    assert (history.present, history.absent) == (0, 1)


def test_reversed_range_is_normalised():
    history = build_history("u1", date(2026, 3, 12), date(2026, 3, 10), [])
    assert history.start == date(2026, 3, 10)
    assert len(history.rows) == 3


def test_range_is_capped():
    with pytest.raises(ValueError, match=str(MAX_HISTORY_DAYS)):
        build_history("u1", date(2024, 1, 1), date(2026, 1, 1), [])


def test_team_summary_counts():
    profiles = [
        UserProfile(uid="a", name="Asha", branch_id="MG-ROAD"),
        UserProfile(uid="b", name="Bala", branch_id="MG-ROAD"),
        UserProfile(uid="c", name="", email="c@example.com", branch_id="MG-ROAD"),
    ]
    records = {
        "a": AttendanceRecord(date="2026-03-10", check_in=_at(4)),
        "b": AttendanceRecord(date="2026-03-10", check_in=_at(4), check_out=_at(12)),
        "c": None,
    }

    summary = build_team_summary("2026-03-10", profiles, records, branch_id="MG-ROAD")

    assert (summary.present, summary.absent) == (2, 1)
    assert [s.status_label for s in summary.staff] == ["Working", "Finished", "No record"]
    assert summary.staff[2].name == "c@example.com"


def test_engine_history_and_summary(engine, store, store_clock, clock, gate_at):
    asyncio.run(engine.check_in("u1", gate_at(BRANCH_LAT, BRANCH_LNG)))
    store_clock.advance(hours=8, minutes=5)
    asyncio.run(engine.check_out("u1", gate_at(BRANCH_LAT, BRANCH_LNG)))
    asyncio.run(engine.check_in("u2", gate_at(BRANCH_LAT, BRANCH_LNG)))

    history = asyncio.run(engine.history("u1", date(2026, 3, 9), date(2026, 3, 10)))
    assert history.present == 1
    assert history.rows[0].duration == "8h 5m"
    assert history.rows[0].branch_name == "MG Road"

    # 2026-03-10 is a Tuesday
    week = asyncio.run(engine.week_history("u1"))
    assert (week.start, week.end) == (date(2026, 3, 9), date(2026, 3, 15))

    month = asyncio.run(engine.month_history("u1"))
    assert (month.start, month.end) == (date(2026, 3, 1), date(2026, 3, 31))
    assert month.present == 1

    summary = asyncio.run(engine.today_summary("MG-ROAD"))
    by_uid = {s.uid: s for s in summary.staff}
    assert set(by_uid) == {"u1", "u2", "mgr"}
    assert by_uid["u1"].state == AttendanceState.CHECKED_OUT
    assert by_uid["u2"].state == AttendanceState.CHECKED_IN
    assert by_uid["mgr"].state == AttendanceState.NO_RECORD
    assert (summary.present, summary.absent) == (2, 1)


def test_summary_skips_unreadable_profiles(engine, store):
    store.add_user("u-odd", name=["not", "a", "name"], branchId="MG-ROAD")
    store.add_user("u-cap", name="Hema", role="Staff", branchId="MG-ROAD")

    summary = asyncio.run(engine.today_summary("MG-ROAD"))

    uids = {s.uid for s in summary.staff}
    assert "u-odd" not in uids
    assert {"u1", "u2", "mgr", "u-cap"} <= uids
    assert summary.absent == 4


def test_oversized_range_is_refused_before_reading(engine, store, monkeypatch):
    async def unexpected(*args):
        raise AssertionError("records were read for a refused range")

    monkeypatch.setattr(store, "list_records", unexpected)

    with pytest.raises(ValueError, match=str(MAX_HISTORY_DAYS)):
        asyncio.run(engine.history("u1", date(1926, 1, 1), date(2026, 1, 1)))
