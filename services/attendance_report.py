from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, field_serializer

from models.attendance import AttendanceRecord, AttendanceState, state_of
from models.user import UserProfile
from utils.datetime_helpers import format_duration, format_utc_datetime
from utils.timezone_helpers import date_key_for_day, days_in_range

# Longest range a single history request may cover
MAX_HISTORY_DAYS = 366


class HistoryRow(BaseModel):
    date: str
    state: AttendanceState
    status_label: str
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    duration: str
    branch_name: Optional[str] = None

    @field_serializer("check_in", "check_out")
    def serialize_timestamp(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)


class AttendanceHistory(BaseModel):
    uid: str
    start: date
    end: date
    present: int
    absent: int
    rows: List[HistoryRow]


class StaffToday(BaseModel):
    uid: str
    name: str
    branch_id: Optional[str] = None
    branch_name: Optional[str] = None
    state: AttendanceState
    status_label: str
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None

    @field_serializer("check_in", "check_out")
    def serialize_timestamp(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)


class TeamSummary(BaseModel):
    date: str
    branch_id: Optional[str] = None
    present: int
    absent: int
    staff: List[StaffToday]


def _history_row(day_key: str, record: Optional[AttendanceRecord]) -> HistoryRow:
    state = state_of(record)
    if record is None:
        return HistoryRow(date=day_key, state=state, status_label=state.label, duration="—")

    return HistoryRow(
        date=day_key,
        state=state,
        status_label=state.label,
        check_in=record.check_in,
        check_out=record.check_out,
        duration=format_duration(record.check_in, record.check_out),
        branch_name=record.branch_name,
    )


def check_history_range(start: date, end: date) -> Tuple[date, date]:
    """Order the bounds and refuse spans longer than MAX_HISTORY_DAYS."""
    if end < start:
        start, end = end, start
    if (end - start).days + 1 > MAX_HISTORY_DAYS:
        raise ValueError(f"Date range may cover at most {MAX_HISTORY_DAYS} days.")
    return start, end


def build_history(
    uid: str, start: date, end: date, records: Iterable[AttendanceRecord]
) -> AttendanceHistory:
    """
    One row per calendar day in [start, end], newest first.

    A day counts as present when its record has a check-in; days without a
    record, or with a record that never got a check-in, count as absent.
    """
    start, end = check_history_range(start, end)

    by_date: Dict[str, AttendanceRecord] = {r.date: r for r in records}

    rows = []
    present = 0
    for day in days_in_range(start, end):
        key = date_key_for_day(day)
        record = by_date.get(key)
        if record is not None and record.check_in is not None:
            present += 1
        rows.append(_history_row(key, record))

    return AttendanceHistory(
        uid=uid,
        start=start,
        end=end,
        present=present,
        absent=len(rows) - present,
        rows=rows,
    )


def build_team_summary(
    date_key: str,
    profiles: List[UserProfile],
    records: Dict[str, Optional[AttendanceRecord]],
    branch_id: Optional[str] = None,
) -> TeamSummary:
    staff = []
    for profile in profiles:
        record = records.get(profile.uid)
        state = state_of(record)
        staff.append(
            StaffToday(
                uid=profile.uid,
                name=profile.name or profile.email or profile.uid,
                branch_id=profile.branch_id,
                branch_name=profile.branch_name,
                state=state,
                status_label=state.label,
                check_in=record.check_in if record else None,
                check_out=record.check_out if record else None,
            )
        )

    present = sum(1 for s in staff if s.state != AttendanceState.NO_RECORD)
    return TeamSummary(
        date=date_key,
        branch_id=branch_id,
        present=present,
        absent=len(staff) - present,
        staff=staff,
    )
