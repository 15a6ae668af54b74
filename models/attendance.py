import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

from core.errors import MalformedDocument
from utils.datetime_helpers import format_utc_datetime

DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class AttendanceState(str, Enum):
    NO_RECORD = "no_record"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"

    @property
    def label(self) -> str:
        return {
            AttendanceState.NO_RECORD: "No record",
            AttendanceState.CHECKED_IN: "Working",
            AttendanceState.CHECKED_OUT: "Finished",
        }[self]


# Branch + measured distance captured at the moment of a check in/out
class BranchSnapshot(BaseModel):
    branch_id: str
    branch_name: str
    latitude: float
    longitude: float
    distance_meters: float


# One document per user per day: users/{uid}/attendance/{YYYY-MM-DD}
class AttendanceRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str
    check_in: Optional[datetime] = Field(default=None, alias="checkIn")
    check_out: Optional[datetime] = Field(default=None, alias="checkOut")

    # Check-in snapshot
    branch_id: Optional[str] = Field(default=None, alias="branchId")
    branch_name: Optional[str] = Field(default=None, alias="branchName")
    branch_lat: Optional[float] = Field(default=None, alias="branchLat")
    branch_lng: Optional[float] = Field(default=None, alias="branchLng")
    branch_distance_meters: Optional[float] = Field(default=None, alias="branchDistanceMeters")

    # Check-out snapshot
    checkout_branch_id: Optional[str] = Field(default=None, alias="checkoutBranchId")
    checkout_branch_name: Optional[str] = Field(default=None, alias="checkoutBranchName")
    checkout_branch_distance_meters: Optional[float] = Field(
        default=None, alias="checkoutBranchDistanceMeters"
    )

    @field_validator("date")
    @classmethod
    def validate_date_key(cls, value: str) -> str:
        if not DATE_KEY_PATTERN.match(value):
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
        return value

    @field_serializer("check_in", "check_out")
    def serialize_timestamp(self, dt: Optional[datetime]) -> Optional[str]:
        """Ensure timestamps are formatted as UTC with Z suffix"""
        return format_utc_datetime(dt)

    @property
    def state(self) -> AttendanceState:
        if self.check_in is None:
            # A document without checkIn behaves like no activity yet
            return AttendanceState.NO_RECORD
        if self.check_out is None:
            return AttendanceState.CHECKED_IN
        return AttendanceState.CHECKED_OUT

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "AttendanceRecord":
        payload = dict(data)
        payload.setdefault("date", doc_id)
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise MalformedDocument(
                f"Attendance record '{doc_id}' has invalid data. Contact admin."
            ) from e


def state_of(record: Optional[AttendanceRecord]) -> AttendanceState:
    if record is None:
        return AttendanceState.NO_RECORD
    return record.state
