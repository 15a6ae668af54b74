"""
Failure reasons for attendance actions.

Every error is terminal for the operation that raised it and is shown to the
user as-is. ``retryable`` is False when the user cannot fix the problem by
trying again (system settings or an admin must act first).
"""

from fastapi import status


class AttendanceError(Exception):
    code = "attendance_error"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = True
    default_message = "Attendance action failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "retryable": self.retryable}


# --- Geolocation gate ---


class LocationUnavailable(AttendanceError):
    code = "location_unavailable"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Location services are disabled. Please enable location."


class PermissionDenied(AttendanceError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Location permission denied."


class PermissionDeniedForever(AttendanceError):
    code = "permission_denied_forever"
    status_code = status.HTTP_403_FORBIDDEN
    retryable = False
    default_message = (
        "Location permission permanently denied. "
        "Please enable it from system settings."
    )


# --- Distance evaluator ---


class BranchNotAssigned(AttendanceError):
    code = "branch_not_assigned"
    status_code = status.HTTP_409_CONFLICT
    retryable = False
    default_message = "No branch assigned to user. Contact admin."


class BranchNotFound(AttendanceError):
    code = "branch_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    retryable = False
    default_message = "Assigned branch not found in database. Contact admin."


class OutsideGeofence(AttendanceError):
    code = "outside_geofence"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, distance_meters: float, required_radius: float, branch_name: str):
        self.distance_meters = distance_meters
        self.required_radius = required_radius
        self.branch_name = branch_name
        super().__init__(
            f"You are {round(distance_meters)} m away from your assigned branch "
            f"({branch_name}). You must be within {round(required_radius)} m "
            "to check in/out."
        )

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update(
            distance_meters=round(self.distance_meters, 1),
            required_radius=self.required_radius,
            branch_name=self.branch_name,
        )
        return body


# --- Ledger ---


class AlreadyCheckedIn(AttendanceError):
    code = "already_checked_in"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already checked in."


class AlreadyCheckedOut(AttendanceError):
    code = "already_checked_out"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already checked out."


class NoCheckInFound(AttendanceError):
    code = "no_check_in_found"
    status_code = status.HTTP_409_CONFLICT
    default_message = "No check-in found for today."


class NotCheckedInYet(AttendanceError):
    code = "not_checked_in_yet"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have not checked in today."


# --- Collaborators ---


class StorageUnavailable(AttendanceError):
    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Attendance storage is unavailable. Please try again."


class UserProfileNotFound(AttendanceError):
    code = "user_profile_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    retryable = False
    default_message = "User profile not found. Contact admin."


class MalformedDocument(AttendanceError):
    code = "malformed_document"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False
    default_message = "Stored attendance data is invalid. Contact admin."
