from .attendance import AttendanceRecord, AttendanceState, BranchSnapshot, state_of
from .branch import Branch
from .location import LocationReport, PermissionStatus, Position
from .user import Role, UserProfile
