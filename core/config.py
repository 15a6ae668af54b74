import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Which storage the attendance engine talks to: "firestore" or "memory"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "firestore").lower()

# Geofence radius used when a branch document has no radiusMeters
DEFAULT_RADIUS_METERS = float(os.getenv("DEFAULT_RADIUS_METERS", "1000"))

# Upper bound on waiting for a location fix
LOCATION_TIMEOUT_SECONDS = float(os.getenv("LOCATION_TIMEOUT_SECONDS", "15"))

# Timezone used for the YYYY-MM-DD attendance key when a user has none set
ATTENDANCE_TIMEZONE = os.getenv("ATTENDANCE_TIMEZONE", "Asia/Kolkata")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:5173")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN", "https://dor-attendance.app")

# Roles allowed on the admin attendance endpoints
MANAGER_ROLES = ["manager", "admin"]
