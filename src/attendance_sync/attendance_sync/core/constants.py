"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

AUTOSAVE_DELAY_SECONDS = 5.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_POOL_SIZE = 5

ATTENDANCE_TABLE = "attendance"
ATTENDANCE_COLUMNS = ("id", "member_id", "guest_id", "pipeliner_id", "status")
