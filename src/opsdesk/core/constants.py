"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LIST_LIMIT = 200
DEFAULT_ADMIN_LIST_LIMIT = 500

# SLA thresholds in minutes: (response, resolution)
SLA_THRESHOLDS_MINUTES = {
    "sev1": (30, 240),
    "sev2": (60, 720),
    "sev3": (240, 1440),
}

IMPORT_BATCH_SIZE = 100
IMPORT_MAX_ROWS = 1500
IMPORT_WARNING_ROWS = 1000

MANAGING_DIRECTOR = "Managing Director"
OPERATIONS_MANAGER = "Operations Manager"

# Overtime from these positions is listed for review only to the Managing Director.
OVERTIME_DIRECTOR_ONLY_POSITIONS = ("HR", "Accounting")
