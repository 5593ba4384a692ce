"""Codes reported by the entity validator."""

TIMESHEET_ACTIVITY_DEACTIVATED = "kimai-timesheet-deactivated-activity"
TIMESHEET_PROJECT_DEACTIVATED = "kimai-timesheet-deactivated-project"
TIMESHEET_CUSTOMER_DEACTIVATED = "kimai-timesheet-deactivated-customer"
TIMESHEET_PERIOD_LOCKED = "kimai-timesheet-period-locked"
TIMESHEET_LONG_RUNNING = "kimai-timesheet-long-running"
TIMESHEET_MAXIMUM_DURATION = "kimai-timesheet-maximum"
TIMESHEET_ZERO_DURATION = "kimai-timesheet-zero-duration"
TIMESHEET_ACTIVITY_MISMATCH = "kimai-timesheet-activity-mismatch"
TIMESHEET_END_BEFORE_BEGIN = "kimai-timesheet-end-before-begin"
TIMESHEET_NEGATIVE_DURATION = "kimai-timesheet-negative-duration"

NOT_BLANK = "not-blank"
TOO_LONG = "too-long"
INVALID_FORMAT = "invalid-format"
INVALID_CHOICE = "invalid-choice"

# Rules a file import deliberately ignores, so historical data can be imported.
IMPORT_IGNORED_CODES = frozenset({
    TIMESHEET_ACTIVITY_DEACTIVATED,
    TIMESHEET_PROJECT_DEACTIVATED,
    TIMESHEET_CUSTOMER_DEACTIVATED,
    TIMESHEET_PERIOD_LOCKED,
    TIMESHEET_LONG_RUNNING,
    TIMESHEET_MAXIMUM_DURATION,
    TIMESHEET_ZERO_DURATION,
})
