"""
Constants used by the OilFox integration.

This file contains all string literals, configuration keys, API paths,
default values, and platform declarations so they are defined in one place.

Home Assistant imports this module frequently, so it MUST remain lightweight
(no network I/O, no heavy logic).
"""

from datetime import timedelta

# -----------------------------------------------------------------------------
# Basic integration identifiers
# -----------------------------------------------------------------------------

# Domain name used throughout Home Assistant for this integration
DOMAIN = "oilfox"

# Human-readable name (used for the account device and logs)
INTEGRATION_NAME = "OilFox"

MANUFACTURER = "FoxInsights"


# -----------------------------------------------------------------------------
# Config entry keys (stored in entry.data or entry.options)
# -----------------------------------------------------------------------------

CONF_EMAIL = "email"
CONF_PASSWORD = "password"

# Host name of the FoxInsights customer API
CONF_ADDRESS = "address"

# Option: hours between two scheduled polls of the device list
CONF_REFRESH = "refresh"


# -----------------------------------------------------------------------------
# Default values
# -----------------------------------------------------------------------------

DEFAULT_ADDRESS = "api.oilfox.io"

# OilFox devices meter a few times a day at most
DEFAULT_REFRESH_HOURS = 6
MIN_REFRESH_HOURS = 1
MAX_REFRESH_HOURS = 24


# -----------------------------------------------------------------------------
# API endpoints and HTTP behaviour
# -----------------------------------------------------------------------------

LOGIN_PATH = "/customer-api/v1/login"
TOKEN_PATH = "/customer-api/v1/token"
DEVICE_PATH = "/customer-api/v1/device"

# Timeouts in seconds for HTTP calls
CONNECT_TIMEOUT = 15
READ_TIMEOUT = 10

# An access token is reused for at most this long before it is refreshed
ACCESS_TOKEN_MAX_AGE = timedelta(minutes=15)

# Fair Use Policy: "Getting the status of all of your device every hour is
# considered to be of fair use and no rate limiting is applied."
FAIR_USE_INTERVAL = timedelta(minutes=60)

# Extra poll after a device's next metering, once fresh data is available
FOLLOW_UP_DELAY = timedelta(minutes=5)

# Format of currentMeteringAt / nextMeteringAt, always UTC
METERING_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


# -----------------------------------------------------------------------------
# Device record fields (as returned by GET /customer-api/v1/device)
# -----------------------------------------------------------------------------

FIELD_HWID = "hwid"
FIELD_CURRENT_METERING_AT = "currentMeteringAt"
FIELD_NEXT_METERING_AT = "nextMeteringAt"
FIELD_DAYS_REACH = "daysReach"
FIELD_BATTERY_LEVEL = "batteryLevel"
FIELD_FILL_LEVEL_PERCENT = "fillLevelPercent"
FIELD_FILL_LEVEL_QUANTITY = "fillLevelQuantity"
FIELD_QUANTITY_UNIT = "quantityUnit"

QUANTITY_UNIT_LITERS = "L"

BATTERY_LEVELS = ("FULL", "GOOD", "MEDIUM", "WARNING", "CRITICAL")
BATTERY_LOW_LEVELS = ("WARNING", "CRITICAL")


# -----------------------------------------------------------------------------
# Bridge status reasons
#
# These double as config flow error keys, see strings.json.
# -----------------------------------------------------------------------------

STATUS_ONLINE = "online"
STATUS_INVALID_AUTH = "invalid_auth"
STATUS_UNKNOWN_USER = "unknown_user"
STATUS_RATE_LIMITED = "rate_limited"
STATUS_CANNOT_CONNECT = "cannot_connect"

STATUSES = (
    STATUS_ONLINE,
    STATUS_INVALID_AUTH,
    STATUS_UNKNOWN_USER,
    STATUS_RATE_LIMITED,
    STATUS_CANNOT_CONNECT,
)


# -----------------------------------------------------------------------------
# Dispatcher signals
# -----------------------------------------------------------------------------

# Formatted with the config entry id; payload is the new device handler
SIGNAL_DEVICE_ADDED = "oilfox_device_added_{}"


# -----------------------------------------------------------------------------
# Platform support (sensor + binary_sensor modules)
# -----------------------------------------------------------------------------

PLATFORMS = ("sensor", "binary_sensor")
