"""Constants for IntelliFire integration.

This module contains all the constants used throughout the integration,
including relay endpoints, configuration keys, polling cadences and the
appliance fault tables.
"""

from datetime import timedelta

DOMAIN = "intellifire"
MANUFACTURER = "Hearth & Home Technologies"

CLOUD_HOST = "iftapi.net"
BASE_URL = f"https://{CLOUD_HOST}/a"
USER_AGENT = "intellifire-ha"

STORAGE_VERSION = 1

# Timeouts (seconds)
LOCAL_TIMEOUT = 5.0
CLOUD_TIMEOUT = 10.0
LONG_POLL_TIMEOUT = 63.0

# Delay before the confirming poll that follows any command
COMMAND_REFRESH_DELAY = 3

# Local polling cadence while the fireplace is on / off
LOCAL_POLL_INTERVAL_ON = timedelta(minutes=5)
LOCAL_POLL_INTERVAL_OFF = timedelta(minutes=15)

# Cloud long-poll loop
LONG_POLL_MIN_SPACING = 60
LONG_POLL_LIVENESS_INTERVAL = timedelta(minutes=1)
LONG_POLL_LIVENESS_THRESHOLD = 120

# Off-command verification under cloud control
OFF_VERIFY_DELAY = 60
OFF_VERIFY_MAX_RETRIES = 15

# Fan-speed restore check after on()
RESTORE_FAN_SPEED_DELAY = 5 * 60

DEFAULT_SETPOINT = 2200  # 22 C, the remote's default
SETPOINT_SCALE = 100

CONF_SAVE_CREDENTIALS = "save_credentials"
CONF_FIREPLACES = "fireplaces"
CONF_LOCATION = "location"
CONF_SERIAL = "serial"
CONF_API_KEY = "api_key"
CONF_IP_ADDRESS = "ip_address"
CONF_USER_ID = "user_id"
CONF_NAME = "name"

CONF_CLOUD_CONTROL = "cloud_control"
CONF_CLOUD_POLLING = "cloud_polling"
CONF_LOCAL_FALLBACK = "local_fallback"
CONF_THERMOSTAT_ON_DEFAULT = "thermostat_on_default"
CONF_RESTORE_FAN_SPEED = "restore_fan_speed"

DEFAULT_OPTIONS = {
    CONF_CLOUD_CONTROL: True,
    CONF_CLOUD_POLLING: True,
    CONF_LOCAL_FALLBACK: True,
    CONF_THERMOSTAT_ON_DEFAULT: False,
    CONF_RESTORE_FAN_SPEED: False,
}

COOKIE_AUTH = "auth_cookie"
COOKIE_USER = "user"

EVENT_FAULT = f"{DOMAIN}_fault"
EVENT_OFF_FAILED = f"{DOMAIN}_off_failed"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"
ERROR_NO_FIREPLACES = "no_fireplaces"

FAULT_NAMES = {
    2: "PILOT_FLAME",
    4: "FLAME",
    6: "FAN_DELAY",
    64: "MAINTENANCE",
    129: "DISABLED",
    130: "PILOT_FLAME",
    132: "FAN",
    133: "LIGHTS",
    134: "ACCESSORY",
    144: "SOFT_LOCK_OUT",
    145: "DISABLED",
    642: "OFFLINE",
    3269: "ECM_OFFLINE",
}

FAULT_MESSAGES = {
    "PILOT_FLAME": (
        "Pilot Flame Error: Your appliance has been safely disabled. "
        "Please contact your dealer and report this issue."
    ),
    "FAN_DELAY": (
        "Fan Information: Fan will turn on within 3 minutes. Your appliance has "
        "a built-in delay that prevents the fan from operating within the first "
        "3 minutes of turning on the appliance. This allows the air to be heated "
        "prior to circulation."
    ),
    "FLAME": (
        "Pilot Flame Error. Your appliance has been safely disabled. "
        "Please contact your dealer and report this issue."
    ),
    "MAINTENANCE": (
        "Maintenance: Your appliance is due for a routine maintenance check. "
        "Please contact your dealer to ensure your appliance is operating at "
        "peak performance."
    ),
    "DISABLED": (
        "Appliance Safely Disabled: Your appliance has been disabled. "
        "Please contact your dealer and report this issue."
    ),
    "FAN": (
        "Fan Error. Your appliance has detected that an accessory is not "
        "functional. Please contact your dealer and report this issue."
    ),
    "LIGHTS": (
        "Lights Error. Your appliance has detected that an accessory is not "
        "functional. Please contact your dealer and report this issue."
    ),
    "ACCESSORY": (
        "Your appliance has detected that an AUX port or accessory is not "
        "functional. Please contact your dealer and report this issue."
    ),
    "SOFT_LOCK_OUT": (
        "Sorry your appliance did not start. Try again by pressing Flame ON."
    ),
    "OFFLINE": "Your appliance is currently offline.",
    "ECM_OFFLINE": "ECM is offline.",
}
