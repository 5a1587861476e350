"""Constants for the SmartRoom integration.

This module contains all the constants used throughout the integration,
including API paths, configuration keys, and mapping dictionaries.
"""

from homeassistant.components.climate import HVACMode
from homeassistant.components.climate.const import FAN_AUTO, SWING_OFF, SWING_ON

DOMAIN = "smartroom"

DEFAULT_BASE_URL = "http://localhost:8080/api/v1"
DEFAULT_SCAN_INTERVAL = 60
DEFAULT_PAGE_SIZE = 50
ALL_ITEMS_PAGE_SIZE = 1000
REQUEST_TIMEOUT = 10.0

CONF_BASE_URL = "base_url"
CONF_TOKEN = "token"
CONF_RESTORE_SESSION = "restore_session"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"

TARGET_TYPE_LIGHT = "LIGHT"
ACTION_TYPE_ON = "ON"

POWER_ON = "ON"
POWER_OFF = "OFF"

MIN_TEMPERATURE = 16
MAX_TEMPERATURE = 30
MIN_FAN_SPEED = 0
MAX_FAN_SPEED = 5
MIN_LIGHT_LEVEL = 1
MAX_LIGHT_LEVEL = 100

HVAC_MODE_MAP = {
    HVACMode.COOL: "COOL",
    HVACMode.HEAT: "HEAT",
    HVACMode.DRY: "DRY",
    HVACMode.FAN_ONLY: "FAN",
    HVACMode.AUTO: "AUTO",
}
HVAC_MODE_REVERSE_MAP = {value: key for key, value in HVAC_MODE_MAP.items()}

# Fan speed 0 is AUTO on the backend, 1-5 are fixed speeds.
FAN_MODE_MAP = {
    FAN_AUTO: 0,
    "1": 1,
    "2": 2,
    "3": 3,
    "4": 4,
    "5": 5,
}
FAN_MODE_REVERSE_MAP = {value: key for key, value in FAN_MODE_MAP.items()}
SWING_MODE_MAP = {
    SWING_ON: True,
    SWING_OFF: False,
}
SWING_MODE_REVERSE_MAP = {value: key for key, value in SWING_MODE_MAP.items()}

# Fields of the air-conditioner snapshot copied back after each mutation.
AC_ECHO_FIELDS = {
    "power": ("power", "temperature", "mode"),
    "temperature": ("temperature", "power", "mode"),
    "mode": ("mode", "power", "temperature"),
    "fan_speed": ("fan_speed", "power"),
    "swing": ("swing", "power"),
}
AC_POLLED_FIELDS = ("power", "temperature", "mode", "fan_speed", "swing", "is_active")
LIGHT_ECHO_FIELDS = ("is_active", "level")
TEMPERATURE_SENSOR_POLLED_FIELDS = ("current_value", "is_active")
POWER_SENSOR_POLLED_FIELDS = ("current_watt", "current_watt_hour", "is_active")
AUTOMATION_ECHO_FIELDS = ("is_active", "cron_expression", "name", "description")

SERVICE_SET_AUTOMATION_SCHEDULE = "set_automation_schedule"
SERVICE_SET_AUTOMATION_LIGHTS = "set_automation_lights"
SERVICE_CREATE_AUTOMATION = "create_automation"
SERVICE_DELETE_AUTOMATION = "delete_automation"

ATTR_AUTOMATION_ID = "automation_id"
ATTR_NAME = "name"
ATTR_DESCRIPTION = "description"
ATTR_ACTIVE = "active"
ATTR_FREQUENCY = "frequency"
ATTR_HOUR = "hour"
ATTR_MINUTE = "minute"
ATTR_WEEKDAY = "weekday"
ATTR_DAY_OF_MONTH = "day_of_month"
ATTR_LIGHT_IDS = "light_ids"
ATTR_CRON_EXPRESSION = "cron_expression"
ATTR_SCHEDULE = "schedule"
ATTR_TIME = "time"
ATTR_ROOM_ID = "room_id"
