"""Constants for the ADT Pulse portal client."""

from datetime import timedelta

# Configuration
CONF_SUBDOMAIN = "subdomain"
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_FINGERPRINT = "fingerprint"
CONF_MODE = "mode"
CONF_SPEED = "speed"
CONF_OPTIONS = "options"
CONF_SENSORS = "sensors"
CONF_FORCE_ARM_STATUSES = "force_arm_statuses"

CONF_SENSOR_NAME = "name"
CONF_SENSOR_ADT_NAME = "adt_name"
CONF_SENSOR_ADT_TYPE = "adt_type"
CONF_SENSOR_ADT_ZONE = "adt_zone"

SUBDOMAINS = ["portal", "portal-ca"]

MODE_NORMAL = "normal"
MODE_PAUSED = "paused"
MODE_RESET = "reset"
MODES = [MODE_NORMAL, MODE_PAUSED, MODE_RESET]

SPEEDS = [1, 0.75, 0.5, 0.25]

# Accepted for existing configurations; only a host accessory layer reads it
OPTION_DISABLE_ALARM_RINGING_SWITCH = "disableAlarmRingingSwitch"
OPTION_IGNORE_SENSOR_PROBLEM_STATUS = "ignoreSensorProblemStatus"
OPTIONS = [OPTION_DISABLE_ALARM_RINGING_SWITCH, OPTION_IGNORE_SENSOR_PROBLEM_STATUS]

# Portal
BASE_URL_TEMPLATE = "https://{subdomain}.adtpulse.com"
DEFAULT_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
}
MFA_HEADERS = {
    "Accept": "application/json, text/javascript, */*; q=0.01",
    "X-format": "json",
    "X-version": "7.0",
    "X-Requested-With": "XMLHttpRequest",
}

# Builds the portal answered with while this client was maintained
SUPPORTED_PORTAL_VERSIONS = [
    "16.0.0-131",
    "17.0.0-69",
    "18.0.0-78",
    "19.0.0-89",
    "20.0.0-221",
    "20.0.0-244",
    "21.0.0-344",
    "21.0.0-353",
    "21.0.0-354",
    "22.0.0-233",
    "23.0.0-99",
    "24.0.0-117",
    "25.0.0-21",
    "26.0.0-32",
    "27.0.0-140",
]

# Request paths, relative to /myhome/<version>/
PATH_SIGN_IN = "access/signin.jsp"
PATH_SIGN_OUT = "access/signout.jsp"
PATH_POST_SIGN_IN = "access/PostSigninProcessServ"
PATH_SUMMARY = "summary/summary.jsp"
PATH_GATEWAY = "system/gateway.jsp"
PATH_PANEL = "system/device.jsp?id=1"
PATH_SYSTEM = "system/system.jsp"
PATH_ARM_DISARM = "quickcontrol/armDisarm.jsp"
PATH_KEEP_ALIVE = "KeepAlive"
PATH_SYNC_CHECK = "Ajax/SyncCheckServ"
PATH_RRA_PROXY = "nga/serv/RunRRAProxy"

HREF_MFA = "rest/icontrol/ui/client/multiFactorAuth"
HREF_MFA_REQUEST_OTP = "rest/adt/ui/client/multiFactorAuth/requestOtpForRegisteredProperty"
HREF_MFA_VALIDATE_OTP = "rest/adt/ui/client/multiFactorAuth/validateOtp"
HREF_MFA_ADD_TRUSTED_DEVICE = "rest/adt/ui/client/multiFactorAuth/addTrustedDevice"
HREF_UPDATES = "rest/adt/ui/updates"
HREF_SET_ARM_STATE = "rest/adt/ui/client/security/setArmState"

# Arm states
ARM_AWAY = "away"
ARM_NIGHT = "night"
ARM_STAY = "stay"
ARM_OFF = "off"
CANONICAL_ARM_STATES = [ARM_AWAY, ARM_NIGHT, ARM_STAY, ARM_OFF]

WIRE_DISARMED = "disarmed"
WIRE_DISARMED_WITH_ALARM = "disarmed_with_alarm"
WIRE_DISARMED_WITH_ALARM_DIRTY = "disarmed+with+alarm"
WIRE_NIGHT_STAY = "night+stay"
WIRE_FORCE_ARM = "forcearm"
WIRE_ARM_STATES = [
    ARM_AWAY,
    WIRE_DISARMED,
    WIRE_DISARMED_WITH_ALARM_DIRTY,
    WIRE_DISARMED_WITH_ALARM,
    ARM_NIGHT,
    WIRE_NIGHT_STAY,
    ARM_OFF,
    ARM_STAY,
]

BUTTON_CLEAR_ALARM = "Clear Alarm"
BUTTON_DISARM = "Disarm"
BUTTON_ARMING_NIGHT = "Arming Night"

PANEL_STATES = {
    "Armed Away": ARM_AWAY,
    "Armed Night": ARM_NIGHT,
    "Armed Stay": ARM_STAY,
    "Disarmed": ARM_OFF,
    "No Entry Delay": None,
    "Status Unavailable": None,
}

# Panel status texts that explain a rejected arm (open doors or windows)
DEFAULT_FORCE_ARM_STATUSES = [r"^1 Sensor Open$", r"^\d+ Sensors Open$"]

# Sensors
MAX_CONFIGURED_SENSORS = 148
FIRST_SENSOR_DEVICE_ID = 2

SENSOR_TYPE_CO = "co"
SENSOR_TYPE_DOOR_WINDOW = "doorWindow"
SENSOR_TYPE_FIRE = "fire"
SENSOR_TYPE_FLOOD = "flood"
SENSOR_TYPE_GLASS = "glass"
SENSOR_TYPE_HEAT = "heat"
SENSOR_TYPE_MOTION = "motion"
SENSOR_TYPE_SHOCK = "shock"
SENSOR_TYPE_TEMPERATURE = "temperature"
SENSOR_TYPES = [
    SENSOR_TYPE_CO,
    SENSOR_TYPE_DOOR_WINDOW,
    SENSOR_TYPE_FIRE,
    SENSOR_TYPE_FLOOD,
    SENSOR_TYPE_GLASS,
    SENSOR_TYPE_HEAT,
    SENSOR_TYPE_MOTION,
    SENSOR_TYPE_SHOCK,
    SENSOR_TYPE_TEMPERATURE,
]

DEVICE_TYPES = {
    "Carbon Monoxide Detector": SENSOR_TYPE_CO,
    "Door Sensor": SENSOR_TYPE_DOOR_WINDOW,
    "Door/Window Sensor": SENSOR_TYPE_DOOR_WINDOW,
    "Window Sensor": SENSOR_TYPE_DOOR_WINDOW,
    "Fire (Smoke/Heat) Detector": SENSOR_TYPE_FIRE,
    "Water/Flood Sensor": SENSOR_TYPE_FLOOD,
    "Glass Break Detector": SENSOR_TYPE_GLASS,
    "Heat (Rate-of-Rise) Detector": SENSOR_TYPE_HEAT,
    "Motion Sensor": SENSOR_TYPE_MOTION,
    "Motion Sensor (Notable Events Only)": SENSOR_TYPE_MOTION,
    "Shock Sensor": SENSOR_TYPE_SHOCK,
    "Temperature Sensor": SENSOR_TYPE_TEMPERATURE,
}

# Canonical sensor statuses
SENSOR_STATUS_OPEN = "open"
SENSOR_STATUS_CLOSED = "closed"
SENSOR_STATUS_MOTION = "motion"
SENSOR_STATUS_NO_MOTION = "no_motion"
SENSOR_STATUS_TRIPPED = "tripped"
SENSOR_STATUS_OKAY = "okay"
SENSOR_STATUS_OFFLINE = "offline"
SENSOR_STATUS_INSTALLING = "installing"
SENSOR_STATUS_UNKNOWN = "unknown"

SENSOR_FLAG_ALARM = "alarm"
SENSOR_FLAG_BYPASSED = "bypassed"
SENSOR_FLAG_LOW_BATTERY = "low_battery"
SENSOR_FLAG_TAMPERED = "tampered"
SENSOR_FLAG_TROUBLE = "trouble"

# Label cells on the gateway and panel pages
GATEWAY_LABELS = [
    "Broadband LAN IP Address:",
    "Broadband LAN MAC:",
    "Device LAN IP Address:",
    "Device LAN MAC:",
    "Firmware Version:",
    "Hardware Version:",
    "Last Update:",
    "Manufacturer:",
    "Model:",
    "Next Update:",
    "Serial Number:",
    "Status:",
]
PANEL_LABELS = [
    "Emergency Keys:",
    "Manufacturer/Provider:",
    "Status:",
    "Type/Model:",
]

# Default values
DEFAULT_TIMEOUT = 15
DEFAULT_RETRIES = 3
DEFAULT_RETRY_BACKOFF = 1.0
DEFAULT_SYNC_CODE = "1-0-0"
DEFAULT_MODE = MODE_NORMAL
DEFAULT_SPEED = 1
ARM_SETTLE_DELAY = 5

# Synchronizer timings
SYNCHRONIZE_INTERVAL = timedelta(seconds=1)
KEEP_ALIVE_INTERVAL = timedelta(milliseconds=538000)
SYNC_CHECK_INTERVAL = timedelta(seconds=3)
SESSION_LIFESPAN = timedelta(milliseconds=19368000)
SUSPEND_INTERVAL = timedelta(minutes=30)
MAX_LOGIN_RETRIES = 3

# Validation
MFA_OTP_LENGTH = 6
TRUSTED_DEVICE_NAME_MAX_LENGTH = 100
