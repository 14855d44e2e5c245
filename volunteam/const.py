DOMAIN = "volunteam"
VERSION = "1.0.0"

# Remote API (json-server compatible backend)
DEFAULT_API_BASE_URL = "http://10.0.2.2:3333"
REQUEST_TIMEOUT = 5    # seconds, multiplied by attempt number for each retry
REQUEST_ATTEMPTS = 3   # maximum number of attempts on timeout

# Session cache keys, always cleared together
USER_INFO_KEY = "userInfo"
ACCESS_TOKEN_KEY = "accessToken"
SESSION_KEYS: frozenset[str] = frozenset({USER_INFO_KEY, ACCESS_TOKEN_KEY})

DEFAULT_CACHE_PATH = "~/.volunteam/cache.json"
CACHE_CLEAR_ATTEMPTS = 3

# Expiry claims above this value are epoch milliseconds rather than seconds
EPOCH_MILLIS_THRESHOLD = 10 ** 11

# Login form
MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = r"^[^@]+@[^@]+\.[^@]+$"

# Map viewport fitting. Padding is in screen pixels.
FIT_PADDING: dict[str, int] = {"top": 100, "right": 60, "bottom": 180, "left": 60}
MAP_SIZE: dict[str, int] = {"width": 390, "height": 844}
FIT_INITIAL_DELAY = 0.5   # seconds between readiness/request and the first apply
FIT_SETTLE_DELAY = 1.0    # seconds between the first apply and the re-apply

# Smallest span (degrees) of a fitted region, so a single pin still gets a sane zoom
MIN_REGION_DELTA = 0.01

# Region shown before any fit has been applied (Calgary)
DEFAULT_REGION: dict[str, float] = {
    "latitude": 51.0447,
    "longitude": -114.0719,
    "latitude_delta": 0.15,
    "longitude_delta": 0.15,
}
DETAIL_REGION_DELTA = 0.008

# Map pin styles per event status
MARKER_VOLUNTEERED = "blue"
MARKER_FULL = "grey"
MARKER_AVAILABLE = "orange"

# User-facing messages
MSG_AUTH_FAILED = "Authentication failed"
MSG_INVALID_CREDENTIALS = "Invalid email or password"
MSG_INCORRECT_CREDENTIALS = "Incorrect email or password"
MSG_NETWORK_UNREACHABLE = "Cannot connect to server. Please check your network connection."
MSG_EVENTS_LOAD_FAILED = "Failed to load events. Please try again."
MSG_EVENT_LOAD_FAILED = "Failed to load event details"
MSG_VOLUNTEER_FAILED = "Failed to volunteer for this event. Please try again."
