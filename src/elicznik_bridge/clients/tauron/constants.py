from __future__ import annotations
import re

# Request defaults
BASE_HEADERS = {
    "cache-control": "no-cache",
    "accept": "application/json",
}
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_READ_TIMEOUT = 30.0
DEFAULT_THROTTLE_SECONDS = 0.12
MAX_REDIRECTS = 10

# Login retries once when the portal answers with a redirect or error
LOGIN_MAX_ATTEMPTS = 2

# Energy request profile
ENERGY_PROFILE = "full time"

# Period and direction vocabulary accepted from callers
ALLOWED_PERIODS = ("range", "monthly", "yearly", "last_12_months")
ALLOWED_DIRECTIONS = ("consumption", "generation")

# Defaults for point fields missing in portal rows
DEFAULT_ZONE = "1"
DEFAULT_ZONE_NAME = "Cała doba"
DEFAULT_TARIFF = "G11"
DEFAULT_STATUS = "0"
DEFAULT_EXTRA = "N"

# Body prefix the portal uses for successful JSON answers
SUCCESS_BODY_PATTERN = re.compile(r'^\s*\{\s*"success"\s*:\s*true\b', re.IGNORECASE)

# Resolution tags
HOW_RANGE = "range"
HOW_PER_DAY = "per-day"
HOW_NONE = "none"
HOW_READINGS = "readings"

__all__ = [
    "BASE_HEADERS",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_READ_TIMEOUT",
    "DEFAULT_THROTTLE_SECONDS",
    "MAX_REDIRECTS",
    "LOGIN_MAX_ATTEMPTS",
    "ENERGY_PROFILE",
    "ALLOWED_PERIODS",
    "ALLOWED_DIRECTIONS",
    "DEFAULT_ZONE",
    "DEFAULT_ZONE_NAME",
    "DEFAULT_TARIFF",
    "DEFAULT_STATUS",
    "DEFAULT_EXTRA",
    "SUCCESS_BODY_PATTERN",
    "HOW_RANGE",
    "HOW_PER_DAY",
    "HOW_NONE",
    "HOW_READINGS",
]
