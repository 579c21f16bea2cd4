from elicznik_bridge.utils.date_utils import (
    DateRange,
    format_portal_date,
    parse_flexible_date,
    to_iso_date,
    to_portal_date,
)
from elicznik_bridge.utils.logging_config import configure_logging

__all__ = [
    # Date utilities
    "DateRange",
    "format_portal_date",
    "parse_flexible_date",
    "to_iso_date",
    "to_portal_date",
    # Logging
    "configure_logging",
]
