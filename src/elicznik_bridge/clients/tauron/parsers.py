"""Parsers for e-licznik JSON responses.

This module turns raw portal payloads into typed ``Series`` values and folds
per-day series together. Missing row fields fall back to documented defaults
(zone "1", zone name "Cała doba", tariff "G11") instead of propagating.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_EXTRA,
    DEFAULT_STATUS,
    DEFAULT_TARIFF,
    DEFAULT_ZONE,
    DEFAULT_ZONE_NAME,
    SUCCESS_BODY_PATTERN,
)
from .models import Series, SeriesPoint

LOGGER = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Value Coercion Helpers
# ─────────────────────────────────────────────────────────────────────────────

def safe_float(value: Any) -> float:
    """Safely convert a value to float, returning 0.0 on failure.

    The portal sometimes writes decimals with a comma. Non-finite values
    (NaN, inf) are treated as failures so totals stay JSON-encodable.
    """
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def as_str(value: Any) -> Optional[str]:
    """Convert a value to string, returning None for empty values."""
    if value is None or value == "":
        return None
    return str(value)


# ─────────────────────────────────────────────────────────────────────────────
# Body Inspection
# ─────────────────────────────────────────────────────────────────────────────

def is_success_body(body: str) -> bool:
    """Return True when the body starts with a ``{"success": true`` object."""
    return bool(SUCCESS_BODY_PATTERN.match(body or ""))


def decode_json_body(body: str) -> Optional[Dict[str, Any]]:
    """Decode a JSON object body, returning None for anything else."""
    try:
        decoded = json.loads(body)
    except (TypeError, ValueError):
        LOGGER.debug("Response body is not valid JSON (%d bytes)", len(body or ""))
        return None
    return decoded if isinstance(decoded, dict) else None


# ─────────────────────────────────────────────────────────────────────────────
# Series Parsing
# ─────────────────────────────────────────────────────────────────────────────

def parse_point(row: Dict[str, Any], default_tariff: Optional[str] = None) -> Optional[SeriesPoint]:
    """Parse one ``allData`` row; rows without Date or Hour are skipped."""
    date = as_str(row.get("Date"))
    hour = as_str(row.get("Hour"))
    if not date or not hour:
        return None
    return SeriesPoint(
        date=date,
        hour=hour,
        value=safe_float(row.get("EC")),
        zone=as_str(row.get("Zone")) or DEFAULT_ZONE,
        zone_name=as_str(row.get("ZoneName")) or DEFAULT_ZONE_NAME,
        tariff=as_str(row.get("Taryfa")) or default_tariff or DEFAULT_TARIFF,
        status=as_str(row.get("Status")) or DEFAULT_STATUS,
        extra=as_str(row.get("Extra")) or DEFAULT_EXTRA,
    )


def parse_series(payload: Optional[Dict[str, Any]]) -> Series:
    """Convert a decoded portal payload into a Series.

    When the payload carries point rows the totals are recomputed from them.
    Payloads without rows (the readings endpoint) keep the totals reported by
    the portal.
    """
    if not payload:
        return Series()
    data = payload.get("data")
    if not isinstance(data, dict):
        return Series()

    zones_name = data.get("zonesName") or None
    tariff = as_str(data.get("tariff"))
    rows = data.get("allData")

    if isinstance(rows, list) and rows:
        points: List[SeriesPoint] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            point = parse_point(row, default_tariff=tariff)
            if point is not None:
                points.append(point)
        return Series.from_points(points, zones_name=zones_name, tariff=tariff)

    raw_zones = data.get("zones")
    zones: Dict[str, float] = {}
    if isinstance(raw_zones, dict):
        zones = {str(zone): safe_float(value) for zone, value in raw_zones.items()}
    return Series(
        points=[],
        sum=safe_float(data.get("sum")),
        zones=zones,
        zones_name=zones_name,
        tariff=tariff,
    )


def decode_series_body(body: str) -> Optional[Series]:
    """Parse a successful response body into a Series, or None if it is not one."""
    if not is_success_body(body):
        return None
    payload = decode_json_body(body)
    if payload is None:
        return None
    return parse_series(payload)


# ─────────────────────────────────────────────────────────────────────────────
# Merging
# ─────────────────────────────────────────────────────────────────────────────

def merge_series(accumulated: Series, update: Series) -> Series:
    """Fold ``update`` into ``accumulated`` and return a new Series.

    Points are unioned by (date, hour) with ``update`` overwriting duplicates.
    Zone-name and tariff metadata keep the first value seen. Once either side
    carries points the totals follow the points, so a row-less side's
    portal total is dropped and logged.
    """
    zones_name = accumulated.zones_name or update.zones_name
    tariff = accumulated.tariff or update.tariff

    if accumulated.points or update.points:
        for side in (accumulated, update):
            if not side.points and side.sum:
                LOGGER.warning(
                    "Dropping row-less total %.3f while merging hourly series",
                    side.sum,
                )
        return Series.from_points(
            [*accumulated.points, *update.points],
            zones_name=zones_name,
            tariff=tariff,
        )

    zones = dict(accumulated.zones)
    for zone, value in update.zones.items():
        zones[zone] = zones.get(zone, 0.0) + value
    return Series(
        points=[],
        sum=accumulated.sum + update.sum,
        zones=zones,
        zones_name=zones_name,
        tariff=tariff,
    )


__all__ = [
    "safe_float",
    "as_str",
    "is_success_body",
    "decode_json_body",
    "parse_point",
    "parse_series",
    "decode_series_body",
    "merge_series",
]
