"""Per-hour self-consumption balancing of two opposing series."""
from __future__ import annotations

import logging
from typing import List, Optional

from elicznik_bridge.clients.tauron.constants import DEFAULT_EXTRA, DEFAULT_STATUS
from elicznik_bridge.clients.tauron.models import Series, SeriesPoint

LOGGER = logging.getLogger(__name__)


def balance_series(primary: Optional[Series], other: Optional[Series]) -> Series:
    """Net ``other`` out of ``primary`` hour by hour.

    For every (date, hour) present in either series the balanced value is
    ``max(primary - other, 0)``, a missing side counting as zero. Passing
    consumption as ``primary`` yields import from the grid after on-site
    generation; passing generation yields export after self-consumption.

    Row metadata comes from the primary point when it exists, otherwise from
    the other one. Series-level zone names and tariff come from the first
    series that carries them.
    """
    primary = primary or Series()
    other = other or Series()
    primary_points = primary.by_key()
    other_points = other.by_key()

    points: List[SeriesPoint] = []
    for key in sorted(set(primary_points) | set(other_points)):
        p = primary_points.get(key)
        o = other_points.get(key)
        net = max((p.value if p else 0.0) - (o.value if o else 0.0), 0.0)
        base = p or o
        points.append(
            base.model_copy(update={"value": net, "status": DEFAULT_STATUS, "extra": DEFAULT_EXTRA})
        )

    balanced = Series.from_points(
        points,
        zones_name=primary.zones_name or other.zones_name,
        tariff=primary.tariff or other.tariff,
    )
    LOGGER.debug(
        "Balanced %d primary against %d other points: sum %.3f -> %.3f",
        len(primary_points),
        len(other_points),
        primary.sum,
        balanced.sum,
    )
    return balanced


__all__ = ["balance_series"]
