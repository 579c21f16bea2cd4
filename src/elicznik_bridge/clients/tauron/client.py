from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from elicznik_bridge.utils.date_utils import DateRange, format_portal_date

from .constants import ENERGY_PROFILE, HOW_NONE, HOW_PER_DAY, HOW_RANGE, HOW_READINGS
from .models import ClientConfig, EnergyDirection, FetchAttempt, Series
from .parsers import decode_series_body, merge_series
from .rate_limiter import RateLimiter
from .session import PortalResponse, SessionClient

LOGGER = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Result of trying one endpoint for one direction.

    Attributes:
        ok: Whether a series was obtained.
        how: ``range`` (bulk), ``per-day``, ``readings`` or ``none``.
        code: HTTP status of the deciding request.
        length: Body length of the deciding request.
        series: Parsed series when ``ok``.
        days_fetched: Number of days that answered during per-day fallback.
    """
    ok: bool
    how: str
    code: int
    length: int
    series: Optional[Series] = None
    days_fetched: int = 0


# Series fetcher working on a logged-in session with a selected meter
class TauronClient:
    def __init__(
        self,
        session: SessionClient,
        *,
        config: Optional[ClientConfig] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._session = session
        self._config = config or session.config
        self._limiter = limiter or RateLimiter(self._config.throttle_seconds)

    @property
    def attempts(self) -> List[FetchAttempt]:
        return self._session.attempts

    @property
    def energy_roots(self) -> List[str]:
        return self._config.energy_roots

    # Build form payload for an energy request
    def _energy_payload(
        self, date_from: str, date_to: str, direction: EnergyDirection
    ) -> Dict[str, Any]:
        return {
            "from": date_from,
            "to": date_to,
            "profile": ENERGY_PROFILE,
            "type": direction.type_key,
            "energy": direction.energy_code,
        }

    def _post(self, url: str, payload: Dict[str, Any]) -> PortalResponse:
        self._limiter.wait()
        return self._session.request("POST", url, data=payload)

    def fetch_series(
        self, root: str, date_range: DateRange, direction: EnergyDirection
    ) -> FetchOutcome:
        """Fetch one direction from one energy endpoint.

        Tries the whole range in a single request first. If that is refused,
        requests every day separately and folds the days that answered into
        one series; a single answering day is enough to succeed.
        """
        bulk = self._post(
            root,
            self._energy_payload(date_range.portal_start, date_range.portal_end, direction),
        )
        if bulk.status_code == 200:
            series = decode_series_body(bulk.text)
            if series is not None:
                LOGGER.info(
                    "Fetched %s %s -> %s from %s in one request (%d points)",
                    direction.value,
                    date_range.iso_start,
                    date_range.iso_end,
                    root,
                    len(series.points),
                )
                return FetchOutcome(
                    ok=True, how=HOW_RANGE, code=bulk.status_code, length=bulk.length, series=series
                )

        LOGGER.info(
            "Range request for %s returned %s; falling back to %d per-day requests",
            direction.value,
            bulk.status_code,
            date_range.days,
        )
        merged = Series()
        days_fetched = 0
        for day in date_range.iter_days():
            portal_day = format_portal_date(day)
            response = self._post(root, self._energy_payload(portal_day, portal_day, direction))
            day_series = decode_series_body(response.text) if response.status_code == 200 else None
            if day_series is None:
                LOGGER.debug("No data for %s on %s (status %s)", direction.value, day, response.status_code)
                continue
            merged = merge_series(merged, day_series)
            days_fetched += 1

        if days_fetched:
            LOGGER.info(
                "Per-day fallback for %s answered for %d of %d days",
                direction.value,
                days_fetched,
                date_range.days,
            )
            return FetchOutcome(
                ok=True,
                how=HOW_PER_DAY,
                code=200,
                length=len(json.dumps(merged.to_payload(), ensure_ascii=False).encode("utf-8")),
                series=merged,
                days_fetched=days_fetched,
            )

        return FetchOutcome(ok=False, how=HOW_NONE, code=bulk.status_code, length=bulk.length)

    def fetch_direction(
        self,
        date_range: DateRange,
        direction: EnergyDirection,
        *,
        roots: Optional[Sequence[str]] = None,
        role: str = "primary",
    ) -> Tuple[Optional[FetchOutcome], Optional[str]]:
        """Try the energy endpoints in order and return the first that answers.

        Returns:
            The successful outcome and the endpoint it came from, or
            ``(None, None)`` when every endpoint failed.
        """
        for root in roots if roots is not None else self.energy_roots:
            outcome = self.fetch_series(root, date_range, direction)
            self._session.record(
                f"fetch_{role}",
                endpoint=root,
                code=outcome.code,
                how=outcome.how,
                length=outcome.length,
                direction=direction.value,
            )
            if outcome.ok:
                return outcome, root
        LOGGER.warning("No energy endpoint returned %s data", direction.value)
        return None, None

    def fetch_readings(self, date_range: DateRange, direction: EnergyDirection) -> FetchOutcome:
        """Query the coarse readings endpoint. Succeeds or fails as a whole."""
        url = self._config.readings_url
        response = self._post(
            url,
            {
                "from": date_range.portal_start,
                "to": date_range.portal_end,
                "type": direction.readings_type,
            },
        )
        series = decode_series_body(response.text) if response.status_code == 200 else None
        outcome = FetchOutcome(
            ok=series is not None,
            how=HOW_READINGS,
            code=response.status_code,
            length=response.length,
            series=series,
        )
        self._session.record(
            "readings",
            endpoint=url,
            code=outcome.code,
            how=outcome.how,
            length=outcome.length,
            direction=direction.value,
        )
        return outcome


__all__ = [
    "FetchOutcome",
    "TauronClient",
]
