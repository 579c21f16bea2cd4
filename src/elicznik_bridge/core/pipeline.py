"""End-to-end acquisition pipeline.

Resolves the requested period, opens an authenticated session on the selected
meter, fetches the requested direction (and the opposite one when balancing)
and produces a single outcome value.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from elicznik_bridge.clients.tauron import (
    BridgeError,
    ClientConfig,
    FileSessionStore,
    HTTPClient,
    RateLimiter,
    RequestsHTTPClient,
    SessionClient,
    SessionStore,
    TauronClient,
    UpstreamFetchError,
)
from elicznik_bridge.clients.tauron.models import Series
from elicznik_bridge.config.settings import Settings, get_settings
from elicznik_bridge.core.assembler import input_summary
from elicznik_bridge.core.balancer import balance_series
from elicznik_bridge.core.models import BridgeFailure, BridgeOutcome, BridgeRequest, BridgeResult
from elicznik_bridge.core.periods import resolve_period
from elicznik_bridge.utils.date_utils import DateRange

LOGGER = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data returned from any root (login ok, meter selected)."


class EnergyBridge:
    """Orchestrates one request from credentials to series.

    Args:
        settings: Settings to use; defaults to the process singleton.
        config: Client configuration; defaults to one derived from settings.
        http_client_factory: Callable producing a fresh HTTP client per
            request; defaults to ``RequestsHTTPClient``.
        store: Cookie store; defaults to a file store in the configured
            cookie directory.
        limiter: Throttle shared by per-day requests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        config: Optional[ClientConfig] = None,
        http_client_factory: Optional[Callable[[], HTTPClient]] = None,
        store: Optional[SessionStore] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = config or ClientConfig.from_settings(self._settings)
        self._http_client_factory = http_client_factory or RequestsHTTPClient
        self._store = store or FileSessionStore(self._settings.storage.bridge_cookie_dir)
        self._limiter = limiter

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config(self) -> ClientConfig:
        return self._config

    def resolve(self, request: BridgeRequest) -> DateRange:
        return resolve_period(
            request.period,
            month=request.month,
            year=request.year,
            date_from=request.date_from,
            date_to=request.date_to,
            timezone=self._settings.portal.tauron_timezone,
        )

    def fetch(self, request: BridgeRequest) -> BridgeResult:
        """Run the pipeline.

        Raises:
            InvalidInputError: Before any network traffic, on bad inputs.
            AuthenticationError: When the login does not land on the service.
            MeterSelectionError: When the portal refuses the meter.
            UpstreamFetchError: When no endpoint produced the series.
        """
        date_range = self.resolve(request)
        LOGGER.info(
            "Fetching %s%s for meter %s, %s -> %s (%s)",
            request.direction.value,
            " balanced" if request.balanced else "",
            request.meter,
            date_range.iso_start,
            date_range.iso_end,
            request.period,
        )

        http_client = self._http_client_factory()
        try:
            session = SessionClient(
                request.user,
                request.password,
                config=self._config,
                http_client=http_client,
                store=self._store,
                salt=self._settings.storage.bridge_cookie_salt,
            )
            session.open(request.meter)
            client = TauronClient(session, config=self._config, limiter=self._limiter)
            how, series = self._acquire(client, request, date_range)
        finally:
            http_client.close()

        if series is None:
            raise UpstreamFetchError(
                NO_DATA_MESSAGE,
                attempts=session.attempts,
                extra={"input": input_summary(request, date_range, include_period=True)},
            )

        LOGGER.info("Resolved via %s: %d points, sum %.3f", how, len(series.points), series.sum)
        return BridgeResult(
            how=how,
            period=request.period,
            date_range=date_range,
            series=series,
            attempts=list(session.attempts),
        )

    def execute(self, request: BridgeRequest) -> BridgeOutcome:
        """Run the pipeline and return a failure value instead of raising."""
        try:
            return self.fetch(request)
        except BridgeError as exc:
            LOGGER.warning("Bridge failed at %s: %s", exc.where, exc.message)
            return BridgeFailure.from_error(exc)

    def _acquire(
        self, client: TauronClient, request: BridgeRequest, date_range: DateRange
    ) -> Tuple[Optional[str], Optional[Series]]:
        direction = request.direction
        primary, root = client.fetch_direction(date_range, direction, role="primary")

        if primary is None:
            if request.balanced:
                return None, None
            readings = client.fetch_readings(date_range, direction)
            return (readings.how, readings.series) if readings.ok else (None, None)

        if not request.balanced:
            return primary.how, primary.series

        roots = [root] + [r for r in client.energy_roots if r != root]
        other, _ = client.fetch_direction(date_range, direction.opposite, roots=roots, role="other")
        if other is None:
            LOGGER.warning(
                "No %s series to balance against; treating it as empty",
                direction.opposite.value,
            )
        other_series = other.series if other is not None else Series()
        return request.resolution_tag, balance_series(primary.series, other_series)


__all__ = ["EnergyBridge", "NO_DATA_MESSAGE"]
