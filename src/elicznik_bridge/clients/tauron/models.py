"""Data models and custom exceptions for the Tauron e-licznik client."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_EXTRA,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_STATUS,
    DEFAULT_TARIFF,
    DEFAULT_THROTTLE_SECONDS,
    DEFAULT_ZONE,
    DEFAULT_ZONE_NAME,
)

if TYPE_CHECKING:
    import pandas as pd

    from elicznik_bridge.config.settings import Settings

SeriesKey = Tuple[str, str]


class EnergyDirection(str, Enum):
    """Energy flow direction as seen from the grid."""

    CONSUMPTION = "consumption"
    GENERATION = "generation"

    @property
    def energy_code(self) -> int:
        """Numeric ``energy`` selector of the energy endpoints."""
        return 2 if self is EnergyDirection.GENERATION else 1

    @property
    def type_key(self) -> str:
        """String ``type`` selector of the energy endpoints."""
        return "oze" if self is EnergyDirection.GENERATION else "consum"

    @property
    def readings_type(self) -> str:
        """``type`` selector of the readings endpoint."""
        return "energia-oddana" if self is EnergyDirection.GENERATION else "energia-pobrana"

    @property
    def opposite(self) -> "EnergyDirection":
        if self is EnergyDirection.GENERATION:
            return EnergyDirection.CONSUMPTION
        return EnergyDirection.GENERATION


class SeriesPoint(BaseModel):
    """One hourly value of a series.

    Attributes:
        date: Day of the reading as sent by the portal.
        hour: Hour of the day, zero-padded to two digits.
        value: Energy for that hour (portal ``EC``), kWh.
        zone: Tariff zone id.
        zone_name: Human-readable zone label.
        tariff: Tariff code (e.g. G11, G12).
        status: Portal row status flag.
        extra: Portal row extra flag.
    """

    date: str
    hour: str
    value: float = 0.0
    zone: str = DEFAULT_ZONE
    zone_name: str = DEFAULT_ZONE_NAME
    tariff: str = DEFAULT_TARIFF
    status: str = DEFAULT_STATUS
    extra: str = DEFAULT_EXTRA

    @field_validator("hour", mode="before")
    @classmethod
    def pad_hour(cls, v: Any) -> str:
        """Zero-pad numeric hours so that keys sort chronologically."""
        text = str(v).strip()
        if text.isdigit():
            return text.zfill(2)
        return text

    @property
    def key(self) -> SeriesKey:
        return (self.date, self.hour)

    def to_row(self) -> Dict[str, Any]:
        """Render the point in the portal's ``allData`` row shape."""
        return {
            "EC": self.value,
            "Date": self.date,
            "Hour": self.hour,
            "Status": self.status,
            "Extra": self.extra,
            "Zone": self.zone,
            "ZoneName": self.zone_name,
            "Taryfa": self.tariff,
        }


class Series(BaseModel):
    """Hourly series with aggregate totals.

    Attributes:
        points: Points ordered by (date, hour).
        sum: Total of all point values.
        zones: Per-zone totals.
        zones_name: Zone naming metadata as provided by the portal.
        tariff: Tariff code as provided by the portal.
    """

    points: List[SeriesPoint] = Field(default_factory=list)
    sum: float = 0.0
    zones: Dict[str, float] = Field(default_factory=dict)
    zones_name: Optional[Any] = None
    tariff: Optional[str] = None

    @classmethod
    def from_points(
        cls,
        points: Iterable[SeriesPoint],
        *,
        zones_name: Optional[Any] = None,
        tariff: Optional[str] = None,
    ) -> "Series":
        """Build a series whose totals are recomputed from its points.

        Points are deduplicated by key (the last one wins) and sorted.
        """
        by_key: Dict[SeriesKey, SeriesPoint] = {}
        for point in points:
            by_key[point.key] = point
        ordered = [by_key[key] for key in sorted(by_key)]
        zones: Dict[str, float] = {}
        total = 0.0
        for point in ordered:
            zones[point.zone] = zones.get(point.zone, 0.0) + point.value
            total += point.value
        return cls(points=ordered, sum=total, zones=zones, zones_name=zones_name, tariff=tariff)

    @property
    def is_empty(self) -> bool:
        return not self.points

    def by_key(self) -> Dict[SeriesKey, SeriesPoint]:
        return {point.key: point for point in self.points}

    def to_payload(self) -> Dict[str, Any]:
        """Render the series in the portal's JSON envelope."""
        data: Dict[str, Any] = {
            "allData": [point.to_row() for point in self.points],
            "sum": self.sum,
            "zones": dict(self.zones),
        }
        if self.zones_name:
            data["zonesName"] = self.zones_name
        if self.tariff:
            data["tariff"] = self.tariff
        return {"success": True, "data": data}

    def to_dataframe(self) -> "pd.DataFrame":
        """Return one row per point with date, hour, value, zone and tariff columns."""
        import pandas as pd

        columns = ["date", "hour", "value", "zone", "zone_name", "tariff"]
        frame = pd.DataFrame(
            [point.model_dump(include=set(columns)) for point in self.points],
            columns=columns,
        )
        return frame


class FetchAttempt(BaseModel):
    """Diagnostic record of one exchange with the portal.

    Attributes:
        step: Pipeline step (warm, login_post_1, select_meter, fetch_primary, ...).
        endpoint: URL the request went to.
        code: HTTP status, 0 when the transport failed.
        how: Resolution strategy for fetch steps (range, per-day, none, readings).
        length: Response body length in bytes.
        direction: Energy direction for fetch steps.
        detail: Extra step-specific diagnostics.
    """

    step: str
    endpoint: Optional[str] = None
    code: int = 0
    how: Optional[str] = None
    length: int = 0
    direction: Optional[str] = None
    detail: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ClientConfig(BaseModel):
    """Configuration settings for the e-licznik client.

    Attributes:
        login_url: Login form endpoint.
        service_url: e-licznik service root.
        user_agent: User agent presented to the portal.
        connect_timeout: Connect timeout in seconds.
        read_timeout: Read timeout in seconds.
        throttle_seconds: Pause between per-day requests.
    """

    login_url: str = "https://logowanie.tauron-dystrybucja.pl/login"
    service_url: str = "https://elicznik.tauron-dystrybucja.pl"
    user_agent: str = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome Safari"
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    throttle_seconds: float = DEFAULT_THROTTLE_SECONDS

    @property
    def select_url(self) -> str:
        return f"{self.service_url}/ustaw_punkt"

    @property
    def energy_url(self) -> str:
        return f"{self.service_url}/energia/api"

    @property
    def energy_wo_url(self) -> str:
        return f"{self.service_url}/energia/wo/api"

    @property
    def readings_url(self) -> str:
        return f"{self.service_url}/odczyty/api"

    @property
    def energy_roots(self) -> List[str]:
        """Energy endpoints in the order they are tried."""
        return [self.energy_url, self.energy_wo_url]

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ClientConfig":
        portal = settings.portal
        return cls(
            login_url=portal.login_url,
            service_url=portal.service_url,
            user_agent=portal.tauron_user_agent,
            connect_timeout=portal.tauron_connect_timeout,
            read_timeout=portal.tauron_read_timeout,
            throttle_seconds=portal.tauron_throttle_seconds,
        )


class BridgeError(Exception):
    """Base exception for all bridge failures.

    Subclasses fix the ``where`` tag and the HTTP status class reported to
    callers.
    """

    where = "internal"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        attempts: Optional[List[FetchAttempt]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.attempts: List[FetchAttempt] = list(attempts or [])
        self.extra: Dict[str, Any] = dict(extra or {})


class InvalidInputError(BridgeError):
    """Missing or malformed caller input. Never retried."""

    where = "inputs"
    status_code = 400


class AuthenticationError(BridgeError):
    """Login did not reach the service host or no service cookie was set."""

    where = "login"
    status_code = 502


class MeterSelectionError(BridgeError):
    """Meter selection endpoint answered outside [200, 400)."""

    where = "select_meter"
    status_code = 502


class UpstreamFetchError(BridgeError):
    """No endpoint or strategy produced a series."""

    where = "fetch"
    status_code = 502


class EncodingError(BridgeError):
    """The final result could not be serialized."""

    where = "encode"
    status_code = 500


__all__ = [
    "SeriesKey",
    "EnergyDirection",
    "SeriesPoint",
    "Series",
    "FetchAttempt",
    "ClientConfig",
    "BridgeError",
    "InvalidInputError",
    "AuthenticationError",
    "MeterSelectionError",
    "UpstreamFetchError",
    "EncodingError",
]
