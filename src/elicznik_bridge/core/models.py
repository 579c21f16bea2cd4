"""Request and outcome types exchanged between the pipeline and its callers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

from elicznik_bridge.clients.tauron.constants import ALLOWED_DIRECTIONS, ALLOWED_PERIODS
from elicznik_bridge.clients.tauron.models import (
    BridgeError,
    EnergyDirection,
    FetchAttempt,
    InvalidInputError,
    Series,
)
from elicznik_bridge.utils.date_utils import DateRange

MISSING_CREDENTIALS_MESSAGE = "Missing user, pass, or meter parameters."


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    message = str(errors[0].get("msg", exc))
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


def _flag(params: Mapping[str, Optional[str]], name: str) -> str:
    return (params.get(name) or "0").strip()


class BridgeRequest(BaseModel):
    """Validated caller request.

    Attributes:
        user: Portal login.
        password: Portal password.
        meter: Metering point identifier.
        direction: Series direction to return.
        balanced: Net the opposite direction out hour by hour.
        period: ``range``, ``monthly``, ``yearly`` or ``last_12_months``.
        month: ``YYYY-MM`` hint for ``monthly``.
        year: ``YYYY`` hint for ``yearly``.
        date_from: Range start for ``range``.
        date_to: Range end for ``range``.
        total_only: Return only the total.
        save: Persist the response to a file.
    """

    user: str
    password: str
    meter: str
    direction: EnergyDirection = EnergyDirection.CONSUMPTION
    balanced: bool = False
    period: str = "range"
    month: Optional[str] = None
    year: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    total_only: bool = False
    save: bool = False

    model_config = {"frozen": True}

    @field_validator("user", "password", "meter", mode="before")
    @classmethod
    def require_text(cls, v: Any) -> str:
        text = str(v).strip() if v is not None else ""
        if not text:
            raise ValueError(MISSING_CREDENTIALS_MESSAGE)
        return text

    @field_validator("period", mode="before")
    @classmethod
    def normalize_period(cls, v: Any) -> str:
        text = str(v or "range").strip().lower()
        if text not in ALLOWED_PERIODS:
            raise ValueError(f"Invalid period '{text}'. Allowed: {','.join(ALLOWED_PERIODS)}")
        return text

    @field_validator("month", "year", "date_from", "date_to", mode="before")
    @classmethod
    def strip_optional(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @classmethod
    def from_query(cls, params: Mapping[str, Optional[str]]) -> "BridgeRequest":
        """Build a request from query-string style parameters.

        Recognized names: ``user``, ``pass``, ``meter``, ``from``, ``to``,
        ``type``, ``balanced``, ``period``, ``month``, ``year``,
        ``total_only``, ``save``.

        Raises:
            InvalidInputError: On any missing or malformed parameter.
        """
        if not all((params.get(name) or "").strip() for name in ("user", "pass", "meter")):
            raise InvalidInputError(MISSING_CREDENTIALS_MESSAGE)

        raw_type = params.get("type")
        direction = "consumption" if raw_type is None else raw_type.strip().lower()
        if direction not in ALLOWED_DIRECTIONS:
            if direction == "balanced":
                raise InvalidInputError(
                    "type=balanced is deprecated. Use type=consumption&balanced=1 "
                    "or type=generation&balanced=1"
                )
            raise InvalidInputError(
                f"Invalid type '{direction}'. Allowed: {','.join(ALLOWED_DIRECTIONS)}"
            )

        balanced = _flag(params, "balanced")
        if balanced not in ("0", "1"):
            raise InvalidInputError(f"Invalid balanced value '{balanced}'. Use 0 or 1.")

        try:
            return cls(
                user=params.get("user"),
                password=params.get("pass"),
                meter=params.get("meter"),
                direction=EnergyDirection(direction),
                balanced=balanced == "1",
                period=params.get("period") or "range",
                month=params.get("month"),
                year=params.get("year"),
                date_from=params.get("from"),
                date_to=params.get("to"),
                total_only=_flag(params, "total_only") == "1",
                save=_flag(params, "save") == "1",
            )
        except ValidationError as exc:
            raise InvalidInputError(_validation_message(exc)) from exc

    @property
    def resolution_tag(self) -> str:
        """Tag used for balanced results, e.g. ``consumption_balanced``."""
        return f"{self.direction.value}_balanced"


@dataclass
class BridgeResult:
    """Successful pipeline outcome.

    Attributes:
        how: Resolution tag (``range``, ``per-day``, ``readings`` or
            ``<direction>_balanced``).
        period: Period kind the range was resolved from.
        date_range: Resolved range.
        series: Decoded or derived series.
        attempts: Diagnostics of every exchange.
        saved_file: Name of the result file when the response was saved.
    """
    how: str
    period: str
    date_range: DateRange
    series: Series
    attempts: List[FetchAttempt] = field(default_factory=list)
    saved_file: Optional[str] = None

    ok = True

    @property
    def value(self) -> float:
        """Total of the series, returned for total-only requests."""
        return self.series.sum


@dataclass
class BridgeFailure:
    """Failed pipeline outcome carrying the failing stage tag."""
    where: str
    message: str
    status_code: int
    attempts: List[FetchAttempt] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    ok = False

    @classmethod
    def from_error(cls, exc: BridgeError) -> "BridgeFailure":
        return cls(
            where=exc.where,
            message=exc.message,
            status_code=exc.status_code,
            attempts=list(exc.attempts),
            extra=dict(exc.extra),
        )


BridgeOutcome = Union[BridgeResult, BridgeFailure]


def request_from_validated(**values: Any) -> BridgeRequest:
    """Construct a BridgeRequest, mapping validation errors to InvalidInputError."""
    try:
        return BridgeRequest(**values)
    except ValidationError as exc:
        raise InvalidInputError(_validation_message(exc)) from exc


__all__ = [
    "BridgeRequest",
    "BridgeResult",
    "BridgeFailure",
    "BridgeOutcome",
    "request_from_validated",
]
