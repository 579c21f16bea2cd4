"""Response envelopes, redaction and result files.

Every caller-visible outcome is rendered here into a JSON envelope
``{"status": "ok"|"error", "where": ..., ...}`` together with its HTTP status.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple, Union

from elicznik_bridge.clients.tauron.models import (
    EncodingError,
    EnergyDirection,
    InvalidInputError,
)
from elicznik_bridge.core.models import (
    BridgeFailure,
    BridgeOutcome,
    BridgeRequest,
    BridgeResult,
)
from elicznik_bridge.utils.date_utils import DateRange

if TYPE_CHECKING:
    from elicznik_bridge.core.pipeline import EnergyBridge

LOGGER = logging.getLogger(__name__)

ENCODE_FAILURE_BODY = '{"status":"error","where":"encode","message":"JSON encoding failed"}'
SESSION_STAGES = ("login", "select_meter")


def redact_login(user: str) -> str:
    """Keep at most the first two characters of a login."""
    return f"{(user or '')[:2]}***"


def input_summary(
    request: BridgeRequest, date_range: DateRange, *, include_period: bool = False
) -> Dict[str, Any]:
    """Echo of the caller's input with the login redacted."""
    summary: Dict[str, Any] = {
        "user": redact_login(request.user),
        "meter": request.meter,
        "type": request.direction.value,
        "balanced": 1 if request.balanced else 0,
        "from": date_range.iso_start,
        "to": date_range.iso_end,
    }
    if include_period:
        summary["period"] = request.period
    return summary


def build_success_payload(request: BridgeRequest, result: BridgeResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "status": "ok",
        "where": "data",
        "how": result.how,
        "period": result.period,
        "input": input_summary(request, result.date_range),
    }
    if request.total_only:
        payload["value"] = result.value
        return payload
    payload["attempts"] = [attempt.to_dict() for attempt in result.attempts]
    payload["data"] = result.series.to_payload()
    return payload


def build_failure_payload(failure: BridgeFailure) -> Dict[str, Any]:
    """Render a failure; session stages list their attempts as ``steps``."""
    payload: Dict[str, Any] = {
        "status": "error",
        "where": failure.where,
        "message": failure.message,
    }
    payload.update(failure.extra)
    if failure.where in SESSION_STAGES:
        payload["steps"] = [attempt.to_dict() for attempt in failure.attempts]
    elif failure.attempts:
        payload["attempts"] = [attempt.to_dict() for attempt in failure.attempts]
    return payload


def result_filename(
    meter: str,
    direction: Union[EnergyDirection, str],
    balanced: bool,
    date_range: DateRange,
    *,
    total_only: bool = False,
) -> str:
    """Name of the file a saved response is written to.

    Example:
        ``tauron_590243000000000000_consumption_bal1_20240101_20240131.json``
    """
    kind = direction.value if isinstance(direction, EnergyDirection) else str(direction)
    suffix = ".min.json" if total_only else ".json"
    return "tauron_{}_{}_bal{}_{}_{}{}".format(
        meter,
        kind,
        1 if balanced else 0,
        date_range.start.strftime("%Y%m%d"),
        date_range.end.strftime("%Y%m%d"),
        suffix,
    )


def encode_payload(payload: Mapping[str, Any]) -> str:
    """Serialize a payload to JSON, keeping non-ASCII text as is.

    Raises:
        EncodingError: If the payload is not JSON-serializable.
    """
    try:
        return json.dumps(payload, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EncodingError("JSON encoding failed") from exc


def save_payload(directory: Path, name: str, payload: Mapping[str, Any]) -> Path:
    """Write a payload atomically and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    text = encode_payload(payload)

    fd, tmp_name = tempfile.mkstemp(dir=str(directory), prefix=".result-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    LOGGER.info("Saved result to %s", path)
    return path


class ResponseAssembler:
    """Turns pipeline outcomes into ``(status_code, body)`` pairs."""

    def __init__(self, output_dir: Optional[Path] = None) -> None:
        self._output_dir = Path(output_dir) if output_dir is not None else Path(".")

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def payload_for(
        self, outcome: BridgeOutcome, request: Optional[BridgeRequest] = None
    ) -> Tuple[int, Dict[str, Any]]:
        if isinstance(outcome, BridgeFailure):
            return outcome.status_code, build_failure_payload(outcome)
        if request is None:
            raise ValueError("A successful outcome needs its request to be rendered")

        payload = build_success_payload(request, outcome)
        if request.save:
            name = result_filename(
                request.meter,
                request.direction,
                request.balanced,
                outcome.date_range,
                total_only=request.total_only,
            )
            try:
                save_payload(self._output_dir, name, payload)
            except (OSError, EncodingError) as exc:
                LOGGER.error("Could not save result %s: %s", name, exc)
                payload["save_error"] = str(exc)
            else:
                outcome.saved_file = name
                payload["saved_file"] = name
        return 200, payload

    def render(
        self, outcome: BridgeOutcome, request: Optional[BridgeRequest] = None
    ) -> Tuple[int, str]:
        status, payload = self.payload_for(outcome, request)
        try:
            return status, encode_payload(payload)
        except EncodingError as exc:
            LOGGER.error("Failed to encode %s response: %s", payload.get("where"), exc.__cause__)
            return EncodingError.status_code, ENCODE_FAILURE_BODY


def respond(
    params: Mapping[str, Optional[str]],
    *,
    bridge: "EnergyBridge",
    assembler: ResponseAssembler,
) -> Tuple[int, str]:
    """Handle one query-style request from parameters to encoded response."""
    try:
        request = BridgeRequest.from_query(params)
    except InvalidInputError as exc:
        LOGGER.info("Rejected request: %s", exc.message)
        return assembler.render(BridgeFailure.from_error(exc))
    return assembler.render(bridge.execute(request), request)


__all__ = [
    "ENCODE_FAILURE_BODY",
    "ResponseAssembler",
    "build_failure_payload",
    "build_success_payload",
    "encode_payload",
    "input_summary",
    "redact_login",
    "respond",
    "result_filename",
    "save_payload",
]
