"""Bridge core: period resolution, balancing, the pipeline and response assembly."""

from .assembler import ResponseAssembler, respond
from .balancer import balance_series
from .models import BridgeFailure, BridgeOutcome, BridgeRequest, BridgeResult
from .periods import resolve_period
from .pipeline import EnergyBridge

__all__ = [
    "BridgeFailure",
    "BridgeOutcome",
    "BridgeRequest",
    "BridgeResult",
    "EnergyBridge",
    "ResponseAssembler",
    "balance_series",
    "resolve_period",
    "respond",
]
