"""Tauron e-licznik Client Package.

This package provides a testable interface to the e-licznik portal with
support for:
- Cookie-persisting sessions keyed by a hash of the login (injectable store)
- Warm-up, login with a single retry, and meter selection
- Range requests with a throttled per-day fallback
- Type-safe series via Pydantic models

Example usage:
    >>> from elicznik_bridge.clients.tauron import SessionClient, TauronClient, EnergyDirection
    >>> with SessionClient("login", "password") as session:
    ...     session.open("590243000000000000")
    ...     outcome, root = TauronClient(session).fetch_direction(date_range, EnergyDirection.CONSUMPTION)
"""

from __future__ import annotations

from .client import FetchOutcome, TauronClient
from .models import (
    AuthenticationError,
    BridgeError,
    ClientConfig,
    EncodingError,
    EnergyDirection,
    FetchAttempt,
    InvalidInputError,
    MeterSelectionError,
    Series,
    SeriesPoint,
    UpstreamFetchError,
)
from .parsers import decode_series_body, merge_series, parse_series
from .rate_limiter import RateLimiter
from .session import (
    FileSessionStore,
    HTTPClient,
    MemorySessionStore,
    PortalResponse,
    RequestsHTTPClient,
    SessionClient,
    SessionPhase,
    SessionStore,
    identity_key,
)

__all__ = [
    # Clients
    "SessionClient",
    "TauronClient",
    "FetchOutcome",
    "SessionPhase",
    # HTTP layer and session stores
    "HTTPClient",
    "RequestsHTTPClient",
    "PortalResponse",
    "SessionStore",
    "MemorySessionStore",
    "FileSessionStore",
    "identity_key",
    # Models
    "ClientConfig",
    "EnergyDirection",
    "FetchAttempt",
    "Series",
    "SeriesPoint",
    # Parsers
    "parse_series",
    "decode_series_body",
    "merge_series",
    # Rate limiter
    "RateLimiter",
    # Exceptions
    "BridgeError",
    "InvalidInputError",
    "AuthenticationError",
    "MeterSelectionError",
    "UpstreamFetchError",
    "EncodingError",
]
