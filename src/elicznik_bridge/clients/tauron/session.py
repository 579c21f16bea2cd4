"""Authenticated e-licznik session: warm-up, login, meter selection.

One ``SessionClient`` owns one cookie-bearing connection. Cookies are loaded
from and written back to an injected ``SessionStore`` under a key derived from
the login with SHA-256, so different identities never share state.
"""
from __future__ import annotations

import hashlib
import itertools
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urlparse

import requests
from requests.cookies import create_cookie
from tenacity import retry, retry_if_result, stop_after_attempt

from .constants import BASE_HEADERS, LOGIN_MAX_ATTEMPTS, MAX_REDIRECTS
from .models import (
    AuthenticationError,
    ClientConfig,
    FetchAttempt,
    MeterSelectionError,
)

LOGGER = logging.getLogger(__name__)

CookieRecord = Dict[str, Any]
COOKIE_FIELDS = ("name", "value", "domain", "path", "expires", "secure")


@dataclass
class PortalResponse:
    """Outcome of one HTTP exchange.

    ``status_code`` is 0 and ``error`` is set when the transport failed, so the
    caller decides what a failure means at each step.
    """

    method: str
    request_url: str
    status_code: int = 0
    text: str = ""
    url: str = ""
    content_type: str = ""
    error: Optional[str] = None

    @property
    def length(self) -> int:
        return len(self.text.encode("utf-8"))

    @property
    def transport_ok(self) -> bool:
        return self.error is None


# HTTP Client Protocol
class HTTPClient(Protocol):
    def request(
        self,
        method: str,
        url: str,
        *,
        data: Optional[Mapping[str, Any]],
        headers: Dict[str, str],
        timeout: Tuple[float, float],
    ) -> PortalResponse:
        ...

    def export_cookies(self) -> List[CookieRecord]:
        ...

    def import_cookies(self, cookies: List[CookieRecord]) -> None:
        ...

    def close(self) -> None:
        ...


class RequestsHTTPClient:
    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self._session = session

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.max_redirects = MAX_REDIRECTS
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "RequestsHTTPClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        data: Optional[Mapping[str, Any]],
        headers: Dict[str, str],
        timeout: Tuple[float, float],
    ) -> PortalResponse:
        session = self._get_session()
        response: Optional[requests.Response] = None

        try:
            response = session.request(
                method,
                url,
                data=dict(data) if data is not None else None,
                headers=headers,
                timeout=timeout,
                allow_redirects=True,
            )
            return PortalResponse(
                method=method,
                request_url=url,
                status_code=response.status_code,
                text=response.text,
                url=response.url,
                content_type=response.headers.get("Content-Type", ""),
            )
        except requests.exceptions.RequestException as exc:
            LOGGER.warning("%s %s failed: %s", method, url, exc)
            return PortalResponse(method=method, request_url=url, error=str(exc))
        finally:
            # Release the connection back to the pool
            if response is not None:
                response.close()

    def export_cookies(self) -> List[CookieRecord]:
        cookies: List[CookieRecord] = []
        for cookie in self._get_session().cookies:
            cookies.append(
                {
                    "name": cookie.name,
                    "value": cookie.value,
                    "domain": cookie.domain,
                    "path": cookie.path,
                    "expires": cookie.expires,
                    "secure": bool(cookie.secure),
                }
            )
        return cookies

    def import_cookies(self, cookies: List[CookieRecord]) -> None:
        jar = self._get_session().cookies
        for record in cookies:
            if not record.get("name"):
                continue
            fields = {key: record[key] for key in COOKIE_FIELDS if key in record}
            jar.set_cookie(create_cookie(**fields))


# ─────────────────────────────────────────────────────────────────────────────
# Session Stores
# ─────────────────────────────────────────────────────────────────────────────

class SessionStore(Protocol):
    def get(self, key: str) -> Optional[List[CookieRecord]]:
        ...

    def put(self, key: str, cookies: List[CookieRecord]) -> None:
        ...


class MemorySessionStore:
    """Process-local store, mainly for tests and the long-running server."""

    def __init__(self) -> None:
        self._states: Dict[str, List[CookieRecord]] = {}

    def get(self, key: str) -> Optional[List[CookieRecord]]:
        state = self._states.get(key)
        return [dict(cookie) for cookie in state] if state is not None else None

    def put(self, key: str, cookies: List[CookieRecord]) -> None:
        self._states[key] = [dict(cookie) for cookie in cookies]


class FileSessionStore:
    """One JSON cookie file per identity key.

    Two processes using the same identity race on the same file; there is no
    locking.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"tauron_cookie_{key}.json"

    def get(self, key: str) -> Optional[List[CookieRecord]]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Cannot read cookie file %s: %s", path, exc)
            return None
        if not text.strip():
            return []
        try:
            state = json.loads(text)
        except ValueError:
            LOGGER.warning("Ignoring corrupt cookie file %s", path)
            return None
        return state if isinstance(state, list) else None

    def put(self, key: str, cookies: List[CookieRecord]) -> None:
        """Persist the jar; an unwritable directory only loses the cache."""
        path = self.path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self._directory), prefix=".cookie-", suffix=".tmp")
        except OSError as exc:
            LOGGER.warning("Cannot write cookie file %s: %s", path, exc)
            return
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(cookies, handle)
            os.replace(tmp_name, path)
        except OSError as exc:
            LOGGER.warning("Cannot write cookie file %s: %s", path, exc)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)


def identity_key(login: str, salt: str = "") -> str:
    """Derive the one-way store key for a login."""
    return hashlib.sha256(f"{login}|{salt}".encode("utf-8")).hexdigest()


def cookie_matches_host(domain: Optional[str], host: str) -> bool:
    """True when a cookie domain names ``host`` or one of its subdomains."""
    if not domain or not host:
        return False
    normalized = domain.lower().lstrip(".")
    host = host.lower()
    return normalized == host or normalized.endswith("." + host)


# ─────────────────────────────────────────────────────────────────────────────
# Session Client
# ─────────────────────────────────────────────────────────────────────────────

class SessionPhase(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    WARMED_UP = "warmed_up"
    LOGGED_IN = "logged_in"
    METER_SELECTED = "meter_selected"


class SessionClient:
    def __init__(
        self,
        login: str,
        password: str,
        *,
        config: Optional[ClientConfig] = None,
        http_client: Optional[HTTPClient] = None,
        store: Optional[SessionStore] = None,
        salt: str = "",
    ) -> None:
        self._login = login
        self._password = password
        self._config = config or ClientConfig()
        self._owns_http_client = http_client is None
        self._http_client: HTTPClient = http_client or RequestsHTTPClient()
        self._store: SessionStore = store or MemorySessionStore()
        self._key = identity_key(login, salt)
        self.phase = SessionPhase.UNAUTHENTICATED
        self.attempts: List[FetchAttempt] = []

        # Create-if-absent
        state = self._store.get(self._key)
        if state:
            self._http_client.import_cookies(state)
            LOGGER.debug("Loaded %d cookies for session %s", len(state), self._key[:8])

    def close(self) -> None:
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> "SessionClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def key(self) -> str:
        return self._key

    @property
    def service_host(self) -> str:
        return urlparse(self._config.service_url).hostname or ""

    def _headers(self) -> Dict[str, str]:
        headers = dict(BASE_HEADERS)
        headers["User-Agent"] = self._config.user_agent
        headers["Referer"] = f"{self._config.service_url}/"
        return headers

    def request(
        self, method: str, url: str, data: Optional[Mapping[str, Any]] = None
    ) -> PortalResponse:
        """Send one request on the session and persist the cookie jar."""
        response = self._http_client.request(
            method,
            url,
            data=data,
            headers=self._headers(),
            timeout=(self._config.connect_timeout, self._config.read_timeout),
        )
        self._store.put(self._key, self._http_client.export_cookies())
        return response

    def record(
        self,
        step: str,
        response: Optional[PortalResponse] = None,
        **fields: Any,
    ) -> FetchAttempt:
        """Append a diagnostic attempt; keyword fields override response values."""
        values: Dict[str, Any] = {"step": step}
        if response is not None:
            values.update(
                endpoint=response.request_url,
                code=response.status_code,
                length=response.length,
            )
        values.update(fields)
        attempt = FetchAttempt(**values)
        self.attempts.append(attempt)
        return attempt

    def warm_up(self) -> PortalResponse:
        """GET the service root to collect baseline cookies. Never fatal."""
        response = self.request("GET", f"{self._config.service_url}/")
        self.record("warm", response)
        if response.status_code != 200:
            LOGGER.info("Warm-up returned %s; continuing", response.status_code or response.error)
        self.phase = SessionPhase.WARMED_UP
        return response

    def has_service_cookie(self) -> Dict[str, Any]:
        """Check the live jar, then the persisted state, for a service cookie."""
        host = self.service_host
        live = self._http_client.export_cookies()
        ok_mem = any(cookie_matches_host(cookie.get("domain"), host) for cookie in live)
        ok_file = False
        if not ok_mem:
            persisted = self._store.get(self._key) or []
            ok_file = any(cookie_matches_host(cookie.get("domain"), host) for cookie in persisted)
        return {"ok": ok_mem or ok_file, "mem_count": len(live), "file_ok": ok_file}

    def login(self) -> PortalResponse:
        """POST credentials, retrying once on a status of 300 or more.

        Raises:
            AuthenticationError: If the landing host is not the service host
                or no service cookie was obtained.
        """
        payload = {
            "username": self._login,
            "password": self._password,
            "service": self._config.service_url,
        }
        counter = itertools.count(1)

        @retry(
            retry=retry_if_result(lambda response: response.status_code >= 300),
            stop=stop_after_attempt(LOGIN_MAX_ATTEMPTS),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        def _post() -> PortalResponse:
            response = self.request("POST", self._config.login_url, data=payload)
            self.record(f"login_post_{next(counter)}", response)
            return response

        LOGGER.info("Logging in to %s (session %s)", self.service_host, self._key[:8])
        response = _post()

        eff_host = urlparse(response.url).hostname if response.url else None
        ok_by_redirect = bool(eff_host) and bool(self.service_host) and (
            eff_host.lower() == self.service_host.lower()
        )
        cookie_info = self.has_service_cookie()

        if not ok_by_redirect or not cookie_info["ok"]:
            self.record(
                "login_check",
                endpoint=response.url or None,
                code=response.status_code,
                detail={
                    "eff_url": response.url,
                    "service_host": self.service_host,
                    "ok_by_redirect": ok_by_redirect,
                    "ok_by_cookie": cookie_info["ok"],
                    "cookie_mem_count": cookie_info["mem_count"],
                    "cookie_file_ok": cookie_info["file_ok"],
                },
            )
            LOGGER.warning(
                "Login rejected: landed on %s, service cookie %s",
                eff_host or "<nowhere>",
                "present" if cookie_info["ok"] else "missing",
            )
            raise AuthenticationError(
                "Login did not look successful",
                attempts=self.attempts,
                extra={"hint": "Check credentials / rate limits"},
            )

        self.phase = SessionPhase.LOGGED_IN
        return response

    def select_meter(self, meter: str) -> PortalResponse:
        """Select the metering point for subsequent data requests.

        Raises:
            MeterSelectionError: If the status is outside [200, 400).
        """
        response = self.request("POST", self._config.select_url, data={"site[client]": meter})
        self.record("select_meter", response)
        if not 200 <= response.status_code < 400:
            LOGGER.warning("Meter selection failed with status %s", response.status_code)
            raise MeterSelectionError("Failed to select meter", attempts=self.attempts)
        self.phase = SessionPhase.METER_SELECTED
        LOGGER.info("Meter %s selected", meter)
        return response

    def open(self, meter: str) -> None:
        """Run warm-up, login and meter selection in order."""
        self.warm_up()
        self.login()
        self.select_meter(meter)


__all__ = [
    "PortalResponse",
    "HTTPClient",
    "RequestsHTTPClient",
    "SessionStore",
    "MemorySessionStore",
    "FileSessionStore",
    "identity_key",
    "cookie_matches_host",
    "SessionPhase",
    "SessionClient",
]
