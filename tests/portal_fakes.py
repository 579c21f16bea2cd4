"""Scripted stand-in for the e-licznik portal and payload builders used by tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from elicznik_bridge.clients.tauron import PortalResponse

SERVICE_HOST = "elicznik.tauron-dystrybucja.pl"
SERVICE_URL = f"https://{SERVICE_HOST}"
LOGIN_URL = "https://logowanie.tauron-dystrybucja.pl/login"
SELECT_URL = f"{SERVICE_URL}/ustaw_punkt"
ENERGY_URL = f"{SERVICE_URL}/energia/api"
ENERGY_WO_URL = f"{SERVICE_URL}/energia/wo/api"
READINGS_URL = f"{SERVICE_URL}/odczyty/api"


# ─────────────────────────────────────────────────────────────────────────────
# Portal payload builders
# ─────────────────────────────────────────────────────────────────────────────

def portal_rows(date: str, values: Mapping[int, float], *, zone: str = "1") -> List[Dict[str, Any]]:
    """Build ``allData`` rows for one day from an {hour: value} mapping."""
    return [
        {
            "EC": value,
            "Date": date,
            "Hour": str(hour),
            "Status": "0",
            "Extra": "N",
            "Zone": zone,
            "ZoneName": "Cała doba",
            "Taryfa": "G11",
        }
        for hour, value in sorted(values.items())
    ]


def portal_body(
    rows: List[Dict[str, Any]],
    *,
    zones_name: Optional[Any] = None,
    tariff: Optional[str] = None,
    success: bool = True,
) -> str:
    """Encode rows in the envelope the energy endpoints answer with."""
    total = sum(float(row["EC"]) for row in rows)
    data: Dict[str, Any] = {"allData": rows, "sum": total, "zones": {"1": total}}
    if zones_name is not None:
        data["zonesName"] = zones_name
    if tariff is not None:
        data["tariff"] = tariff
    return json.dumps({"success": success, "data": data}, ensure_ascii=False)


def service_cookie(name: str = "PHPSESSID", value: str = "session-1") -> Dict[str, Any]:
    return {
        "name": name,
        "value": value,
        "domain": SERVICE_HOST,
        "path": "/",
        "expires": None,
        "secure": True,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Fake portal
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Reply:
    """Scripted answer of the fake portal.

    ``url`` is the landing URL after redirects (defaults to the request URL)
    and ``cookies`` are added to the jar when the reply is delivered.
    """

    status: int = 200
    body: str = ""
    url: Optional[str] = None
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


class FakePortalClient:
    """In-memory HTTPClient answering from scripted routes."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Dict[str, Any]] = []
        self.jar: List[Dict[str, Any]] = []
        self.closed = False

    def on(self, method: str, url: str, *replies: Any) -> "FakePortalClient":
        """Script a route with a queue of replies (the last one repeats) or a handler."""
        if len(replies) == 1 and callable(replies[0]):
            self.routes[(method, url)] = replies[0]
        else:
            self.routes[(method, url)] = list(replies)
        return self

    def request(
        self,
        method: str,
        url: str,
        *,
        data: Optional[Mapping[str, Any]],
        headers: Dict[str, str],
        timeout: Tuple[float, float],
    ) -> PortalResponse:
        self.calls.append(
            {
                "method": method,
                "url": url,
                "data": dict(data) if data is not None else None,
                "headers": headers,
                "timeout": timeout,
            }
        )
        route = self.routes.get((method, url))
        if route is None:
            reply = Reply(status=404, body="not found")
        elif callable(route):
            reply = route(data)
        else:
            reply = route.pop(0) if len(route) > 1 else route[0]

        for cookie in reply.cookies:
            self._set_cookie(cookie)
        if reply.error is not None:
            return PortalResponse(method=method, request_url=url, error=reply.error)
        return PortalResponse(
            method=method,
            request_url=url,
            status_code=reply.status,
            text=reply.body,
            url=reply.url or url,
            content_type="application/json",
        )

    def _set_cookie(self, cookie: Dict[str, Any]) -> None:
        self.jar = [
            c for c in self.jar
            if (c.get("name"), c.get("domain")) != (cookie.get("name"), cookie.get("domain"))
        ]
        self.jar.append(dict(cookie))

    def export_cookies(self) -> List[Dict[str, Any]]:
        return [dict(cookie) for cookie in self.jar]

    def import_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        for cookie in cookies:
            self._set_cookie(cookie)

    def close(self) -> None:
        self.closed = True

    def calls_to(self, url: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["url"] == url]


def login_ok() -> Reply:
    return Reply(status=200, body="<html>", url=f"{SERVICE_URL}/", cookies=[service_cookie()])


def script_handshake(
    portal: FakePortalClient,
    *,
    login: Optional[List[Reply]] = None,
    select: Optional[Reply] = None,
) -> FakePortalClient:
    """Script warm-up, login and meter selection; all succeed by default."""
    portal.on("GET", f"{SERVICE_URL}/", Reply(status=200, body="<html>"))
    portal.on("POST", LOGIN_URL, *(login or [login_ok()]))
    portal.on("POST", SELECT_URL, select or Reply(status=200, body="{}"))
    return portal


def energy_route(
    replies: Mapping[Tuple[str, str, str], Reply],
    default: Optional[Reply] = None,
) -> Callable[[Optional[Mapping[str, Any]]], Reply]:
    """Answer energy requests keyed by (type, from, to) in portal date format."""
    fallback = default or Reply(status=500, body="error")

    def handler(data: Optional[Mapping[str, Any]]) -> Reply:
        data = data or {}
        return replies.get((data.get("type"), data.get("from"), data.get("to")), fallback)

    return handler


