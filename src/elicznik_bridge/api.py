"""
HTTP endpoint for the e-licznik bridge.

Exposes the bridge behind the same query string the Home Assistant REST
sensors use, e.g.::

    GET /?user=...&pass=...&meter=...&type=consumption&period=monthly&total_only=1

Run:  elicznik-bridge serve --port 8080
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict

from fastapi import Depends, FastAPI, Request, Response

from elicznik_bridge import __version__
from elicznik_bridge.config import get_settings
from elicznik_bridge.core import EnergyBridge, ResponseAssembler, respond

LOGGER = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=utf-8"


@lru_cache(maxsize=1)
def get_bridge() -> EnergyBridge:
    return EnergyBridge(get_settings())


@lru_cache(maxsize=1)
def get_assembler() -> ResponseAssembler:
    return ResponseAssembler(get_settings().storage.bridge_output_dir)


app = FastAPI(
    title="elicznik-bridge",
    description="Hourly consumption and generation series from Tauron e-licznik.",
    version=__version__,
)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/")
def fetch_energy(
    request: Request,
    bridge: EnergyBridge = Depends(get_bridge),
    assembler: ResponseAssembler = Depends(get_assembler),
) -> Response:
    # Query names such as "pass" and "from" are Python keywords; read them raw
    params = dict(request.query_params)
    status_code, body = respond(params, bridge=bridge, assembler=assembler)
    LOGGER.info("GET / -> %d", status_code)
    return Response(content=body, status_code=status_code, media_type=JSON_MEDIA_TYPE)


__all__ = ["app", "get_assembler", "get_bridge"]
