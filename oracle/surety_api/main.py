"""
FlightSurety — Oracle Relay API Gateway
FastAPI server that hosts the oracle relay and lets the Dapp (or a tester)
set the flight status the simulated oracles report.

Routes:
  - GET /api                   — greeting
  - GET /api/status/{status}   — set the simulated flight status
                                 (10 ON TIME, 20 LATE AIRLINE, 30 LATE WEATHER,
                                  40 LATE TECHNICAL, 50 LATE OTHER, else UNKNOWN)

On startup the oracle pool is registered and the relay starts watching
FlightSuretyApp for OracleRequest events (disable with RELAY_ENABLED=false).
"""

import asyncio
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from surety_relay.chain import Web3ChainClient
from surety_relay.config import load_settings
from surety_relay.flight_status import FlightStatusCell, parse_status_code, status_message
from surety_relay.relay import OracleRelay

# ─── Setup ────────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] SURETY :: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
log = logging.getLogger("surety.api")

settings = load_settings()

# Process-wide simulated flight status, read by the relay at fan-out time.
status_cell = FlightStatusCell(settings.default_status)

app = FastAPI(
    title="FlightSurety Oracle Relay API",
    description="Simulated oracle pool for the FlightSurety Dapp",
    version="1.0.0",
)

# ─── CORS ─────────────────────────────────────────────────────────────────────
log.info(f"CORS allowed origins: {settings.allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# ─── Response Models ───────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    message: str


# ─── Relay lifecycle ──────────────────────────────────────────────────────────
_relay: Optional[OracleRelay] = None
_relay_task: Optional[asyncio.Task] = None


@app.on_event("startup")
async def _start_relay():
    global _relay, _relay_task

    if not settings.relay_enabled:
        log.info("RELAY_ENABLED=false — serving the status API only")
        return

    try:
        chain = Web3ChainClient(settings)
    except ValueError as e:
        log.critical(f"\n{'='*70}\nRelay not started: {e}\n{'='*70}")
        return

    _relay = OracleRelay(settings, chain, status_cell)
    _relay_task = asyncio.create_task(_relay.start())
    _relay_task.add_done_callback(_on_relay_exit)
    log.info(f"Oracle relay started against {settings.rpc_url}")


def _on_relay_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error(f"[RELAY] Relay task crashed: {exc!r} — status API still serving", exc_info=exc)


@app.on_event("shutdown")
async def _stop_relay():
    if _relay_task is None:
        return
    _relay_task.cancel()
    try:
        await _relay_task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        # Already reported by _on_relay_exit.
        log.warning(f"[RELAY] Relay task had exited with an error: {e!r}")
    log.info("Oracle relay stopped")


# ─── Routes ───────────────────────────────────────────────────────────────────

@app.get("/api", response_model=MessageResponse)
async def api_root() -> MessageResponse:
    return MessageResponse(message="An API for use with your Dapp!")


@app.get("/api/status/{status}", response_model=MessageResponse, summary="Set Simulated Flight Status")
async def set_status(status: str) -> MessageResponse:
    """Every input is accepted; unrecognised codes set UNKNOWN."""
    new_status = status_cell.set(parse_status_code(status))
    log.info(f"[STATUS] {status!r} → {new_status.label} ({int(new_status)})")
    return MessageResponse(message=status_message(new_status))


def run() -> None:
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    run()
