"""
FlightSurety Oracle Relay — Configuration
Loaded once at startup from .env / environment on top of the Truffle-style
config.json written by the contract migration:

    { "localhost": { "url": "http://localhost:8545",
                     "appAddress": "0x...", "dataAddress": "0x..." } }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from surety_relay.flight_status import FlightStatus, parse_status_code

load_dotenv()

logger = logging.getLogger("surety.config")

DEFAULT_RPC_URL            = "http://localhost:8545"
DEFAULT_ORACLE_POOL_SIZE   = 25
DEFAULT_ACCOUNT_OFFSET     = 20   # accounts below this are owner / airlines / passengers
DEFAULT_REGISTRATION_GAS   = 5_000_000
DEFAULT_RESPONSE_GAS       = 500_000
DEFAULT_GAS_PRICE          = 20_000_000


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


def load_network_config(path: str, network: str = "localhost") -> dict:
    """Return the `network` section of a config.json, or {} when absent."""
    config_path = Path(path)
    if not config_path.exists():
        logger.info(f"No network config at {config_path} — using environment only")
        return {}
    with config_path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    section = data.get(network)
    if section is None:
        logger.warning(f"Network '{network}' not found in {config_path}")
        return {}
    return section


@dataclass
class Settings:
    rpc_url:               str           = DEFAULT_RPC_URL
    app_address:           str           = ""
    data_address:          str           = ""
    app_artifact:          Optional[str] = None
    data_artifact:         Optional[str] = None
    oracle_pool_size:      int           = DEFAULT_ORACLE_POOL_SIZE
    oracle_account_offset: int           = DEFAULT_ACCOUNT_OFFSET
    registration_gas:      int           = DEFAULT_REGISTRATION_GAS
    response_gas:          int           = DEFAULT_RESPONSE_GAS
    gas_price:             int           = DEFAULT_GAS_PRICE
    receipt_timeout:       float         = 120.0
    poll_interval:         float         = 1.0
    http_host:             str           = "0.0.0.0"
    http_port:             int           = 80
    allowed_origins:       List[str]     = field(default_factory=lambda: ["*"])
    relay_enabled:         bool          = True
    default_status:        FlightStatus  = FlightStatus.ON_TIME


def load_settings() -> Settings:
    """
    Precedence: environment variable > config.json section > default.
    RPC_URL / APP_ADDRESS / DATA_ADDRESS override the config.json values.
    """
    network = load_network_config(
        os.getenv("FLIGHTSURETY_CONFIG", "config.json"),
        os.getenv("FLIGHTSURETY_NETWORK", "localhost"),
    )

    raw_origins = os.getenv("ALLOWED_ORIGINS", "*")
    default_status_raw = os.getenv("DEFAULT_FLIGHT_STATUS")

    return Settings(
        rpc_url               = os.getenv("RPC_URL", network.get("url", DEFAULT_RPC_URL)),
        app_address           = os.getenv("APP_ADDRESS", network.get("appAddress", "")),
        data_address          = os.getenv("DATA_ADDRESS", network.get("dataAddress", "")),
        app_artifact          = os.getenv("APP_ARTIFACT") or None,
        data_artifact         = os.getenv("DATA_ARTIFACT") or None,
        oracle_pool_size      = int(os.getenv("ORACLE_POOL_SIZE", str(DEFAULT_ORACLE_POOL_SIZE))),
        oracle_account_offset = int(os.getenv("ORACLE_ACCOUNT_OFFSET", str(DEFAULT_ACCOUNT_OFFSET))),
        registration_gas      = int(os.getenv("REGISTRATION_GAS", str(DEFAULT_REGISTRATION_GAS))),
        response_gas          = int(os.getenv("RESPONSE_GAS", str(DEFAULT_RESPONSE_GAS))),
        gas_price             = int(os.getenv("GAS_PRICE", str(DEFAULT_GAS_PRICE))),
        receipt_timeout       = float(os.getenv("RECEIPT_TIMEOUT", "120")),
        poll_interval         = float(os.getenv("POLL_INTERVAL", "1")),
        http_host             = os.getenv("HTTP_HOST", "0.0.0.0"),
        http_port             = int(os.getenv("HTTP_PORT", "80")),
        allowed_origins       = [o.strip() for o in raw_origins.split(",") if o.strip()],
        relay_enabled         = _env_bool("RELAY_ENABLED", True),
        default_status        = (
            parse_status_code(default_status_raw)
            if default_status_raw is not None
            else FlightStatus.ON_TIME
        ),
    )
