"""
FlightSurety Oracle Relay — wiring of registry, submitter, dispatcher and
watchers around one chain client and one flight status cell.
"""

from __future__ import annotations

import asyncio
import logging

from surety_relay.chain import ChainClient
from surety_relay.config import Settings
from surety_relay.errors import OracleRegistrationError
from surety_relay.event_watcher import DataEventLogger, OracleRequestWatcher
from surety_relay.flight_status import FlightStatusCell
from surety_relay.oracle_registry import OracleRegistry
from surety_relay.request_dispatcher import RequestDispatcher
from surety_relay.response_submitter import ResponseSubmitter

logger = logging.getLogger("surety.relay")


class OracleRelay:

    def __init__(self, settings: Settings, chain: ChainClient, status_cell: FlightStatusCell):
        self.settings    = settings
        self.chain       = chain
        self.status_cell = status_cell
        self.registry    = OracleRegistry(chain, account_offset=settings.oracle_account_offset)
        self.submitter   = ResponseSubmitter(chain)
        self.dispatcher  = RequestDispatcher(self.registry, self.submitter, status_cell)
        self.request_watcher = OracleRequestWatcher(
            chain, self.dispatcher, poll_interval=settings.poll_interval
        )
        self.data_logger = DataEventLogger(chain, poll_interval=settings.poll_interval)

    async def register_oracles(self) -> bool:
        """Register the oracle pool. Returns False (registry empty) on failure."""
        if self.settings.oracle_pool_size < 1:
            logger.error(
                f"[RELAY] Oracle registration skipped: "
                f"ORACLE_POOL_SIZE={self.settings.oracle_pool_size}, must be >= 1"
            )
            return False
        try:
            await self.registry.initialize(self.settings.oracle_pool_size)
        except OracleRegistrationError as e:
            logger.error(f"[RELAY] Oracle registration failed: {e}")
            return False
        return True

    async def start(self) -> None:
        """Register the pool, then watch the chain until cancelled."""
        logger.info(
            f"[RELAY] Starting — pool={self.settings.oracle_pool_size} "
            f"offset={self.settings.oracle_account_offset}"
        )
        if not await self.register_oracles():
            logger.warning("[RELAY] Registry is empty — requests will not be answered")

        try:
            await asyncio.gather(self.request_watcher.run(), self.data_logger.run())
        finally:
            self.request_watcher.cancel_in_flight()
