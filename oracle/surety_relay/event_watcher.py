"""
FlightSurety Oracle Relay — Event Watchers
Log-polling stand-ins for web3 event subscriptions starting at the latest
block: OracleRequest events from FlightSuretyApp are handed to the
dispatcher, everything FlightSuretyData emits is logged.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Set

from surety_relay.chain import ChainClient, OracleRequestEvent
from surety_relay.request_dispatcher import RequestDispatcher

logger = logging.getLogger("surety.watch")


class _BlockPoller(ABC):
    """Tracks the next block to read; the cursor only moves after a good poll."""

    def __init__(self, chain: ChainClient, poll_interval: float, start_block: Optional[int] = None):
        self._chain         = chain
        self._poll_interval = poll_interval
        self._cursor        = start_block

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    async def _block_range(self) -> Optional[tuple]:
        current = await self._chain.block_number()
        if self._cursor is None:
            self._cursor = current
        if current < self._cursor:
            return None
        return self._cursor, current

    @abstractmethod
    async def poll_once(self) -> Any:
        """Read the next block range; never raises."""

    async def run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._poll_interval)


class OracleRequestWatcher(_BlockPoller):

    def __init__(
        self,
        chain:         ChainClient,
        dispatcher:    RequestDispatcher,
        poll_interval: float = 1.0,
        start_block:   Optional[int] = None,
    ):
        super().__init__(chain, poll_interval, start_block)
        self._dispatcher = dispatcher
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> Set[asyncio.Task]:
        return set(self._in_flight)

    async def poll_once(self) -> List[OracleRequestEvent]:
        """Read new OracleRequest events and schedule a dispatch for each."""
        try:
            block_range = await self._block_range()
            if block_range is None:
                return []
            from_block, to_block = block_range
            events = await self._chain.oracle_requests(from_block, to_block)
        except Exception as e:
            await self._dispatcher.on_request(None, error=e)
            return []

        self._cursor = to_block + 1
        for event in events:
            logger.info(f"[WATCH] OracleRequest {event}")
            task = asyncio.create_task(self._dispatcher.on_request(event))
            self._in_flight.add(task)
            task.add_done_callback(self._on_dispatch_done)
        return events

    async def drain(self) -> None:
        """Wait for every scheduled dispatch to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def cancel_in_flight(self) -> None:
        for task in list(self._in_flight):
            task.cancel()

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[WATCH] Dispatch crashed: {exc}", exc_info=exc)


class DataEventLogger(_BlockPoller):

    async def poll_once(self) -> List[Any]:
        try:
            block_range = await self._block_range()
            if block_range is None:
                return []
            from_block, to_block = block_range
            logs = await self._chain.data_events(from_block, to_block)
        except Exception as e:
            logger.error(f"[WATCH] FlightSuretyData event stream error: {e}")
            return []

        self._cursor = to_block + 1
        for log in logs:
            logger.info(f"[WATCH] FlightSuretyData event: {dict(log)}")
        return logs
