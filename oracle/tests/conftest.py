"""
Shared fixtures: an in-memory ChainClient standing in for Ganache + the
deployed FlightSurety contracts.
"""

import os
import sys
from typing import Dict, List, Optional, Sequence, Set

import pytest

# ── Path setup ────────────────────────────────────────────────────────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from surety_relay.chain import OracleRequestEvent


AIRLINE = "0x00000000000000000000000000000000000000A1"


def make_accounts(count: int) -> List[str]:
    return [f"0x{i:040x}" for i in range(1, count + 1)]


class FakeChain:
    """
    Records every call in `calls` (name, account, ...) in issue order.
    Failures are injected per account through the *_failures sets.
    """

    def __init__(
        self,
        account_count: int = 30,
        index_plan: Optional[Dict[str, Sequence[int]]] = None,
        registration_fee: int = 10**18,
    ):
        self._accounts = make_accounts(account_count)
        self.index_plan: Dict[str, Sequence[int]] = dict(index_plan or {})
        self.fee = registration_fee
        self.calls: List[tuple] = []
        self.registered: List[str] = []

        self.fee_error: Optional[Exception] = None
        self.accounts_error: Optional[Exception] = None
        self.register_failures: Set[str] = set()
        self.index_failures: Set[str] = set()
        self.response_failures: Set[str] = set()
        self.credit_failures: Set[str] = set()

        self.block = 100
        self.pending_requests: Dict[int, List[OracleRequestEvent]] = {}
        self.pending_data_logs: Dict[int, List[dict]] = {}
        self.poll_error: Optional[Exception] = None
        self.polled_ranges: List[tuple] = []

    # ── helpers ───────────────────────────────────────────────────────────────
    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    def emit_request(self, event: OracleRequestEvent, block: Optional[int] = None) -> None:
        block = self.block if block is None else block
        self.pending_requests.setdefault(block, []).append(event)

    # ── ChainClient ───────────────────────────────────────────────────────────
    async def accounts(self) -> List[str]:
        if self.accounts_error:
            raise self.accounts_error
        return list(self._accounts)

    async def block_number(self) -> int:
        return self.block

    async def registration_fee(self) -> int:
        if self.fee_error:
            raise self.fee_error
        return self.fee

    async def register_oracle(self, account: str, fee: int) -> str:
        self.calls.append(("registerOracle", account, fee))
        if account in self.register_failures:
            raise RuntimeError("insufficient funds for gas * price + value")
        self.registered.append(account)
        return f"0xreg{len(self.registered):04x}"

    async def get_my_indexes(self, account: str) -> Sequence[int]:
        self.calls.append(("getMyIndexes", account))
        if account in self.index_failures:
            raise RuntimeError("Not registered as an oracle")
        if account in self.index_plan:
            return list(self.index_plan[account])
        position = self._accounts.index(account)
        return [position % 10, (position + 3) % 10, (position + 6) % 10]

    async def submit_oracle_response(self, account, index, airline, flight, timestamp, status_code) -> str:
        self.calls.append(("submitOracleResponse", account, index, airline, flight, timestamp, status_code))
        if account in self.response_failures:
            raise RuntimeError("Flight or timestamp do not match oracle request")
        return f"0xtx{len(self.calls):04x}"

    async def credit_insurees(self, account: str, flight: str):
        self.calls.append(("creditInsurees", account, flight))
        if account in self.credit_failures:
            raise RuntimeError("Caller is not authorized")
        return None

    async def oracle_requests(self, from_block: int, to_block: int) -> List[OracleRequestEvent]:
        if self.poll_error:
            raise self.poll_error
        self.polled_ranges.append((from_block, to_block))
        events: List[OracleRequestEvent] = []
        for block in range(from_block, to_block + 1):
            events.extend(self.pending_requests.get(block, []))
        return events

    async def data_events(self, from_block: int, to_block: int) -> List[dict]:
        if self.poll_error:
            raise self.poll_error
        logs: List[dict] = []
        for block in range(from_block, to_block + 1):
            logs.extend(self.pending_data_logs.get(block, []))
        return logs


def make_event(index: int, flight: str = "VN321", timestamp: int = 1_700_000_000) -> OracleRequestEvent:
    return OracleRequestEvent(index=index, airline=AIRLINE, flight=flight, timestamp=timestamp)


@pytest.fixture
def fake_chain():
    return FakeChain()
