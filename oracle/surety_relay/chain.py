"""
FlightSurety Oracle Relay — Chain Client
=========================================
Thin async boundary over the node RPC. Everything the relay needs from the
chain goes through ChainClient so the registry / dispatcher can be driven
by an in-memory fake in tests.

Event "subscription" is log polling from a block onward; the node is
expected to manage the oracle accounts (Ganache / Truffle develop), so
transactions are sent with eth_sendTransaction from those accounts.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from web3 import AsyncHTTPProvider, AsyncWeb3

from surety_relay.config import Settings
from surety_relay.errors import TransactionRevertedError

logger = logging.getLogger("surety.chain")


# ─── Minimal ABIs ─────────────────────────────────────────────────────────────
# Only the entry points the relay touches. A full Truffle build artifact can
# be supplied instead via APP_ARTIFACT / DATA_ARTIFACT.
FLIGHT_SURETY_APP_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [],
        "name": "REGISTRATION_FEE",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "registerOracle",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getMyIndexes",
        "outputs": [{"internalType": "uint8[3]", "name": "", "type": "uint8[3]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "uint8",   "name": "index",      "type": "uint8"},
            {"internalType": "address", "name": "airline",    "type": "address"},
            {"internalType": "string",  "name": "flight",     "type": "string"},
            {"internalType": "uint256", "name": "timestamp",  "type": "uint256"},
            {"internalType": "uint8",   "name": "statusCode", "type": "uint8"},
        ],
        "name": "submitOracleResponse",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "uint8",   "name": "index",     "type": "uint8"},
            {"indexed": False, "internalType": "address", "name": "airline",   "type": "address"},
            {"indexed": False, "internalType": "string",  "name": "flight",    "type": "string"},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
        ],
        "name": "OracleRequest",
        "type": "event",
    },
]

FLIGHT_SURETY_DATA_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [{"internalType": "string", "name": "flight", "type": "string"}],
        "name": "creditInsurees",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def load_abi(artifact_path: Optional[str], fallback: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Read the `abi` key of a Truffle build artifact, or return `fallback`."""
    if not artifact_path:
        return fallback
    with Path(artifact_path).open("r", encoding="utf-8") as fh:
        artifact = json.load(fh)
    return artifact["abi"]


# ─── Event snapshot ───────────────────────────────────────────────────────────
@dataclass(frozen=True)
class OracleRequestEvent:
    index:        int
    airline:      str
    flight:       str
    timestamp:    int
    block_number: Optional[int] = None
    tx_hash:      Optional[str] = None
    log_index:    Optional[int] = None

    @classmethod
    def from_log(cls, log: Any) -> "OracleRequestEvent":
        args = log["args"]
        tx_hash = log.get("transactionHash")
        return cls(
            index        = int(args["index"]),
            airline      = args["airline"],
            flight       = args["flight"],
            timestamp    = int(args["timestamp"]),
            block_number = log.get("blockNumber"),
            tx_hash      = _hex(tx_hash) if tx_hash is not None else None,
            log_index    = log.get("logIndex"),
        )


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


# ─── Client protocol ──────────────────────────────────────────────────────────
class ChainClient(Protocol):
    async def accounts(self) -> List[str]: ...

    async def block_number(self) -> int: ...

    async def registration_fee(self) -> int: ...

    async def register_oracle(self, account: str, fee: int) -> str: ...

    async def get_my_indexes(self, account: str) -> Sequence[int]: ...

    async def submit_oracle_response(
        self,
        account:     str,
        index:       int,
        airline:     str,
        flight:      str,
        timestamp:   int,
        status_code: int,
    ) -> str: ...

    async def credit_insurees(self, account: str, flight: str) -> Any: ...

    async def oracle_requests(self, from_block: int, to_block: int) -> List[OracleRequestEvent]: ...

    async def data_events(self, from_block: int, to_block: int) -> List[Any]: ...


class Web3ChainClient:
    """ChainClient over web3.py's AsyncWeb3 + AsyncHTTPProvider."""

    def __init__(self, settings: Settings, w3: Optional[AsyncWeb3] = None):
        if not settings.app_address or not settings.data_address:
            raise ValueError("APP_ADDRESS and DATA_ADDRESS must be configured")
        self._settings = settings
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(settings.rpc_url, request_kwargs={"timeout": 30})
        )
        self._app = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(settings.app_address),
            abi=load_abi(settings.app_artifact, FLIGHT_SURETY_APP_ABI),
        )
        self._data_address = AsyncWeb3.to_checksum_address(settings.data_address)
        self._data = self._w3.eth.contract(
            address=self._data_address,
            abi=load_abi(settings.data_artifact, FLIGHT_SURETY_DATA_ABI),
        )
        logger.info(
            f"Chain client → {settings.rpc_url} "
            f"(app={settings.app_address}, data={settings.data_address})"
        )

    async def is_connected(self) -> bool:
        return await self._w3.is_connected()

    async def accounts(self) -> List[str]:
        return list(await self._w3.eth.accounts)

    async def block_number(self) -> int:
        return await self._w3.eth.block_number

    async def registration_fee(self) -> int:
        return await self._app.functions.REGISTRATION_FEE().call()

    async def register_oracle(self, account: str, fee: int) -> str:
        tx_hash = await self._app.functions.registerOracle().transact({
            "from":     account,
            "value":    fee,
            "gas":      self._settings.registration_gas,
            "gasPrice": self._settings.gas_price,
        })
        return await self._wait_mined(tx_hash)

    async def get_my_indexes(self, account: str) -> Tuple[int, ...]:
        result = await self._app.functions.getMyIndexes().call({"from": account})
        return tuple(int(i) for i in result)

    async def submit_oracle_response(
        self,
        account:     str,
        index:       int,
        airline:     str,
        flight:      str,
        timestamp:   int,
        status_code: int,
    ) -> str:
        tx_hash = await self._app.functions.submitOracleResponse(
            index, airline, flight, timestamp, int(status_code)
        ).transact({
            "from":     account,
            "gas":      self._settings.response_gas,
            "gasPrice": self._settings.gas_price,
        })
        return await self._wait_mined(tx_hash)

    async def credit_insurees(self, account: str, flight: str) -> Any:
        return await self._data.functions.creditInsurees(flight).call({"from": account})

    async def oracle_requests(self, from_block: int, to_block: int) -> List[OracleRequestEvent]:
        logs = await self._app.events.OracleRequest().get_logs(
            from_block=from_block,
            to_block=to_block,
        )
        return [OracleRequestEvent.from_log(log) for log in logs]

    async def data_events(self, from_block: int, to_block: int) -> List[Any]:
        return list(await self._w3.eth.get_logs({
            "address":   self._data_address,
            "fromBlock": from_block,
            "toBlock":   to_block,
        }))

    async def _wait_mined(self, tx_hash: Any) -> str:
        tx_hex = _hex(tx_hash)
        receipt = await self._w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._settings.receipt_timeout
        )
        if receipt["status"] != 1:
            raise TransactionRevertedError(f"Transaction {tx_hex} reverted", tx_hash=tx_hex)
        return tx_hex
