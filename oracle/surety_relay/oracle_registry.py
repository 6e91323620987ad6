"""
FlightSurety Oracle Relay — Oracle Registry
============================================
Registers the simulated oracle pool with FlightSuretyApp and remembers the
three indexes the contract assigned to each oracle.

Registration is strictly sequential (one account funded and registered at a
time). A failure anywhere aborts the whole run and leaves the registry
empty; oracles already registered on-chain during that run are not rolled
back, so a retry may hit the contract's duplicate-registration guard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from surety_relay.chain import ChainClient
from surety_relay.errors import OracleRegistrationError

logger = logging.getLogger("surety.registry")

INDEXES_PER_ORACLE = 3


@dataclass(frozen=True)
class OracleIdentity:
    account: str
    indexes: Tuple[int, ...]

    def owns(self, index: int) -> bool:
        return index in self.indexes


class OracleRegistry:

    def __init__(self, chain: ChainClient, account_offset: int = 20):
        self._chain          = chain
        self._account_offset = account_offset
        self._identities: List[OracleIdentity] = []
        self._index_sets: List[Tuple[int, ...]] = []

    # ── Read side ──────────────────────────────────────────────────────────────
    @property
    def identities(self) -> List[OracleIdentity]:
        return list(self._identities)

    @property
    def index_sets(self) -> List[Tuple[int, ...]]:
        return list(self._index_sets)

    def __len__(self) -> int:
        return len(self._identities)

    def matching(self, index: int) -> List[OracleIdentity]:
        """Oracles owning `index`, in registration order, each at most once."""
        return [identity for identity in self._identities if identity.owns(index)]

    # ── Registration ───────────────────────────────────────────────────────────
    async def initialize(self, pool_size: int) -> List[OracleIdentity]:
        if pool_size < 1:
            raise ValueError("pool_size must be >= 1")

        self._identities = []
        self._index_sets = []

        accounts = await self._reserve_accounts(pool_size)

        try:
            fee = await self._chain.registration_fee()
        except Exception as e:
            raise OracleRegistrationError(f"Could not read REGISTRATION_FEE: {e}") from e
        logger.info(f"[REGISTRY] Registering {pool_size} oracles (fee={fee} wei)")

        registered: List[OracleIdentity] = []
        for position, account in enumerate(accounts):
            identity = await self._register_one(position, account, fee)
            registered.append(identity)
            logger.info(
                f"[REGISTRY] Oracle {position} registered at {account} "
                f"with {list(identity.indexes)} indexes"
            )

        self._identities = registered
        self._index_sets = [identity.indexes for identity in registered]
        logger.info(f"[REGISTRY] {len(registered)} oracles ready")
        return self.identities

    async def _reserve_accounts(self, pool_size: int) -> List[str]:
        try:
            available = await self._chain.accounts()
        except Exception as e:
            raise OracleRegistrationError(f"Could not list chain accounts: {e}") from e

        start    = self._account_offset
        reserved = available[start:start + pool_size]
        if len(reserved) < pool_size:
            raise OracleRegistrationError(
                f"Need {pool_size} oracle accounts from offset {start}, "
                f"node only exposes {len(available)} accounts"
            )
        return reserved

    async def _register_one(self, position: int, account: str, fee: int) -> OracleIdentity:
        try:
            await self._chain.register_oracle(account, fee)
            indexes = tuple(int(i) for i in await self._chain.get_my_indexes(account))
        except Exception as e:
            raise OracleRegistrationError(
                f"Oracle {position} ({account}) registration failed: {e}",
                account=account,
                position=position,
            ) from e

        if len(indexes) != INDEXES_PER_ORACLE:
            raise OracleRegistrationError(
                f"Oracle {position} ({account}) got {len(indexes)} indexes, "
                f"expected {INDEXES_PER_ORACLE}",
                account=account,
                position=position,
            )
        return OracleIdentity(account=account, indexes=indexes)
