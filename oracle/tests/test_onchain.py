"""
On-chain check against a freshly migrated FlightSurety deployment
(truffle develop / ganache with at least 40 unlocked accounts).

Run with: pytest oracle/tests/test_onchain.py -m onchain
Requires: FLIGHTSURETY_RPC_URL, APP_ADDRESS, DATA_ADDRESS
Registers the oracles for real, so run it once per deployment.
"""

import asyncio
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from surety_relay.chain import Web3ChainClient
from surety_relay.config import Settings
from surety_relay.oracle_registry import OracleRegistry

pytestmark = pytest.mark.onchain

RPC_URL = os.getenv("FLIGHTSURETY_RPC_URL")
TEST_ORACLES_COUNT = int(os.getenv("TEST_ORACLES_COUNT", "20"))


@pytest.mark.skipif(
    not (RPC_URL and os.getenv("APP_ADDRESS") and os.getenv("DATA_ADDRESS")),
    reason="FLIGHTSURETY_RPC_URL / APP_ADDRESS / DATA_ADDRESS not set",
)
def test_oracles_registered_with_three_indexes():
    settings = Settings(
        rpc_url=RPC_URL,
        app_address=os.environ["APP_ADDRESS"],
        data_address=os.environ["DATA_ADDRESS"],
        app_artifact=os.getenv("APP_ARTIFACT") or None,
        data_artifact=os.getenv("DATA_ARTIFACT") or None,
    )

    async def scenario():
        chain = Web3ChainClient(settings)
        assert await chain.is_connected()
        registry = OracleRegistry(chain, account_offset=20)
        return await registry.initialize(TEST_ORACLES_COUNT)

    identities = asyncio.run(scenario())
    assert len(identities) == TEST_ORACLES_COUNT
    for identity in identities:
        assert len(identity.indexes) == 3
