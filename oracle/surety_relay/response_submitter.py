"""
FlightSurety Oracle Relay — Response Submitter
One submitOracleResponse transaction per matched oracle, plus a
creditInsurees call when the reported status is LATE_AIRLINE.

Failures are logged with the payload and recorded on the outcome; they are
never retried and never raised to the dispatcher.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from surety_relay.chain import ChainClient, OracleRequestEvent
from surety_relay.flight_status import FlightStatus
from surety_relay.oracle_registry import OracleIdentity

logger = logging.getLogger("surety.submit")


@dataclass
class SubmissionOutcome:
    account:          str
    index:            int
    flight:           str
    status:           FlightStatus
    tx_hash:          Optional[str]       = None
    credit_requested: bool                = False
    response_error:   Optional[Exception] = None
    credit_error:     Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.response_error is None and self.credit_error is None


class ResponseSubmitter:

    def __init__(self, chain: ChainClient):
        self._chain = chain

    async def submit(
        self,
        identity: OracleIdentity,
        event:    OracleRequestEvent,
        status:   FlightStatus,
    ) -> SubmissionOutcome:
        outcome = SubmissionOutcome(
            account = identity.account,
            index   = event.index,
            flight  = event.flight,
            status  = status,
        )
        payload = {
            "index":      event.index,
            "airline":    event.airline,
            "flight":     event.flight,
            "timestamp":  event.timestamp,
            "statusCode": int(status),
        }

        # Issued back-to-back; the credit call does not wait for the response
        # transaction to be mined.
        calls = [self._send_response(identity, event, status, outcome, payload)]
        if status == FlightStatus.LATE_AIRLINE:
            outcome.credit_requested = True
            calls.append(self._request_credit(identity, event, outcome, payload))
        await asyncio.gather(*calls)
        return outcome

    async def _send_response(
        self,
        identity: OracleIdentity,
        event:    OracleRequestEvent,
        status:   FlightStatus,
        outcome:  SubmissionOutcome,
        payload:  dict,
    ) -> None:
        try:
            outcome.tx_hash = await self._chain.submit_oracle_response(
                identity.account,
                event.index,
                event.airline,
                event.flight,
                event.timestamp,
                int(status),
            )
            logger.info(f"[SUBMIT] {identity.account} answered {payload} tx={outcome.tx_hash}")
        except Exception as e:
            outcome.response_error = e
            logger.error(f"[SUBMIT] Response from {identity.account} failed: {e} payload={payload}")

    async def _request_credit(
        self,
        identity: OracleIdentity,
        event:    OracleRequestEvent,
        outcome:  SubmissionOutcome,
        payload:  dict,
    ) -> None:
        try:
            await self._chain.credit_insurees(identity.account, event.flight)
            logger.info(f"[SUBMIT] Credit set for insurees of {event.flight}")
        except Exception as e:
            outcome.credit_error = e
            logger.error(f"[SUBMIT] creditInsurees from {identity.account} failed: {e} payload={payload}")
