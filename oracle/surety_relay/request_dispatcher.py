"""
FlightSurety Oracle Relay — Request Dispatcher
===============================================
Fans one OracleRequest event out to every registered oracle that owns the
event's index.

  - The flight status is snapshotted once when fan-out starts, so every
    oracle answering the same event reports the same code.
  - Submissions for one event run concurrently; one failing never touches
    its siblings.
  - No deduplication: a redelivered event is dispatched again (at-least-once).
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional

from surety_relay.chain import OracleRequestEvent
from surety_relay.flight_status import FlightStatus, FlightStatusCell
from surety_relay.oracle_registry import OracleRegistry
from surety_relay.response_submitter import ResponseSubmitter, SubmissionOutcome

logger = logging.getLogger("surety.dispatch")

RECENT_REPORTS_MAX = 100


@dataclass
class DispatchReport:
    event:    OracleRequestEvent
    status:   FlightStatus
    outcomes: List[SubmissionOutcome] = field(default_factory=list)

    @property
    def matched(self) -> List[str]:
        return [o.account for o in self.outcomes]

    @property
    def failures(self) -> List[SubmissionOutcome]:
        return [o for o in self.outcomes if not o.ok]


class RequestDispatcher:

    def __init__(
        self,
        registry:    OracleRegistry,
        submitter:   ResponseSubmitter,
        status_cell: FlightStatusCell,
    ):
        self._registry    = registry
        self._submitter   = submitter
        self._status_cell = status_cell
        self.recent_reports: Deque[DispatchReport] = deque(maxlen=RECENT_REPORTS_MAX)

    async def on_request(
        self,
        event: Optional[OracleRequestEvent],
        error: Optional[BaseException] = None,
    ) -> Optional[DispatchReport]:
        if error is not None:
            logger.error(f"[DISPATCH] Subscription error: {error}")
        if event is None:
            return None

        status  = self._status_cell.snapshot()
        matched = self._registry.matching(event.index)
        logger.info(
            f"[DISPATCH] Triggered index {event.index} for {event.flight} "
            f"({len(matched)} oracle(s), status={status.label})"
        )
        for identity in matched:
            logger.info(f"[DISPATCH] Oracle {identity.account} triggered. Indexes: {list(identity.indexes)}")

        outcomes = await asyncio.gather(
            *(self._submitter.submit(identity, event, status) for identity in matched)
        )
        report = DispatchReport(event=event, status=status, outcomes=list(outcomes))
        self.recent_reports.append(report)

        if report.failures:
            logger.warning(
                f"[DISPATCH] {len(report.failures)}/{len(outcomes)} submission(s) "
                f"failed for index {event.index} / {event.flight}"
            )
        return report
