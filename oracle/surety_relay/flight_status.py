"""
FlightSurety Oracle Relay — Flight Status
==========================================
Status codes understood by FlightSuretyApp.submitOracleResponse() and the
process-wide "current simulated flight status" the oracles report.

The HTTP control surface writes the cell, the request dispatcher reads a
snapshot of it once per fan-out.
"""

from __future__ import annotations

import threading
from enum import IntEnum


class FlightStatus(IntEnum):
    UNKNOWN        = 0
    ON_TIME        = 10
    LATE_AIRLINE   = 20
    LATE_WEATHER   = 30
    LATE_TECHNICAL = 40
    LATE_OTHER     = 50

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


# Only these exact path literals select a status; anything else is UNKNOWN.
_STATUS_BY_CODE: dict[str, FlightStatus] = {
    "10": FlightStatus.ON_TIME,
    "20": FlightStatus.LATE_AIRLINE,
    "30": FlightStatus.LATE_WEATHER,
    "40": FlightStatus.LATE_TECHNICAL,
    "50": FlightStatus.LATE_OTHER,
}


def parse_status_code(raw: str) -> FlightStatus:
    """Map a raw status argument to a FlightStatus. Never raises."""
    return _STATUS_BY_CODE.get(raw, FlightStatus.UNKNOWN)


def status_message(status: FlightStatus) -> str:
    return f"Status changed to: {status.label}"


class FlightStatusCell:
    """
    Single-writer / many-readers holder for the current flight status.
    Readers take a snapshot; they never keep a reference to the live cell.
    """

    def __init__(self, initial: FlightStatus = FlightStatus.ON_TIME):
        self._lock   = threading.Lock()
        self._status = FlightStatus(initial)

    def set(self, status: FlightStatus) -> FlightStatus:
        with self._lock:
            self._status = FlightStatus(status)
            return self._status

    def snapshot(self) -> FlightStatus:
        with self._lock:
            return self._status
