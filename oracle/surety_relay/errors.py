from __future__ import annotations

from typing import Optional


class RelayError(RuntimeError):
    """Base class for errors raised by the oracle relay."""


class OracleRegistrationError(RelayError):
    def __init__(self, message: str, account: Optional[str] = None, position: Optional[int] = None):
        super().__init__(message)
        self.account  = account
        self.position = position


class TransactionRevertedError(RelayError):
    def __init__(self, message: str, tx_hash: str):
        super().__init__(message)
        self.tx_hash = tx_hash
