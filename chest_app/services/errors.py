"""
Error taxonomy for the chest client.

Only NoActiveStake and SessionPhaseError indicate caller mistakes; the rest are
recoverable conditions that are logged and recorded by the component that owns
them.
"""


class ChestError(Exception):
    """Base class for all chest client errors"""


class NoActiveStake(ChestError):
    """Claim encoding attempted without a recorded stake block height"""


class DecodeMismatch(ChestError):
    """No log entry matched the expected event signature"""


class TransactionFailed(ChestError):
    """The submission subsystem reported a rejected or reverted transaction"""

    def __init__(self, message: str = "Transaction failed", tx_hash: str = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class FetchFailed(ChestError):
    """Indexing API or price feed unreachable, or returned malformed data"""


class SessionPhaseError(ChestError):
    """Operation not permitted in the session's current phase"""


class AccessDenied(ChestError):
    """Owner-only action requested by a non-privileged identity"""
