"""
Transaction Lifecycle Adapter

Normalizes the submission subsystem's status notifications into three
lifecycle kinds (Pending, Confirmed, Failed), one adapter per submitted
transaction. Raw notifications follow the OnchainKit LifecycleStatus shape:

    {"statusName": "transactionPending"}
    {"statusName": "success", "statusData": {"transactionReceipts": [receipt, ...]}}
    {"statusName": "error", "statusData": {"code": ..., "error": ..., "message": ...}}

Normalized events are forwarded onto a bounded asyncio.Queue whose only
consumer is the session state machine.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterable, Mapping, Optional, Tuple

from ..config.chest_config import LIFECYCLE_CHANNEL_CAPACITY
from .decoders.base import parse_int, to_hex_str
from .errors import TransactionFailed

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMS
# ============================================================================

class LifecycleKind(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SubmissionKind(Enum):
    STAKE = "stake"
    CLAIM = "claim"
    WITHDRAW = "withdraw"


PENDING_STATUSES = {"buildingTransaction", "transactionPending", "transactionLegacyExecuted"}
IGNORED_STATUSES = {"init", "transactionIdle"}
SUCCESS_STATUS = "success"
ERROR_STATUS = "error"


# ============================================================================
# DATA CLASSES
# ============================================================================

_submission_ids = itertools.count(1)


@dataclass(frozen=True)
class Submission:
    """Identifies one submitted transaction and its notification stream"""
    kind: SubmissionKind
    id: int = field(default_factory=lambda: next(_submission_ids))


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    block_number: int
    logs: Tuple[Any, ...] = ()
    status: int = 1


@dataclass(frozen=True)
class TransactionLifecycleEvent:
    kind: LifecycleKind
    submission: Submission
    receipt: Optional[TransactionReceipt] = None
    error: Optional[str] = None

    @property
    def tx_hash(self) -> Optional[str]:
        return self.receipt.tx_hash if self.receipt else None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (LifecycleKind.CONFIRMED, LifecycleKind.FAILED)

    def raise_for_status(self) -> None:
        """Raise TransactionFailed for a Failed event"""
        if self.kind == LifecycleKind.FAILED:
            raise TransactionFailed(self.error or "Transaction failed", self.tx_hash)


def new_channel(capacity: int = LIFECYCLE_CHANNEL_CAPACITY) -> asyncio.Queue:
    """Bounded notification channel between adapters and the state machine"""
    return asyncio.Queue(maxsize=capacity)


def normalize_receipt(raw: Mapping) -> TransactionReceipt:
    """
    Build a TransactionReceipt from a dict or web3 AttributeDict.

    Raises:
        KeyError, TypeError, ValueError when hash or block number is missing/unreadable
    """
    tx_hash = raw['transactionHash']
    block_number = raw['blockNumber']
    if tx_hash is None or block_number is None:
        raise ValueError("receipt has no transaction hash or block number")
    status = raw.get('status', 1)
    return TransactionReceipt(
        tx_hash=to_hex_str(tx_hash),
        block_number=parse_int(block_number),
        logs=tuple(raw.get('logs') or ()),
        status=parse_int(status) if status is not None else 1,
    )


def _error_text(status_data: Any) -> str:
    if isinstance(status_data, Mapping):
        for key in ('message', 'error', 'code'):
            if status_data.get(key):
                return str(status_data[key])
    if status_data:
        return str(status_data)
    return "Transaction failed"


# ============================================================================
# ADAPTER
# ============================================================================

class LifecycleAdapter:
    """
    Translates one transaction's raw notifications.

    At most one Pending is emitted however many pending notifications arrive;
    exactly one terminal event (Confirmed or Failed) is emitted, after which
    the stream is closed and further notifications are ignored.
    """

    def __init__(self, submission: Submission, channel: Optional[asyncio.Queue] = None):
        self.submission = submission
        self.channel = channel
        self._pending_emitted = False
        self._terminal: Optional[TransactionLifecycleEvent] = None

    @property
    def done(self) -> bool:
        return self._terminal is not None

    @property
    def terminal_event(self) -> Optional[TransactionLifecycleEvent]:
        return self._terminal

    def translate(self, raw: Mapping) -> Optional[TransactionLifecycleEvent]:
        """Map one raw notification to a lifecycle event, or None if it is absorbed"""
        if self.done:
            logger.debug(f"Submission {self.submission.id}: ignoring notification after terminal event")
            return None

        status_name = raw.get('statusName') if isinstance(raw, Mapping) else None
        status_data = raw.get('statusData') if isinstance(raw, Mapping) else None

        if status_name in PENDING_STATUSES:
            if self._pending_emitted:
                return None
            self._pending_emitted = True
            return TransactionLifecycleEvent(LifecycleKind.PENDING, self.submission)

        if status_name == SUCCESS_STATUS:
            event = self._confirmed(status_data)
            self._terminal = event
            return event

        if status_name == ERROR_STATUS:
            event = TransactionLifecycleEvent(
                LifecycleKind.FAILED, self.submission, error=_error_text(status_data)
            )
            self._terminal = event
            return event

        if status_name not in IGNORED_STATUSES:
            logger.debug(f"Submission {self.submission.id}: unknown status {status_name!r}")
        return None

    def _confirmed(self, status_data: Any) -> TransactionLifecycleEvent:
        receipts = status_data.get('transactionReceipts') if isinstance(status_data, Mapping) else None
        if not receipts:
            logger.warning(f"Submission {self.submission.id}: success reported without a receipt")
            return TransactionLifecycleEvent(
                LifecycleKind.FAILED, self.submission, error="Success reported without a transaction receipt"
            )

        try:
            receipt = normalize_receipt(receipts[0])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Submission {self.submission.id}: unreadable receipt: {e}")
            return TransactionLifecycleEvent(
                LifecycleKind.FAILED, self.submission, error=f"Unreadable transaction receipt: {e}"
            )

        if receipt.status == 0:
            return TransactionLifecycleEvent(
                LifecycleKind.FAILED, self.submission, receipt=receipt, error="Transaction reverted"
            )

        return TransactionLifecycleEvent(LifecycleKind.CONFIRMED, self.submission, receipt=receipt)

    async def publish(self, raw: Mapping) -> Optional[TransactionLifecycleEvent]:
        """Translate and forward onto the channel (waits if the channel is full)"""
        event = self.translate(raw)
        if event is not None:
            logger.debug(f"Submission {self.submission.id} ({self.submission.kind.value}): {event.kind.value}")
            if self.channel is not None:
                await self.channel.put(event)
        return event

    async def pump(self, stream: AsyncIterable[Mapping]) -> Optional[TransactionLifecycleEvent]:
        """
        Forward a whole notification stream. Returns the terminal event.

        If the stream ends, or raises, without a terminal notification, a
        Failed event is emitted so the session is never left waiting on a
        dead stream.
        """
        try:
            async for raw in stream:
                await self.publish(raw)
                if self.done:
                    break
        except Exception as e:
            logger.exception(f"Submission {self.submission.id}: notification stream raised")
            if not self.done:
                await self.publish({
                    'statusName': ERROR_STATUS,
                    'statusData': {'message': f"Submission crashed: {e}"},
                })
            return self._terminal

        if not self.done:
            logger.warning(f"Submission {self.submission.id}: stream ended without a terminal status")
            await self.publish({
                'statusName': ERROR_STATUS,
                'statusData': {'message': "Notification stream ended before confirmation"},
            })
        return self._terminal
