"""
Session State Machine

Owns the single live chest session. The session is a tagged variant: each
phase is its own frozen dataclass holding exactly the fields that are legal in
that phase, so e.g. an outcome amount cannot exist outside Resolved.

    Idle --submit_stake--> StakeSubmitted --Confirmed--> Cooldown
    StakeSubmitted --Failed--> Idle
    Cooldown --dwell elapsed--> Claimable
    Claimable --submit_claim--> Claimable (claim in flight)
    Claimable --claim Confirmed + PrizeAwarded--> Resolved
    Claimable --claim Confirmed, no PrizeAwarded--> Claimable (outcome not observable)
    Claimable --claim Failed--> Claimable
    Resolved --reset--> Idle

Lifecycle events arrive on a bounded channel consumed only by run(); user
actions (submit_stake, submit_claim, reset) are called from the same event
loop, so the session never has concurrent writers.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, ClassVar, Dict, List, Optional, Union

from ..config.chest_config import CLAIM_COOLDOWN_SECONDS, TRANSITION_HISTORY_SIZE
from .decoders.outcome_decoder import require_outcome
from .errors import DecodeMismatch, SessionPhaseError
from .lifecycle import (
    LifecycleKind,
    Submission,
    SubmissionKind,
    TransactionLifecycleEvent,
    new_channel,
)

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMS
# ============================================================================

class Phase(Enum):
    IDLE = "Idle"
    STAKE_SUBMITTED = "StakeSubmitted"
    COOLDOWN = "Cooldown"
    CLAIMABLE = "Claimable"
    RESOLVED = "Resolved"


class SessionCondition(Enum):
    """Recoverable conditions rendered in place of the default phase view"""
    TRANSACTION_FAILED = "transaction_failed"
    OUTCOME_NOT_OBSERVABLE = "outcome_not_observable"


PHASE_MESSAGES = {
    Phase.IDLE: "Open a treasure chest to try your luck.",
    Phase.STAKE_SUBMITTED: "Buying your chest... waiting for confirmation.",
    Phase.COOLDOWN: "Preparing your treasure... It will be claimable in a few seconds. ⏳",
    Phase.CLAIMABLE: "Your chest is ready. Claim your treasure!",
    Phase.RESOLVED: "🎉 Treasure found! 🎉",
}

CLAIM_IN_FLIGHT_MESSAGE = "Opening your chest... waiting for confirmation."

STATUS_MESSAGES = {
    SessionCondition.TRANSACTION_FAILED: "The transaction was rejected or failed. Nothing was lost; you can try again.",
    SessionCondition.OUTCOME_NOT_OBSERVABLE: (
        "The claim confirmed but no prize event was found yet. "
        "You can submit the claim again for the same chest."
    ),
}


# ============================================================================
# SESSION VARIANTS
# ============================================================================

@dataclass(frozen=True)
class Idle:
    phase: ClassVar[Phase] = Phase.IDLE


@dataclass(frozen=True)
class StakeSubmitted:
    submission: Submission
    pending: bool = False
    phase: ClassVar[Phase] = Phase.STAKE_SUBMITTED


@dataclass(frozen=True)
class Cooldown:
    stake_tx_hash: str
    stake_block_height: int
    entered_at: float
    phase: ClassVar[Phase] = Phase.COOLDOWN


@dataclass(frozen=True)
class Claimable:
    stake_tx_hash: str
    stake_block_height: int
    claim: Optional[Submission] = None
    claim_pending: bool = False
    phase: ClassVar[Phase] = Phase.CLAIMABLE

    @property
    def claim_in_flight(self) -> bool:
        return self.claim is not None


@dataclass(frozen=True)
class Resolved:
    stake_tx_hash: str
    stake_block_height: int
    claim_tx_hash: str
    outcome_amount: Decimal
    player: str
    phase: ClassVar[Phase] = Phase.RESOLVED


SessionState = Union[Idle, StakeSubmitted, Cooldown, Claimable, Resolved]


@dataclass(frozen=True)
class Transition:
    at: datetime
    source: Phase
    target: Phase
    reason: str


# ============================================================================
# STATE MACHINE
# ============================================================================

class SessionStateMachine:
    """Single-owner state-transition function for the chest session"""

    def __init__(self, cooldown_seconds: float = CLAIM_COOLDOWN_SECONDS,
                 clock: Callable[[], float] = time.monotonic,
                 channel: Optional[asyncio.Queue] = None):
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self._channel = channel
        self.state: SessionState = Idle()
        self.condition: Optional[SessionCondition] = None
        self.last_error: Optional[str] = None
        self.history = deque(maxlen=TRANSITION_HISTORY_SIZE)
        self._applied_tx_hashes = set()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def channel(self) -> asyncio.Queue:
        # Created lazily so the queue binds to the running loop
        if self._channel is None:
            self._channel = new_channel()
        return self._channel

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def stake_tx_hash(self) -> Optional[str]:
        return getattr(self.state, 'stake_tx_hash', None)

    @property
    def stake_block_height(self) -> Optional[int]:
        return getattr(self.state, 'stake_block_height', None)

    @property
    def claim_tx_hash(self) -> Optional[str]:
        return getattr(self.state, 'claim_tx_hash', None)

    @property
    def outcome_amount(self) -> Optional[Decimal]:
        return getattr(self.state, 'outcome_amount', None)

    @property
    def claim_in_flight(self) -> bool:
        return isinstance(self.state, Claimable) and self.state.claim_in_flight

    def cooldown_remaining(self) -> Optional[float]:
        """Seconds until Cooldown ends, or None outside Cooldown"""
        if not isinstance(self.state, Cooldown):
            return None
        elapsed = self.clock() - self.state.entered_at
        return max(0.0, self.cooldown_seconds - elapsed)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, new_state: SessionState, reason: str) -> None:
        source = self.state.phase
        self.state = new_state
        self.history.append(Transition(datetime.now(timezone.utc), source, new_state.phase, reason))
        if source != new_state.phase:
            logger.info(f"Session {source.value} -> {new_state.phase.value} ({reason})")
        else:
            logger.debug(f"Session {source.value} updated ({reason})")

    def submit_stake(self) -> Submission:
        """Idle -> StakeSubmitted. Returns the submission the lifecycle stream must carry."""
        if not isinstance(self.state, Idle):
            raise SessionPhaseError(f"Cannot buy a chest while session is {self.phase.value}")

        submission = Submission(SubmissionKind.STAKE)
        self.condition = None
        self.last_error = None
        self._transition(StakeSubmitted(submission), "stake submitted")
        return submission

    def submit_claim(self) -> Submission:
        """Mark a claim in flight. Only allowed in Claimable with no claim outstanding."""
        self.poll()
        if not isinstance(self.state, Claimable):
            raise SessionPhaseError(f"Cannot claim while session is {self.phase.value}")
        if self.state.claim_in_flight:
            raise SessionPhaseError("A claim is already in flight for this chest")

        submission = Submission(SubmissionKind.CLAIM)
        self.condition = None
        self.last_error = None
        self._transition(replace(self.state, claim=submission, claim_pending=False), "claim submitted")
        return submission

    def reset(self) -> None:
        """Resolved -> Idle, discarding all session fields"""
        if not isinstance(self.state, Resolved):
            raise SessionPhaseError(f"Cannot reset while session is {self.phase.value}")
        self.condition = None
        self.last_error = None
        self._transition(Idle(), "reset")

    def poll(self, now: Optional[float] = None) -> bool:
        """Apply the Cooldown -> Claimable dwell transition if it is due"""
        if not isinstance(self.state, Cooldown):
            return False
        now = self.clock() if now is None else now
        if now - self.state.entered_at < self.cooldown_seconds:
            return False
        self._transition(
            Claimable(self.state.stake_tx_hash, self.state.stake_block_height),
            "cooldown elapsed",
        )
        return True

    def apply(self, event: TransactionLifecycleEvent) -> bool:
        """
        Apply one lifecycle event. Returns True if the session changed.

        Events for submissions other than the current one, duplicates for an
        already-applied transaction hash, and events that are not valid in the
        current phase are ignored.
        """
        tx_hash = event.tx_hash
        if event.kind == LifecycleKind.CONFIRMED and tx_hash in self._applied_tx_hashes:
            logger.debug(f"Ignoring duplicate confirmation for {tx_hash}")
            return False

        if event.submission.kind == SubmissionKind.STAKE:
            changed = self._apply_stake_event(event)
        elif event.submission.kind == SubmissionKind.CLAIM:
            changed = self._apply_claim_event(event)
        else:
            changed = False

        if not changed:
            logger.debug(
                f"Ignoring {event.kind.value} for {event.submission.kind.value} "
                f"submission {event.submission.id} in phase {self.phase.value}"
            )
        return changed

    def _apply_stake_event(self, event: TransactionLifecycleEvent) -> bool:
        state = self.state
        if not isinstance(state, StakeSubmitted) or state.submission != event.submission:
            return False

        if event.kind == LifecycleKind.PENDING:
            if state.pending:
                return False
            self._transition(replace(state, pending=True), "stake pending")
            return True

        if event.kind == LifecycleKind.CONFIRMED:
            receipt = event.receipt
            self._applied_tx_hashes.add(receipt.tx_hash)
            self._transition(
                Cooldown(receipt.tx_hash, receipt.block_number, self.clock()),
                f"stake confirmed in block {receipt.block_number}",
            )
            return True

        # Failed: nothing partial is retained
        self.condition = SessionCondition.TRANSACTION_FAILED
        self.last_error = event.error
        logger.warning(f"Stake transaction failed: {event.error}")
        self._transition(Idle(), "stake failed")
        return True

    def _apply_claim_event(self, event: TransactionLifecycleEvent) -> bool:
        self.poll()
        state = self.state
        if not isinstance(state, Claimable) or state.claim != event.submission:
            return False

        if event.kind == LifecycleKind.PENDING:
            if state.claim_pending:
                return False
            self._transition(replace(state, claim_pending=True), "claim pending")
            return True

        if event.kind == LifecycleKind.FAILED:
            self.condition = SessionCondition.TRANSACTION_FAILED
            self.last_error = event.error
            logger.warning(f"Claim transaction failed: {event.error}")
            self._transition(replace(state, claim=None, claim_pending=False), "claim failed")
            return True

        receipt = event.receipt
        self._applied_tx_hashes.add(receipt.tx_hash)
        try:
            outcome = require_outcome(receipt.logs)
        except DecodeMismatch as e:
            self.condition = SessionCondition.OUTCOME_NOT_OBSERVABLE
            self.last_error = None
            logger.warning(f"Claim {receipt.tx_hash} confirmed but undecodable: {e}")
            self._transition(replace(state, claim=None, claim_pending=False), "claim outcome not observable")
            return True

        self.condition = None
        self.last_error = None
        self._transition(
            Resolved(
                stake_tx_hash=state.stake_tx_hash,
                stake_block_height=state.stake_block_height,
                claim_tx_hash=receipt.tx_hash,
                outcome_amount=outcome.amount,
                player=outcome.player,
            ),
            f"prize {outcome.amount} ETH",
        )
        return True

    # ------------------------------------------------------------------
    # Channel consumer
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Consume lifecycle events until cancelled. Wakes at the Cooldown
        deadline so the dwell transition happens without an incoming event.
        """
        channel = self.channel
        logger.debug("Session consumer started")
        while True:
            timeout = self.cooldown_remaining()
            try:
                event = await asyncio.wait_for(channel.get(), timeout=timeout)
            except asyncio.TimeoutError:
                self.poll()
                continue

            try:
                self.apply(event)
            finally:
                channel.task_done()

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def status_text(self) -> str:
        if self.condition is not None:
            return STATUS_MESSAGES[self.condition]
        if self.claim_in_flight:
            return CLAIM_IN_FLIGHT_MESSAGE
        return PHASE_MESSAGES[self.phase]

    def snapshot(self) -> Dict:
        """Render-ready view of the session"""
        self.poll()
        remaining = self.cooldown_remaining()
        return {
            'phase': self.phase.value,
            'stake_tx_hash': self.stake_tx_hash,
            'stake_block_height': self.stake_block_height,
            'claim_tx_hash': self.claim_tx_hash,
            'outcome_amount': self.outcome_amount,
            'player': getattr(self.state, 'player', None),
            'claim_in_flight': self.claim_in_flight,
            'cooldown_remaining': round(remaining, 1) if remaining is not None else None,
            'condition': self.condition.value if self.condition else None,
            'last_error': self.last_error,
            'status': self.status_text(),
        }

    def transitions(self) -> List[Transition]:
        return list(self.history)
