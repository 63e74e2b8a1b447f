"""
Chest Client

Wires the call encoder, submission subsystem, lifecycle adapter and session
state machine together, and owns the background tasks (session consumer,
history poll, price poll) that are cancelled on close().
"""

import asyncio
import logging
from typing import List, Optional

from ..config.chest_config import (
    CLAIM_GAS_LIMIT,
    HISTORY_POLL_INTERVAL,
    PRICE_POLL_INTERVAL,
    STAKE_GAS_LIMIT,
    WITHDRAW_GAS_LIMIT,
)
from .access_gate import OwnerControls, is_privileged
from .call_encoder import CallEncoder, Payload
from .history_aggregator import HistoryAggregator
from .lifecycle import LifecycleAdapter, Submission, SubmissionKind, TransactionLifecycleEvent
from .price_service import EthPriceFeed
from .session_machine import SessionStateMachine

logger = logging.getLogger(__name__)

GAS_LIMITS = {
    SubmissionKind.STAKE: STAKE_GAS_LIMIT,
    SubmissionKind.CLAIM: CLAIM_GAS_LIMIT,
    SubmissionKind.WITHDRAW: WITHDRAW_GAS_LIMIT,
}


class ChestClient:
    """One client instance: one session, one history view, one price feed"""

    def __init__(self, submitter, ledger=None,
                 aggregator: Optional[HistoryAggregator] = None,
                 price_feed: Optional[EthPriceFeed] = None,
                 encoder: Optional[CallEncoder] = None,
                 machine: Optional[SessionStateMachine] = None,
                 identity: Optional[str] = None):
        self.submitter = submitter
        self.ledger = ledger
        self.aggregator = aggregator
        self.price_feed = price_feed
        self.encoder = encoder or CallEncoder()
        self.machine = machine or SessionStateMachine()
        self._identity = identity
        self.owner_controls = OwnerControls(self.identity, ledger, self.encoder, self._submit)
        self._tasks: List[asyncio.Task] = []

    @property
    def identity(self) -> Optional[str]:
        return self._identity or getattr(self.submitter, 'address', None)

    @property
    def is_owner(self) -> bool:
        return is_privileged(self.identity)

    async def _pump(self, payload: Payload, submission: Submission,
                    channel: Optional[asyncio.Queue]) -> Optional[TransactionLifecycleEvent]:
        adapter = LifecycleAdapter(submission, channel)
        stream = self.submitter.submit(payload, GAS_LIMITS[submission.kind])
        return await adapter.pump(stream)

    async def _submit(self, payload: Payload, kind: SubmissionKind) -> Optional[TransactionLifecycleEvent]:
        """Submit a call that is not part of the session (owner withdraw)"""
        return await self._pump(payload, Submission(kind), None)

    async def submit_stake(self) -> Optional[TransactionLifecycleEvent]:
        """Buy a chest. Raises SessionPhaseError unless the session is Idle."""
        payload = self.encoder.encode_stake()
        submission = self.machine.submit_stake()
        logger.info(f"Buying chest (submission {submission.id})")
        return await self._pump(payload, submission, self.machine.channel)

    async def submit_claim(self) -> Optional[TransactionLifecycleEvent]:
        """Claim the prize. Raises SessionPhaseError unless Claimable with no claim in flight."""
        submission = self.machine.submit_claim()
        payload = self.encoder.encode_claim(self.machine.stake_block_height)
        logger.info(f"Claiming prize for block {self.machine.stake_block_height} (submission {submission.id})")
        return await self._pump(payload, submission, self.machine.channel)

    def reset(self) -> None:
        self.machine.reset()

    def start(self) -> None:
        """Start background tasks on the running event loop"""
        loop = asyncio.get_running_loop()
        self._tasks.append(loop.create_task(self.machine.run()))
        if self.aggregator is not None:
            self._tasks.append(self.aggregator.start(HISTORY_POLL_INTERVAL))
        if self.price_feed is not None:
            self._tasks.append(self.price_feed.start(PRICE_POLL_INTERVAL))
        logger.info(f"Chest client started for {self.identity or 'anonymous'}")

    async def close(self) -> None:
        """Cancel timers and the session consumer. In-flight transactions are not cancellable."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self.aggregator is not None:
            self.aggregator.stop()
        if self.price_feed is not None:
            self.price_feed.stop()
        logger.info("Chest client closed")
