"""
Access Gate

Decides whether the connected identity may see the owner controls, and runs
the owner's balance and withdraw actions (single request/await/refresh
cycles, no state machine).
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, Optional

from ..config.chest_config import OWNER_ADDRESS
from .call_encoder import CallEncoder, Payload
from .decoders.base import eth_to_wei
from .errors import AccessDenied, FetchFailed
from .lifecycle import LifecycleKind, SubmissionKind, TransactionLifecycleEvent

logger = logging.getLogger(__name__)


def is_privileged(identity: Optional[str], owner: str = OWNER_ADDRESS) -> bool:
    """Case-insensitive match against the privileged owner address"""
    if not identity:
        return False
    return identity.strip().lower() == owner.strip().lower()


class OwnerControls:
    """Balance query and withdraw for the contract owner"""

    def __init__(self, identity: Optional[str], ledger, encoder: CallEncoder,
                 submit: Callable[[Payload, SubmissionKind], Awaitable[Optional[TransactionLifecycleEvent]]],
                 owner: str = OWNER_ADDRESS):
        self.identity = identity
        self.ledger = ledger
        self.encoder = encoder
        self.submit = submit
        self.owner = owner
        self.balance: Optional[Decimal] = None
        self.last_error: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return is_privileged(self.identity, self.owner)

    def _require_owner(self):
        if not self.enabled:
            raise AccessDenied("Owner controls are only available to the contract owner")

    def fetch_balance(self) -> Optional[Decimal]:
        """Contract balance in ETH; the previous value is kept if the read fails"""
        self._require_owner()
        try:
            self.balance = self.ledger.get_balance()
            self.last_error = None
        except FetchFailed as e:
            self.last_error = str(e)
            logger.error(f"Balance refresh failed: {e}")
        return self.balance

    def withdraw_payload(self, amount_eth) -> Payload:
        self._require_owner()
        try:
            amount = Decimal(str(amount_eth))
        except (InvalidOperation, TypeError) as e:
            raise ValueError("Withdraw amount must be a number") from e
        if not amount.is_finite():
            raise ValueError("Withdraw amount must be a number")
        if amount <= 0:
            raise ValueError("Withdraw amount must be positive")
        return self.encoder.encode_withdraw(eth_to_wei(amount))

    async def withdraw(self, amount_eth) -> Optional[TransactionLifecycleEvent]:
        """Submit a withdraw, wait for its terminal event, refresh balance on success"""
        payload = self.withdraw_payload(amount_eth)
        logger.info(f"Withdrawing {amount_eth} ETH from chest contract")
        event = await self.submit(payload, SubmissionKind.WITHDRAW)
        if event is not None and event.kind == LifecycleKind.CONFIRMED:
            self.fetch_balance()
        elif event is not None:
            self.last_error = event.error
        return event

    def fetch_owner(self) -> Optional[str]:
        """On-chain owner() read, for checking the configured owner address"""
        try:
            return self.ledger.get_owner()
        except FetchFailed as e:
            logger.warning(f"Owner lookup failed: {e}")
            return None
