"""
Chest contract interface and PrizeAwarded decoding.

- abis: the closed descriptor of the contract's entry points and event
- base: OutcomeEvent / DecodedOutcome / Tier and unit helpers
- outcome_decoder: log scanning shared by the live claim path and history
"""

from .abis import (
    BUY_CHEST,
    CLAIM_PRIZE,
    WITHDRAW,
    OWNER,
    PRIZE_AWARDED,
    FunctionSpec,
    EventSpec,
    chest_abi,
)

from .base import (
    DecodedOutcome,
    OutcomeEvent,
    Tier,
    TIERS,
    TIERS_BY_NAME,
    tier_for_amount,
    wei_to_eth,
    eth_to_wei,
    format_address,
)

from .outcome_decoder import decode_outcome_log, decode_outcome_record

__all__ = [
    'BUY_CHEST', 'CLAIM_PRIZE', 'WITHDRAW', 'OWNER', 'PRIZE_AWARDED',
    'FunctionSpec', 'EventSpec', 'chest_abi',
    'DecodedOutcome', 'OutcomeEvent', 'Tier', 'TIERS', 'TIERS_BY_NAME',
    'tier_for_amount', 'wei_to_eth', 'eth_to_wei', 'format_address',
    'decode_outcome_log', 'decode_outcome_record',
]
