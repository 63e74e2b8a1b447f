"""
Base data structures and helpers shared by the live claim path and the
history aggregator.
"""

from dataclasses import dataclass
from decimal import Decimal, getcontext
from typing import Any, Dict, List, Optional

from hexbytes import HexBytes
from web3 import Web3

from ...config.chest_config import PRIZE_TIERS

# Set decimal precision for financial calculations
getcontext().prec = 28


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class DecodedOutcome:
    """Typed fields of a PrizeAwarded log"""
    player: str
    amount_wei: int
    log_index: int = -1

    @property
    def amount(self) -> Decimal:
        return wei_to_eth(self.amount_wei)


@dataclass(frozen=True)
class OutcomeEvent:
    """Historical prize record; tx_hash is the unique key"""
    player: str
    amount: Decimal
    timestamp: int
    tx_hash: str

    @property
    def tier(self) -> Optional["Tier"]:
        return tier_for_amount(self.amount)

    def to_dict(self) -> dict:
        tier = self.tier
        return {
            'player': self.player,
            'amount': float(self.amount),
            'timestamp': self.timestamp,
            'tx_hash': self.tx_hash,
            'tier': tier.name if tier else None,
        }


@dataclass(frozen=True)
class Tier:
    """Named amount bucket [min_value, next tier's min_value)"""
    name: str
    min_value: Decimal
    color: str = ""
    emoji: str = ""
    odds: str = ""


TIERS: List[Tier] = sorted(
    (Tier(**t) for t in PRIZE_TIERS),
    key=lambda t: t.min_value,
)
TIERS_BY_NAME: Dict[str, Tier] = {t.name: t for t in TIERS}


def tier_for_amount(amount: Decimal) -> Optional[Tier]:
    """Tier with the greatest lower bound not exceeding amount (None below the lowest)"""
    match = None
    for tier in TIERS:
        if amount >= tier.min_value:
            match = tier
        else:
            break
    return match


def tier_bounds(name: str) -> tuple:
    """(lower, upper) bounds for a tier; upper is None for the top tier"""
    tier = TIERS_BY_NAME[name]
    idx = TIERS.index(tier)
    upper = TIERS[idx + 1].min_value if idx + 1 < len(TIERS) else None
    return tier.min_value, upper


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def wei_to_eth(wei: int) -> Decimal:
    """Convert wei to ETH"""
    return Decimal(Web3.from_wei(wei, 'ether'))


def eth_to_wei(eth) -> int:
    """Convert ETH (Decimal, str or number) to wei"""
    return Web3.to_wei(Decimal(str(eth)), 'ether')


def format_address(address: str, length: int = 6) -> str:
    """Format address for display"""
    if not address:
        return ""
    return f"{address[:length]}...{address[-4:]}"


def to_hex_str(value: Any) -> str:
    """Normalize a hash given as bytes, HexBytes or str to 0x-prefixed lowercase hex"""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text.lower() if text.startswith("0x") else f"0x{text.lower()}"


def to_bytes(value: Any) -> bytes:
    """Bytes from HexBytes/bytes/hex string; raises ValueError on bad hex"""
    return bytes(HexBytes(value))


def parse_int(value: Any) -> int:
    """Parse ints that may arrive as decimal strings, 0x hex strings or ints"""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.startswith("0x"):
            return int(value, 16)
        return int(value)
    return int(value)
