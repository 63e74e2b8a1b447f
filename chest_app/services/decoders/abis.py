"""
Chest Contract Interface Descriptor

The chest contract is reached only through a small, fixed set of entry points
and one event. They are described once here and consumed by both the call
encoder and the log decoder, so a signature change is made in one place.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Tuple

from eth_utils import event_signature_to_log_topic, function_signature_to_4byte_selector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Param:
    name: str
    type: str
    indexed: bool = False


@dataclass(frozen=True)
class FunctionSpec:
    """One callable entry point on the contract"""
    name: str
    inputs: Tuple[Param, ...] = ()
    outputs: Tuple[Param, ...] = ()
    state_mutability: str = "nonpayable"

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    @property
    def input_types(self) -> List[str]:
        return [p.type for p in self.inputs]

    @property
    def payable(self) -> bool:
        return self.state_mutability == "payable"

    def to_abi(self) -> Dict:
        return {
            "type": "function",
            "name": self.name,
            "inputs": [{"name": p.name, "type": p.type} for p in self.inputs],
            "outputs": [{"name": p.name, "type": p.type} for p in self.outputs],
            "stateMutability": self.state_mutability,
        }


@dataclass(frozen=True)
class EventSpec:
    """One event emitted by the contract"""
    name: str
    inputs: Tuple[Param, ...] = field(default_factory=tuple)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.inputs)})"

    @property
    def topic(self) -> bytes:
        return event_signature_to_log_topic(self.signature)

    @property
    def topic_hex(self) -> str:
        return "0x" + self.topic.hex()

    @property
    def indexed_inputs(self) -> List[Param]:
        return [p for p in self.inputs if p.indexed]

    @property
    def data_inputs(self) -> List[Param]:
        return [p for p in self.inputs if not p.indexed]

    def to_abi(self) -> Dict:
        return {
            "type": "event",
            "name": self.name,
            "anonymous": False,
            "inputs": [{"name": p.name, "type": p.type, "indexed": p.indexed} for p in self.inputs],
        }


# === CHEST CONTRACT ===

BUY_CHEST = FunctionSpec("buyChest", state_mutability="payable")

CLAIM_PRIZE = FunctionSpec(
    "claimPrize",
    inputs=(Param("purchaseBlockNumber", "uint256"),),
)

WITHDRAW = FunctionSpec(
    "withdraw",
    inputs=(Param("amount", "uint256"),),
)

OWNER = FunctionSpec(
    "owner",
    outputs=(Param("", "address"),),
    state_mutability="view",
)

SET_CHEST_PRICE = FunctionSpec(
    "setChestPrice",
    inputs=(Param("_price", "uint256"),),
)

PRIZE_AWARDED = EventSpec(
    "PrizeAwarded",
    inputs=(
        Param("player", "address", indexed=True),
        Param("prize", "uint256"),
    ),
)

CHEST_FUNCTIONS = {spec.name: spec for spec in (BUY_CHEST, CLAIM_PRIZE, WITHDRAW, OWNER, SET_CHEST_PRICE)}
CHEST_EVENTS = {spec.name: spec for spec in (PRIZE_AWARDED,)}


def get_function(name: str) -> FunctionSpec:
    """Look up an entry point by name; raises KeyError for names outside the interface"""
    return CHEST_FUNCTIONS[name]


@lru_cache(maxsize=1)
def chest_abi() -> Tuple[Dict, ...]:
    """Full contract ABI for web3 contract objects (read calls)"""
    abi = tuple(spec.to_abi() for spec in CHEST_FUNCTIONS.values())
    abi += tuple(spec.to_abi() for spec in CHEST_EVENTS.values())
    logger.debug(f"Built chest ABI with {len(abi)} entries")
    return abi
