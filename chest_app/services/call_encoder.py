"""
Call Encoder

Builds the outbound call payloads for the chest contract from the shared
interface descriptor. Pure; no network access.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from eth_abi import encode as abi_encode
from web3 import Web3

from ..config.chest_config import CHEST_CONTRACT_ADDRESS, CHEST_PRICE_ETH
from .decoders.abis import BUY_CHEST, CLAIM_PRIZE, OWNER, WITHDRAW, FunctionSpec
from .decoders.base import eth_to_wei
from .errors import NoActiveStake


@dataclass(frozen=True)
class Payload:
    """One call for the submission subsystem"""
    to: str
    data: str
    value: int = 0
    function: str = ""

    def to_dict(self) -> dict:
        return {'to': self.to, 'data': self.data, 'value': self.value}


class CallEncoder:
    """Encodes stake, claim, withdraw and owner calls against one contract"""

    def __init__(self, contract_address: str = CHEST_CONTRACT_ADDRESS,
                 stake_price_eth: Decimal = CHEST_PRICE_ETH):
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.stake_value_wei = eth_to_wei(stake_price_eth)

    def _encode(self, spec: FunctionSpec, args: Sequence = (), value: int = 0) -> Payload:
        if value and not spec.payable:
            raise ValueError(f"{spec.name} is not payable")
        data = spec.selector + abi_encode(spec.input_types, list(args))
        return Payload(
            to=self.contract_address,
            data="0x" + data.hex(),
            value=value,
            function=spec.name,
        )

    def encode_stake(self) -> Payload:
        """buyChest() with the fixed stake attached"""
        return self._encode(BUY_CHEST, value=self.stake_value_wei)

    def encode_claim(self, stake_block_height: Optional[int]) -> Payload:
        """claimPrize(stakeBlockHeight); raises NoActiveStake without a height"""
        if stake_block_height is None:
            raise NoActiveStake("No stake block height recorded; claim is not available yet")
        return self._encode(CLAIM_PRIZE, [int(stake_block_height)])

    def encode_withdraw(self, amount_wei: int) -> Payload:
        """withdraw(amount) for the contract owner"""
        if amount_wei < 0:
            raise ValueError("Withdraw amount must be non-negative")
        return self._encode(WITHDRAW, [int(amount_wei)])

    def encode_owner_query(self) -> Payload:
        """owner() read call"""
        return self._encode(OWNER)
