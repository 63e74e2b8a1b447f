"""
Unit tests for the chest call encoder.

Tests:
- buyChest carries the fixed stake value
- claimPrize encodes the recorded stake block height
- claim without a height raises NoActiveStake
- withdraw / owner payloads
"""
import pytest
from decimal import Decimal
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eth_utils import function_signature_to_4byte_selector

from chest_app.services.call_encoder import CallEncoder
from chest_app.services.decoders.abis import BUY_CHEST, CHEST_FUNCTIONS, get_function
from chest_app.services.errors import NoActiveStake

CONTRACT = "0xad0B9085A343be3B5273619A053Ffa5c60789173"


def selector_hex(signature: str) -> str:
    return "0x" + function_signature_to_4byte_selector(signature).hex()


@pytest.fixture
def encoder():
    return CallEncoder(CONTRACT, Decimal("0.01"))


class TestStakeEncoding:
    """Test buyChest payloads."""

    def test_stake_value_is_fixed_price(self, encoder):
        payload = encoder.encode_stake()
        assert payload.value == 10_000_000_000_000_000
        assert payload.to == CONTRACT

    def test_stake_data_is_bare_selector(self, encoder):
        payload = encoder.encode_stake()
        assert payload.data == selector_hex("buyChest()")
        assert payload.function == "buyChest"

    def test_custom_price(self):
        payload = CallEncoder(CONTRACT, Decimal("0.05")).encode_stake()
        assert payload.value == 50_000_000_000_000_000

    def test_lowercase_address_is_checksummed(self):
        payload = CallEncoder(CONTRACT.lower()).encode_stake()
        assert payload.to == CONTRACT


class TestClaimEncoding:
    """Test claimPrize payloads."""

    def test_claim_encodes_height(self, encoder):
        payload = encoder.encode_claim(1000)
        expected = selector_hex("claimPrize(uint256)") + format(1000, "064x")
        assert payload.data == expected
        assert payload.value == 0

    def test_claim_without_height_raises(self, encoder):
        with pytest.raises(NoActiveStake):
            encoder.encode_claim(None)

    def test_claim_height_zero_is_valid(self, encoder):
        payload = encoder.encode_claim(0)
        assert payload.data.endswith("0" * 64)


class TestOwnerEncoding:
    """Test withdraw and owner() payloads."""

    def test_withdraw_amount(self, encoder):
        payload = encoder.encode_withdraw(10 ** 17)
        assert payload.data == selector_hex("withdraw(uint256)") + format(10 ** 17, "064x")
        assert payload.value == 0

    def test_negative_withdraw_rejected(self, encoder):
        with pytest.raises(ValueError):
            encoder.encode_withdraw(-1)

    def test_owner_query(self, encoder):
        assert encoder.encode_owner_query().data == selector_hex("owner()")

    def test_value_rejected_on_non_payable(self, encoder):
        with pytest.raises(ValueError):
            encoder._encode(get_function("claimPrize"), [1], value=1)

    def test_payload_to_dict(self, encoder):
        d = encoder.encode_stake().to_dict()
        assert set(d) == {'to', 'data', 'value'}


class TestInterfaceDescriptor:
    """The descriptor is closed: only the known entry points exist."""

    def test_known_functions(self):
        assert set(CHEST_FUNCTIONS) == {"buyChest", "claimPrize", "withdraw", "owner", "setChestPrice"}

    def test_unknown_function_raises(self):
        with pytest.raises(KeyError):
            get_function("selfDestruct")

    def test_buy_chest_is_payable(self):
        assert BUY_CHEST.payable
        assert not get_function("withdraw").payable
