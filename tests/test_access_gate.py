"""
Unit tests for the owner access gate.

Tests:
- case-insensitive privilege check
- owner-only actions refuse other identities
- balance refresh keeps last value on failure
- withdraw submits an encoded payload and refreshes on confirmation
"""
import asyncio
import pytest
from decimal import Decimal
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chest_app.services.access_gate import OwnerControls, is_privileged
from chest_app.services.call_encoder import CallEncoder
from chest_app.services.errors import AccessDenied, FetchFailed
from chest_app.services.lifecycle import (
    LifecycleKind,
    Submission,
    SubmissionKind,
    TransactionLifecycleEvent,
    TransactionReceipt,
)

OWNER = "0xc17c78C007FC5C01d796a30334fa12b025426652"


class FakeLedger:
    def __init__(self, balances):
        self.balances = list(balances)

    def get_balance(self, address=None):
        value = self.balances.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def get_owner(self):
        raise FetchFailed("rpc down")


class RecordingSubmit:
    def __init__(self, kind=LifecycleKind.CONFIRMED):
        self.kind = kind
        self.calls = []

    async def __call__(self, payload, kind):
        self.calls.append((payload, kind))
        submission = Submission(kind)
        if self.kind == LifecycleKind.CONFIRMED:
            return TransactionLifecycleEvent(self.kind, submission, receipt=TransactionReceipt("0xw", 9))
        return TransactionLifecycleEvent(self.kind, submission, error="User rejected")


def controls(identity=OWNER, balances=(Decimal("1.5"),), submit=None):
    return OwnerControls(identity, FakeLedger(balances), CallEncoder(), submit or RecordingSubmit(), owner=OWNER)


class TestIsPrivileged:
    """Test the owner address comparison."""

    def test_case_insensitive(self):
        assert is_privileged(OWNER.lower(), OWNER)
        assert is_privileged(OWNER.upper().replace("0X", "0x"), OWNER)

    def test_other_identity(self):
        assert not is_privileged("0x0000000000000000000000000000000000000001", OWNER)

    def test_no_identity(self):
        assert not is_privileged(None, OWNER)
        assert not is_privileged("", OWNER)


class TestOwnerControls:
    """Test balance and withdraw flows."""

    def test_disabled_for_non_owner(self):
        gate = controls(identity="0x0000000000000000000000000000000000000001")
        assert not gate.enabled
        with pytest.raises(AccessDenied):
            gate.fetch_balance()
        with pytest.raises(AccessDenied):
            gate.withdraw_payload(Decimal("0.1"))

    def test_fetch_balance(self):
        gate = controls()
        assert gate.fetch_balance() == Decimal("1.5")

    def test_failed_balance_keeps_last_value(self):
        gate = controls(balances=(Decimal("1.5"), FetchFailed("timeout")))
        gate.fetch_balance()
        assert gate.fetch_balance() == Decimal("1.5")
        assert "timeout" in gate.last_error

    @pytest.mark.parametrize("amount", [0, -1, "0"])
    def test_non_positive_withdraw_rejected(self, amount):
        with pytest.raises(ValueError):
            controls().withdraw_payload(amount)

    @pytest.mark.parametrize("amount", [None, "", "abc", "NaN", "Infinity"])
    def test_non_numeric_withdraw_rejected(self, amount):
        with pytest.raises(ValueError, match="must be a number"):
            controls().withdraw_payload(amount)

    def test_withdraw_payload_amount(self):
        payload = controls().withdraw_payload(0.1)
        assert payload.function == "withdraw"
        assert payload.data.endswith(format(10 ** 17, "064x"))

    def test_withdraw_confirmed_refreshes_balance(self):
        submit = RecordingSubmit()
        gate = controls(balances=(Decimal("0.9"),), submit=submit)
        event = asyncio.run(gate.withdraw(Decimal("0.1")))

        assert event.kind == LifecycleKind.CONFIRMED
        assert submit.calls[0][1] == SubmissionKind.WITHDRAW
        assert gate.balance == Decimal("0.9")

    def test_withdraw_failed_records_error(self):
        gate = controls(balances=(), submit=RecordingSubmit(LifecycleKind.FAILED))
        event = asyncio.run(gate.withdraw(Decimal("0.1")))
        assert event.kind == LifecycleKind.FAILED
        assert gate.last_error == "User rejected"
        assert gate.balance is None

    def test_fetch_owner_failure(self):
        assert controls().fetch_owner() is None
