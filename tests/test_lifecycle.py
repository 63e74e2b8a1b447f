"""
Unit tests for the transaction lifecycle adapter.

Tests:
- many pending notifications collapse to one Pending
- success takes the first receipt
- exactly one terminal event per submission
- error, missing receipt and revert all surface as Failed
- pump() forwards onto the channel and closes dangling streams
"""
import asyncio
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import receipt

from chest_app.services.lifecycle import (
    LifecycleAdapter,
    LifecycleKind,
    Submission,
    SubmissionKind,
    new_channel,
    normalize_receipt,
)
from chest_app.services.errors import TransactionFailed


def success(*receipts):
    return {'statusName': 'success', 'statusData': {'transactionReceipts': list(receipts)}}


async def stream(notifications):
    for n in notifications:
        yield n


@pytest.fixture
def adapter():
    return LifecycleAdapter(Submission(SubmissionKind.STAKE))


class TestTranslate:
    """Test normalization of individual notifications."""

    def test_pending_collapses(self, adapter):
        events = [adapter.translate({'statusName': name}) for name in
                  ('buildingTransaction', 'transactionPending', 'transactionLegacyExecuted', 'transactionPending')]
        kinds = [e.kind for e in events if e is not None]
        assert kinds == [LifecycleKind.PENDING]

    def test_idle_statuses_ignored(self, adapter):
        assert adapter.translate({'statusName': 'init'}) is None
        assert adapter.translate({'statusName': 'transactionIdle'}) is None
        assert adapter.translate({'statusName': 'somethingNew'}) is None
        assert not adapter.done

    def test_success_takes_first_receipt(self, adapter):
        event = adapter.translate(success(receipt("0xAA", 1000), receipt("0xbb", 1001)))
        assert event.kind == LifecycleKind.CONFIRMED
        assert event.receipt.tx_hash == "0xaa"
        assert event.receipt.block_number == 1000
        assert event.tx_hash == "0xaa"

    def test_hex_block_number(self, adapter):
        event = adapter.translate(success(receipt("0x01", "0x3e8")))
        assert event.receipt.block_number == 1000

    def test_single_terminal_event(self, adapter):
        first = adapter.translate(success(receipt("0x01", 5)))
        assert first.is_terminal
        assert adapter.translate({'statusName': 'error', 'statusData': {'message': 'late'}}) is None
        assert adapter.translate(success(receipt("0x02", 6))) is None
        assert adapter.terminal_event is first

    def test_error_becomes_failed(self, adapter):
        event = adapter.translate({'statusName': 'error', 'statusData': {'code': 4001, 'message': 'User rejected'}})
        assert event.kind == LifecycleKind.FAILED
        assert event.error == 'User rejected'
        assert event.receipt is None

    def test_error_without_data(self, adapter):
        event = adapter.translate({'statusName': 'error'})
        assert event.kind == LifecycleKind.FAILED
        assert event.error

    def test_success_without_receipt_is_failed(self, adapter):
        event = adapter.translate({'statusName': 'success', 'statusData': {'transactionReceipts': []}})
        assert event.kind == LifecycleKind.FAILED
        assert adapter.done

    def test_unreadable_receipt_is_failed(self, adapter):
        event = adapter.translate(success({'logs': []}))
        assert event.kind == LifecycleKind.FAILED
        assert "receipt" in event.error.lower()

    def test_reverted_receipt_is_failed(self, adapter):
        event = adapter.translate(success(receipt("0x01", 5, status=0)))
        assert event.kind == LifecycleKind.FAILED
        assert event.error == "Transaction reverted"
        assert event.tx_hash == "0x01"

    def test_pending_after_terminal_ignored(self, adapter):
        adapter.translate({'statusName': 'error'})
        assert adapter.translate({'statusName': 'transactionPending'}) is None

    def test_raise_for_status(self, adapter):
        event = adapter.translate(success(receipt("0x01", 5, status=0)))
        with pytest.raises(TransactionFailed) as excinfo:
            event.raise_for_status()
        assert excinfo.value.tx_hash == "0x01"

    def test_raise_for_status_confirmed(self, adapter):
        adapter.translate(success(receipt("0x01", 5))).raise_for_status()


class TestNormalizeReceipt:
    """Test receipt normalization from dicts and bytes hashes."""

    def test_bytes_hash(self):
        r = normalize_receipt(receipt(bytes.fromhex("ab" * 32), 7))
        assert r.tx_hash == "0x" + "ab" * 32

    def test_missing_block_number(self):
        with pytest.raises(ValueError):
            normalize_receipt({'transactionHash': "0x01", 'blockNumber': None})

    def test_logs_default_empty(self):
        r = normalize_receipt({'transactionHash': "0x01", 'blockNumber': 1})
        assert r.logs == ()
        assert r.status == 1


class TestPump:
    """Test forwarding a whole stream onto the channel."""

    def test_pump_forwards_pending_and_terminal(self):
        async def scenario():
            channel = new_channel()
            adapter = LifecycleAdapter(Submission(SubmissionKind.CLAIM), channel)
            terminal = await adapter.pump(stream([
                {'statusName': 'init'},
                {'statusName': 'buildingTransaction'},
                {'statusName': 'transactionPending'},
                success(receipt("0x01", 10)),
                {'statusName': 'error'},
            ]))
            forwarded = []
            while not channel.empty():
                forwarded.append(channel.get_nowait())
            return terminal, forwarded

        terminal, forwarded = asyncio.run(scenario())
        assert [e.kind for e in forwarded] == [LifecycleKind.PENDING, LifecycleKind.CONFIRMED]
        assert forwarded[-1] is terminal

    def test_raising_stream_fails(self):
        async def crashing():
            yield {'statusName': 'buildingTransaction'}
            raise RuntimeError("signer crashed")

        async def scenario():
            channel = new_channel()
            adapter = LifecycleAdapter(Submission(SubmissionKind.STAKE), channel)
            terminal = await adapter.pump(crashing())
            forwarded = []
            while not channel.empty():
                forwarded.append(channel.get_nowait())
            return terminal, forwarded

        terminal, forwarded = asyncio.run(scenario())
        assert terminal.kind == LifecycleKind.FAILED
        assert "signer crashed" in terminal.error
        assert [e.kind for e in forwarded] == [LifecycleKind.PENDING, LifecycleKind.FAILED]

    def test_stream_ending_without_terminal_fails(self):
        async def scenario():
            channel = new_channel()
            adapter = LifecycleAdapter(Submission(SubmissionKind.STAKE), channel)
            terminal = await adapter.pump(stream([{'statusName': 'transactionPending'}]))
            return terminal, channel.qsize()

        terminal, size = asyncio.run(scenario())
        assert terminal.kind == LifecycleKind.FAILED
        assert size == 2

    def test_pump_without_channel(self):
        adapter = LifecycleAdapter(Submission(SubmissionKind.WITHDRAW))
        terminal = asyncio.run(adapter.pump(stream([success(receipt("0x09", 3))])))
        assert terminal.kind == LifecycleKind.CONFIRMED

    def test_submissions_have_distinct_ids(self):
        a = Submission(SubmissionKind.STAKE)
        b = Submission(SubmissionKind.STAKE)
        assert a != b
