"""Shared log and receipt builders for chest tests."""
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eth_abi import encode as abi_encode

from chest_app.services.decoders.abis import PRIZE_AWARDED

PLAYER = "0x1234567890AbcdEF1234567890aBcdef12345678"


def prize_log(player: str = PLAYER, prize_wei: int = 40_000_000_000_000_000, log_index: int = 0) -> dict:
    """A PrizeAwarded log entry as it appears in a receipt"""
    return {
        'address': "0xad0B9085A343be3B5273619A053Ffa5c60789173",
        'topics': [
            PRIZE_AWARDED.topic_hex,
            "0x" + "0" * 24 + player[2:].lower(),
        ],
        'data': "0x" + abi_encode(['uint256'], [prize_wei]).hex(),
        'logIndex': log_index,
    }


def prize_record(tx_hash: str, timestamp: int, prize_wei: int, player: str = PLAYER) -> dict:
    """A BaseScan getLogs record for a PrizeAwarded event"""
    record = prize_log(player, prize_wei)
    record['timeStamp'] = hex(timestamp)
    record['transactionHash'] = tx_hash
    record['blockNumber'] = hex(1000)
    return record


def receipt(tx_hash: str, block_number: int, logs=(), status: int = 1) -> dict:
    return {
        'transactionHash': tx_hash,
        'blockNumber': block_number,
        'logs': list(logs),
        'status': status,
    }


@pytest.fixture
def player():
    return PLAYER
