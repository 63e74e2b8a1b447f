"""
PrizeAwarded Log Decoder

Used identically by the live claim path (receipt logs) and by the history
aggregator (indexer records). Entries that fail structural decoding are
skipped; one bad entry never aborts a scan.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from .abis import PRIZE_AWARDED, EventSpec
from ..errors import DecodeMismatch
from .base import DecodedOutcome, OutcomeEvent, parse_int, to_bytes, to_hex_str, wei_to_eth

logger = logging.getLogger(__name__)


def _field(entry: Any, key: str, default=None):
    if isinstance(entry, Mapping):
        return entry.get(key, default)
    return getattr(entry, key, default)


def decode_event(entry: Any, event: EventSpec = PRIZE_AWARDED) -> Optional[dict]:
    """
    Decode one raw log entry against an event descriptor.

    Returns:
        Dict of argument name -> value, or None when topic0 does not match.

    Raises:
        DecodingError, ValueError, TypeError, KeyError, IndexError on malformed entries.
    """
    topics = _field(entry, 'topics')
    if not topics:
        raise ValueError("log entry has no topics")

    if to_bytes(topics[0]) != event.topic:
        return None

    indexed = event.indexed_inputs
    if len(topics) != len(indexed) + 1:
        raise ValueError(f"expected {len(indexed) + 1} topics, got {len(topics)}")

    args = {}
    for param, topic in zip(indexed, topics[1:]):
        topic_bytes = to_bytes(topic)
        if len(topic_bytes) != 32:
            raise ValueError(f"indexed topic for {param.name} is {len(topic_bytes)} bytes")
        (args[param.name],) = abi_decode([param.type], topic_bytes)

    data_params = event.data_inputs
    data = to_bytes(_field(entry, 'data') or b"")
    values = abi_decode([p.type for p in data_params], data)
    for param, value in zip(data_params, values):
        args[param.name] = value
    return args


def decode_outcome_log(logs: Iterable[Any]) -> Optional[DecodedOutcome]:
    """
    Return the first PrizeAwarded entry in logs, decoded, or None if none match.

    Args:
        logs: Receipt logs or indexer records (dicts or web3 AttributeDicts)
    """
    for position, entry in enumerate(logs or []):
        try:
            args = decode_event(entry, PRIZE_AWARDED)
        except (DecodingError, ValueError, TypeError, KeyError, IndexError) as e:
            logger.debug(f"Skipping malformed log at position {position}: {e}")
            continue

        if args is None:
            continue

        log_index = _field(entry, 'logIndex', position)
        try:
            log_index = parse_int(log_index)
        except (TypeError, ValueError):
            log_index = position

        outcome = DecodedOutcome(
            player=args['player'],
            amount_wei=int(args['prize']),
            log_index=log_index,
        )
        logger.debug(f"Decoded PrizeAwarded at position {position}: {outcome.player} {outcome.amount} ETH")
        return outcome

    return None


def require_outcome(logs: Iterable[Any]) -> DecodedOutcome:
    """Like decode_outcome_log, but raises DecodeMismatch when no entry matches"""
    outcome = decode_outcome_log(logs)
    if outcome is None:
        raise DecodeMismatch(f"No {PRIZE_AWARDED.name} log in receipt")
    return outcome


def decode_outcome_record(record: Mapping) -> Optional[OutcomeEvent]:
    """
    Decode one indexer record (topics, data, timeStamp, transactionHash)
    into an OutcomeEvent. Returns None when the record does not decode.
    """
    outcome = decode_outcome_log([record])
    if outcome is None:
        return None

    try:
        timestamp = parse_int(record['timeStamp'])
        tx_hash = to_hex_str(record['transactionHash'])
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"Skipping record without usable timestamp/hash: {e}")
        return None

    return OutcomeEvent(
        player=outcome.player,
        amount=wei_to_eth(outcome.amount_wei),
        timestamp=timestamp,
        tx_hash=tx_hash,
    )
