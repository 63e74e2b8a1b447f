"""
Blockchain Service Module

Web3 access to Base Sepolia: read-only ledger queries (block height, balance,
owner) and a local-key signing/broadcast subsystem that reports progress as
OnchainKit-style status notifications for the lifecycle adapter.
"""

import asyncio
import logging
from decimal import Decimal
from typing import AsyncIterator, Dict, Optional

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import Web3Exception

from ..config.chest_config import (
    BASE_RPC_URL,
    BASE_SEPOLIA_CHAIN_ID,
    CHEST_CONTRACT_ADDRESS,
    PRIVATE_KEY,
    RECEIPT_TIMEOUT,
    REQUEST_TIMEOUT,
)
from .call_encoder import Payload
from .decoders.abis import chest_abi
from .decoders.base import to_hex_str, wei_to_eth
from .errors import FetchFailed

logger = logging.getLogger(__name__)

CHAIN_ERRORS = (Web3Exception, ValueError, requests.exceptions.RequestException)


def make_web3(rpc_url: str = BASE_RPC_URL) -> Web3:
    logger.info(f"Connecting to Web3 provider: {rpc_url[:50]}")
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': REQUEST_TIMEOUT}))


class LedgerReader:
    """Read-only queries against the chest contract and the chain"""

    def __init__(self, w3: Optional[Web3] = None, contract_address: str = CHEST_CONTRACT_ADDRESS):
        self.w3 = w3 or make_web3()
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=list(chest_abi()))

    def is_connected(self) -> bool:
        try:
            return self.w3.is_connected()
        except CHAIN_ERRORS as e:
            logger.warning(f"Web3 connection check failed: {e}")
            return False

    def get_block_number(self) -> int:
        try:
            return int(self.w3.eth.block_number)
        except CHAIN_ERRORS as e:
            raise FetchFailed(f"Could not read latest block number: {e}") from e

    def get_balance(self, address: Optional[str] = None) -> Decimal:
        """Balance in ETH; defaults to the chest contract's held funds"""
        target = Web3.to_checksum_address(address) if address else self.contract_address
        try:
            return wei_to_eth(self.w3.eth.get_balance(target))
        except CHAIN_ERRORS as e:
            raise FetchFailed(f"Could not read balance of {target}: {e}") from e

    def get_owner(self) -> str:
        try:
            return self.contract.functions.owner().call()
        except CHAIN_ERRORS as e:
            raise FetchFailed(f"Could not read contract owner: {e}") from e


class Web3Submitter:
    """
    Signs payloads with a local key and broadcasts them.

    submit() yields raw status notifications:
    init -> buildingTransaction -> transactionPending -> success | error.
    It never raises for chain errors; they are reported as an error status.
    """

    def __init__(self, w3: Optional[Web3] = None, private_key: str = PRIVATE_KEY,
                 chain_id: int = BASE_SEPOLIA_CHAIN_ID):
        self.w3 = w3 or make_web3()
        self.chain_id = chain_id
        self.account = Account.from_key(private_key) if private_key else None
        if self.account is None:
            logger.warning("No PRIVATE_KEY configured; transactions cannot be submitted")

    @property
    def address(self) -> Optional[str]:
        return self.account.address if self.account else None

    def _sign_and_send(self, payload: Payload, gas_limit: int) -> str:
        tx = {
            'to': payload.to,
            'data': payload.data,
            'value': payload.value,
            'chainId': self.chain_id,
            'nonce': self.w3.eth.get_transaction_count(self.account.address, 'pending'),
            'gas': gas_limit,
            'gasPrice': self.w3.eth.gas_price,
        }
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return to_hex_str(tx_hash)

    async def submit(self, payload: Payload, gas_limit: int) -> AsyncIterator[Dict]:
        yield {'statusName': 'init'}

        if self.account is None:
            yield {'statusName': 'error', 'statusData': {'message': "No signing key configured"}}
            return

        yield {'statusName': 'buildingTransaction'}
        try:
            tx_hash = await asyncio.to_thread(self._sign_and_send, payload, gas_limit)
        except CHAIN_ERRORS as e:
            logger.error(f"Failed to send {payload.function}: {e}")
            yield {'statusName': 'error', 'statusData': {'message': str(e)}}
            return

        logger.info(f"{payload.function} sent: {tx_hash}")
        yield {'statusName': 'transactionPending', 'statusData': {'transactionHash': tx_hash}}

        try:
            receipt = await asyncio.to_thread(
                self.w3.eth.wait_for_transaction_receipt, tx_hash, RECEIPT_TIMEOUT
            )
        except CHAIN_ERRORS as e:
            logger.error(f"No receipt for {tx_hash}: {e}")
            yield {'statusName': 'error', 'statusData': {'message': str(e), 'transactionHash': tx_hash}}
            return

        if receipt.get('status', 1) == 0:
            logger.warning(f"{payload.function} reverted in block {receipt.get('blockNumber')}")
            yield {'statusName': 'error', 'statusData': {'message': "Transaction reverted", 'transactionHash': tx_hash}}
            return

        logger.info(f"{payload.function} confirmed in block {receipt.get('blockNumber')}")
        yield {'statusName': 'success', 'statusData': {'transactionReceipts': [receipt]}}
