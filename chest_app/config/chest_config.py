"""
Chest Configuration Module

Contains all contract, network and polling constants for the ETH Chests
client on Base Sepolia. Secrets and endpoints can be overridden from the
environment (a local .env file is loaded if present).
"""

import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

# Network Configuration
BASE_RPC_URL = os.getenv('BASE_RPC_URL', "https://sepolia.base.org")
BASE_SEPOLIA_CHAIN_ID = 84532
BASE_SEPOLIA_EXPLORER = "https://sepolia.basescan.org"

# BaseScan (Etherscan-compatible) API Configuration
BASESCAN_API_KEY = os.getenv('BASESCAN_API_KEY', '')
BASESCAN_BASE_URL = os.getenv('BASESCAN_BASE_URL', "https://api-sepolia.basescan.org/api")

# CoinGecko API Configuration
COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
COINGECKO_API_KEY = os.getenv('COINGECKO_API_KEY') or None

# Signing key for the local submitter (never logged)
PRIVATE_KEY = os.getenv('PRIVATE_KEY', '')

# Contract
CHEST_CONTRACT_ADDRESS = "0xad0B9085A343be3B5273619A053Ffa5c60789173"
OWNER_ADDRESS = "0xc17c78C007FC5C01d796a30334fa12b025426652"

# Stake
CHEST_PRICE_ETH = Decimal("0.01")

# Minimum dwell between stake confirmation and claim eligibility (seconds)
CLAIM_COOLDOWN_SECONDS = 15.0

# Polling intervals (seconds)
HISTORY_POLL_INTERVAL = 30.0
PRICE_POLL_INTERVAL = 60.0

# History view
MAX_HISTORY_ITEMS = 100
ITEMS_PER_PAGE = 5
GENESIS_BLOCK = 0

# Prize tiers, ascending by lower bound (ETH). The top tier has no upper bound.
PRIZE_TIERS = [
    {"name": "Common", "min_value": Decimal("0.004"), "color": "text-secondary", "emoji": "🥉", "odds": "65%"},
    {"name": "Uncommon", "min_value": Decimal("0.008"), "color": "text-success", "emoji": "🥈", "odds": "20%"},
    {"name": "Rare", "min_value": Decimal("0.015"), "color": "text-primary", "emoji": "🥇", "odds": "10%"},
    {"name": "Epic", "min_value": Decimal("0.04"), "color": "text-info", "emoji": "💎", "odds": "4%"},
    {"name": "Legendary", "min_value": Decimal("0.1"), "color": "text-warning", "emoji": "👑", "odds": "1%"},
]
ALL_TIERS = "All"

# Query Configuration
MAX_RETRIES = 3
RETRY_DELAY = 0.5  # seconds
REQUEST_TIMEOUT = 30  # seconds
RATE_LIMIT_DELAY = 0.2  # 5 requests per second max on the free BaseScan tier

# Lifecycle channel
LIFECYCLE_CHANNEL_CAPACITY = 64
TRANSITION_HISTORY_SIZE = 50

# Gas limits used by the local submitter
STAKE_GAS_LIMIT = 100000
CLAIM_GAS_LIMIT = 100000
WITHDRAW_GAS_LIMIT = 100000
RECEIPT_TIMEOUT = 120  # seconds

# Decimal Precision Settings
CRYPTO_PRECISION = 18
USD_PRECISION = 2
SCALE_USD = Decimal('0.01')
