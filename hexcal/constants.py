"""
Protocol constants and runtime configuration for HEX stake analysis.

Units:
    hearts  : smallest HEX denomination, 1 HEX = 10^8 hearts
    shares  : stake weight, 1 T-share = 10^12 shares
    day     : 1-based ledger day index, day 1 = LAUNCH_DATE
"""

import os
from datetime import date


# =============================================================================
# Protocol Constants
# =============================================================================

LAUNCH_DATE = date(2019, 12, 3)

HEARTS_PER_HEX = 10 ** 8
SATOSHIS_PER_BTC = 10 ** 8
HEX_PER_BTC = 10 ** 4
HEARTS_PER_SATOSHI = HEARTS_PER_HEX // SATOSHIS_PER_BTC * HEX_PER_BTC

SHARES_PER_TSHARE = 10 ** 12

PRE_CLAIM_DAYS = 1
CLAIM_PHASE_WEEKS = 50
BIG_PAY_DAY = PRE_CLAIM_DAYS + CLAIM_PHASE_WEEKS * 7 + 1

DAYS_PER_YEAR = 365

# Packed daily data: unclaimed satoshis | total shares | payout
SATOSHIS_BITS = 56
SHARES_BITS = 72
PAYOUT_BITS = 72
PACKED_DAY_BYTES = (SATOSHIS_BITS + SHARES_BITS + PAYOUT_BITS) // 8

# Number of trailing days averaged for the yield estimate
YIELD_WINDOW_DAYS = 3


# =============================================================================
# Contract Addresses (Ethereum mainnet)
# =============================================================================

HEX_ADDRESS = "0x2b591e99afE9f32eAA6214f7B7629768c40Eeb39"

PRICE_SOURCES = {
    "HEX/WETH": "0x55D5c232D921B9eAA6b37b5845E439aCD04b4DBa",   # Uniswap V2 pair
    "HEX/USDC": "0xF6DCdce0ac3001B2f67F750bc64ea5beB37B5824",   # Uniswap V2 pair
    "ETH/USD": "0x729D19f657BD0614b4985Cf1D82531c67569197B",    # Maker medianizer
    "ROUTER": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",     # Uniswap V2 router
    "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
}

TOKEN_DECIMALS = {
    "HEX": 8,
    "WETH": 18,
    "USDC": 6,
    "ORACLE": 18,
}


# =============================================================================
# Runtime Defaults
# =============================================================================

DEFAULTS = {
    "rpc_url": "https://ethereum.publicnode.com",
    "hex_address": HEX_ADDRESS,
    "refresh_interval": 60.0,    # seconds between snapshot refreshes
    "range_chunk_days": 500,     # days per dailyDataRange call
    "request_timeout": 10,       # seconds, HTTP price fallback
    "price_path": "chained",     # "chained" (HEX/WETH x ETH/USD) or "direct" (HEX/USDC)
    "price_fallback": True,      # DefiLlama HTTP price when no on-chain price
    "fiat": "usd",
}

_ENV_KEYS = {
    "rpc_url": ("HEXCAL_RPC_URL", str),
    "hex_address": ("HEXCAL_HEX_ADDRESS", str),
    "refresh_interval": ("HEXCAL_REFRESH_INTERVAL", float),
    "range_chunk_days": ("HEXCAL_RANGE_CHUNK_DAYS", int),
    "request_timeout": ("HEXCAL_REQUEST_TIMEOUT", int),
    "price_path": ("HEXCAL_PRICE_PATH", str),
}


def load_config(**overrides) -> dict:
    """
    Build the runtime configuration.

    Precedence: keyword overrides, then HEXCAL_* environment variables,
    then DEFAULTS.

    Raises:
        ValueError: if an environment variable cannot be converted
    """
    config = dict(DEFAULTS)
    for key, (env_name, cast) in _ENV_KEYS.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            config[key] = cast(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from exc
    config.update({k: v for k, v in overrides.items() if v is not None})
    return config
