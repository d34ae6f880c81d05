"""
Fiat conversion for HEX amounts.

Rates are combined from one or two quotes:
- chained: HEX per intermediate asset x intermediate per fiat
- direct: reserves of a HEX/stablecoin constant-product pool

Every function returns None when an input is missing. A missing price is
never reported as 0.
"""

import logging
from typing import Optional, Sequence

import requests

from .constants import HEARTS_PER_HEX, PRICE_SOURCES, TOKEN_DECIMALS
from .errors import PriceUnavailable

logger = logging.getLogger(__name__)

# DefiLlama coins API
LLAMA_PRICES_API = "https://coins.llama.fi/prices/current/{coins}"

LLAMA_COIN_IDS = {
    "HEX": "ethereum:0x2b591e99afe9f32eaa6214f7b7629768c40eeb39",
    "ETH": "coingecko:ethereum",
}


# =============================================================================
# Pure Rate Functions
# =============================================================================

def chained_rate(
    token_per_intermediate: Optional[float],
    intermediate_per_fiat: Optional[float],
) -> Optional[float]:
    """
    Fiat rate through an intermediate asset.

    Example: 0.01 ETH per HEX and 2000 USD per ETH gives 20.
    """
    if token_per_intermediate is None or intermediate_per_fiat is None:
        return None
    return float(token_per_intermediate) * float(intermediate_per_fiat)


def reserve_rate(
    reserve_a: Optional[int],
    reserve_b: Optional[int],
    decimals_a: int = 0,
    decimals_b: int = 0,
) -> Optional[float]:
    """
    Price of asset A in units of asset B from pool reserves.

    rate = (reserve_b / 10^decimals_b) / (reserve_a / 10^decimals_a)
    """
    if reserve_a is None or reserve_b is None:
        return None
    scaled_a = reserve_a / 10 ** decimals_a
    scaled_b = reserve_b / 10 ** decimals_b
    if scaled_a == 0:
        return None
    return scaled_b / scaled_a


def quote_rate(
    amount_in: Optional[int],
    amount_out: Optional[int],
    decimals_in: int = 0,
    decimals_out: int = 0,
) -> Optional[float]:
    """Rate implied by a swap quote of amount_in for amount_out."""
    return reserve_rate(amount_in, amount_out, decimals_in, decimals_out)


def oracle_rate(value: Optional[int], decimals: int = TOKEN_DECIMALS["ORACLE"]) -> Optional[float]:
    """Rate from an oracle that reports a fixed-point scaled integer."""
    if value is None or value <= 0:
        return None
    return value / 10 ** decimals


def require_rate(rate: Optional[float], what: str = "price") -> float:
    if rate is None:
        raise PriceUnavailable(f"{what} unavailable")
    return rate


def to_fiat(hearts, rate: Optional[float]) -> Optional[float]:
    """Fiat value of a hearts amount, or None without a rate."""
    if rate is None or hearts is None:
        return None
    return float(hearts) / HEARTS_PER_HEX * rate


# =============================================================================
# Quote Fetching
# =============================================================================

async def fetch_hex_usd(gateway, config: Optional[dict] = None) -> Optional[float]:
    """
    Current HEX price in USD from on-chain sources.

    config["price_path"]:
        "chained": HEX/WETH pair reserves x ETH/USD oracle
        "direct":  HEX/USDC pair reserves
    """
    path = (config or {}).get("price_path", "chained")

    if path == "direct":
        reserves = await gateway.pair_reserves(PRICE_SOURCES["HEX/USDC"])
        if reserves is None:
            return None
        # token0 = HEX, token1 = USDC
        return reserve_rate(reserves[0], reserves[1], TOKEN_DECIMALS["HEX"], TOKEN_DECIMALS["USDC"])

    if path != "chained":
        raise ValueError(f"Unknown price path: {path}")

    reserves = await gateway.pair_reserves(PRICE_SOURCES["HEX/WETH"])
    eth_per_hex = None
    if reserves is not None:
        # token0 = HEX, token1 = WETH
        eth_per_hex = reserve_rate(reserves[0], reserves[1], TOKEN_DECIMALS["HEX"], TOKEN_DECIMALS["WETH"])
    usd_per_eth = oracle_rate(await gateway.oracle_read(PRICE_SOURCES["ETH/USD"]))
    return chained_rate(eth_per_hex, usd_per_eth)


async def fetch_swap_rate(gateway, amount_in: int, path: Sequence[str], decimals_in: int, decimals_out: int) -> Optional[float]:
    """Rate implied by a router quote for swapping amount_in along path."""
    amount_out = await gateway.swap_quote(PRICE_SOURCES["ROUTER"], amount_in, path)
    return quote_rate(amount_in, amount_out, decimals_in, decimals_out)


def fetch_usd_price(symbol: str = "HEX", timeout: int = 10) -> Optional[float]:
    """
    Fetch a USD price from the DefiLlama coins API.

    Args:
        symbol: Key of LLAMA_COIN_IDS
        timeout: Request timeout in seconds

    Returns:
        USD price, or None on error
    """
    coin = LLAMA_COIN_IDS.get(symbol)
    if coin is None:
        logger.warning("Unknown coin symbol: %s", symbol)
        return None

    try:
        response = requests.get(LLAMA_PRICES_API.format(coins=coin), timeout=timeout)
        response.raise_for_status()
        data = response.json()
        price = data.get("coins", {}).get(coin, {}).get("price")
        if price is None:
            return None
        return float(price)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Error fetching %s price: %s", symbol, e)
        return None
