"""
Read-only access to the HEX ledger contract and on-chain price sources.

Every public read degrades on failure: a failed call is logged and
reported as 0, None, or an empty list. Nothing here raises into the
accrual engine.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from web3 import AsyncWeb3

from .constants import DEFAULTS
from .decoding import DailyRecord, Stake, decode_daily_range, decode_stakes
from .errors import LedgerCallFailed

logger = logging.getLogger(__name__)

GLOBAL_INFO_DAILY_DATA_COUNT = 4


# Minimal ABIs for the calls we make
HEX_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "stakerAddr", "type": "address"}],
        "name": "stakeCount",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "", "type": "address"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
        ],
        "name": "stakeLists",
        "outputs": [
            {"internalType": "uint40", "name": "stakeId", "type": "uint40"},
            {"internalType": "uint72", "name": "stakedHearts", "type": "uint72"},
            {"internalType": "uint72", "name": "stakeShares", "type": "uint72"},
            {"internalType": "uint16", "name": "lockedDay", "type": "uint16"},
            {"internalType": "uint16", "name": "stakedDays", "type": "uint16"},
            {"internalType": "uint16", "name": "unlockedDay", "type": "uint16"},
            {"internalType": "bool", "name": "isAutoStake", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "beginDay", "type": "uint256"},
            {"internalType": "uint256", "name": "endDay", "type": "uint256"},
        ],
        "name": "dailyDataRange",
        "outputs": [{"internalType": "uint256[]", "name": "list", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "globalInfo",
        "outputs": [{"internalType": "uint256[13]", "name": "", "type": "uint256[13]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

PAIR_ABI = [
    {
        "inputs": [],
        "name": "getReserves",
        "outputs": [
            {"internalType": "uint112", "name": "_reserve0", "type": "uint112"},
            {"internalType": "uint112", "name": "_reserve1", "type": "uint112"},
            {"internalType": "uint32", "name": "_blockTimestampLast", "type": "uint32"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ORACLE_ABI = [
    {
        "inputs": [],
        "name": "read",
        "outputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"},
        ],
        "name": "getAmountsOut",
        "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class LedgerGateway:
    """
    Async reader for the HEX contract.

    The AsyncWeb3 instance is injected so callers decide the provider;
    from_rpc_url() builds one over HTTP.
    """

    def __init__(self, w3: AsyncWeb3, hex_address: str = DEFAULTS["hex_address"]):
        self.w3 = w3
        self.hex_address = AsyncWeb3.to_checksum_address(hex_address)
        self.contract = w3.eth.contract(address=self.hex_address, abi=HEX_ABI)

    @classmethod
    def from_rpc_url(cls, rpc_url: str = DEFAULTS["rpc_url"], hex_address: str = DEFAULTS["hex_address"]):
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        return cls(w3, hex_address)

    async def _call(self, contract, method: str, *args):
        """Run a view call, raising LedgerCallFailed on any provider or decode error."""
        try:
            return await getattr(contract.functions, method)(*args).call()
        except Exception as exc:
            raise LedgerCallFailed(method, exc) from exc

    def _checksum(self, address: str) -> str:
        return AsyncWeb3.to_checksum_address(address)

    # -------------------------------------------------------------------
    # HEX contract
    # -------------------------------------------------------------------

    async def stake_count(self, owner: str) -> int:
        try:
            return int(await self._call(self.contract, "stakeCount", self._checksum(owner)))
        except (LedgerCallFailed, ValueError) as exc:
            logger.warning("stakeCount(%s) unavailable: %s", owner, exc)
            return 0

    async def stake_list(self, owner: str, index: int):
        """Raw stakeLists entry, or None if the call failed."""
        try:
            return await self._call(self.contract, "stakeLists", self._checksum(owner), index)
        except (LedgerCallFailed, ValueError) as exc:
            logger.warning("stakeLists(%s, %d) unavailable: %s", owner, index, exc)
            return None

    async def daily_data_range(self, start_day: int, end_day: int) -> List[int]:
        """
        Packed daily data for days start_day..end_day inclusive.

        The contract's endDay is exclusive, so one is added here.
        """
        if end_day < start_day:
            return []
        try:
            values = await self._call(self.contract, "dailyDataRange", start_day, end_day + 1)
        except LedgerCallFailed as exc:
            logger.warning("dailyDataRange(%d, %d) unavailable: %s", start_day, end_day, exc)
            return []
        return list(values)

    async def global_info(self) -> list:
        try:
            return list(await self._call(self.contract, "globalInfo"))
        except LedgerCallFailed as exc:
            logger.warning("globalInfo unavailable: %s", exc)
            return []

    async def current_day(self) -> Optional[int]:
        """
        Last day with recorded daily data, or None without data.

        globalInfo index 4 is dailyDataCount. Recorded days are
        0..dailyDataCount - 1, and dailyDataRange accepts an exclusive end
        of at most dailyDataCount.
        """
        info = await self.global_info()
        if len(info) <= GLOBAL_INFO_DAILY_DATA_COUNT:
            return None
        try:
            count = int(info[GLOBAL_INFO_DAILY_DATA_COUNT])
        except (TypeError, ValueError):
            logger.warning("globalInfo returned a non-numeric day count: %r", info[GLOBAL_INFO_DAILY_DATA_COUNT])
            return None
        if count < 1:
            return None
        return count - 1

    async def balance_of(self, owner: str) -> int:
        try:
            return int(await self._call(self.contract, "balanceOf", self._checksum(owner)))
        except (LedgerCallFailed, ValueError) as exc:
            logger.warning("balanceOf(%s) unavailable: %s", owner, exc)
            return 0

    # -------------------------------------------------------------------
    # Price sources
    # -------------------------------------------------------------------

    async def pair_reserves(self, pair_address: str) -> Optional[Tuple[int, int]]:
        pair = self.w3.eth.contract(address=self._checksum(pair_address), abi=PAIR_ABI)
        try:
            reserve0, reserve1, _ = await self._call(pair, "getReserves")
        except (LedgerCallFailed, ValueError) as exc:
            logger.warning("getReserves(%s) unavailable: %s", pair_address, exc)
            return None
        return int(reserve0), int(reserve1)

    async def oracle_read(self, oracle_address: str) -> Optional[int]:
        oracle = self.w3.eth.contract(address=self._checksum(oracle_address), abi=ORACLE_ABI)
        try:
            raw = await self._call(oracle, "read")
        except LedgerCallFailed as exc:
            logger.warning("read(%s) unavailable: %s", oracle_address, exc)
            return None
        return int.from_bytes(bytes(raw), "big")

    async def swap_quote(self, router_address: str, amount_in: int, path: Sequence[str]) -> Optional[int]:
        router = self.w3.eth.contract(address=self._checksum(router_address), abi=ROUTER_ABI)
        checksum_path = [self._checksum(a) for a in path]
        try:
            amounts = await self._call(router, "getAmountsOut", amount_in, checksum_path)
        except LedgerCallFailed as exc:
            logger.warning("getAmountsOut(%s) unavailable: %s", router_address, exc)
            return None
        if not amounts:
            return None
        return int(amounts[-1])


# =============================================================================
# Batched Reads
# =============================================================================

async def fetch_stakes(gateway, owner: str) -> List[Stake]:
    """All decodable stakes of one owner. Failed entries are skipped."""
    count = await gateway.stake_count(owner)
    if count <= 0:
        return []
    raws = await asyncio.gather(*(gateway.stake_list(owner, i) for i in range(count)))
    return decode_stakes(raws, owner)


async def fetch_all_stakes(gateway, owners: Iterable[str]) -> List[Stake]:
    """Stakes of every owner, fetched concurrently."""
    owners = list(dict.fromkeys(owners))
    per_owner = await asyncio.gather(*(fetch_stakes(gateway, owner) for owner in owners))
    return [stake for stakes in per_owner for stake in stakes]


async def fetch_balances(gateway, owners: Iterable[str]) -> Dict[str, int]:
    owners = list(dict.fromkeys(owners))
    balances = await asyncio.gather(*(gateway.balance_of(owner) for owner in owners))
    return dict(zip(owners, balances))


async def fetch_daily_records(
    gateway,
    start_day: int,
    end_day: int,
    chunk_days: int = DEFAULTS["range_chunk_days"],
) -> Dict[int, DailyRecord]:
    """
    Daily records for start_day..end_day inclusive.

    The range is split into chunks of at most chunk_days. A chunk whose
    result does not match its requested length is dropped, since its
    positions can no longer be mapped to days.
    """
    if end_day < start_day:
        return {}
    if chunk_days < 1:
        raise ValueError("chunk_days must be positive")

    chunks = [
        (begin, min(begin + chunk_days - 1, end_day))
        for begin in range(start_day, end_day + 1, chunk_days)
    ]
    results = await asyncio.gather(*(gateway.daily_data_range(b, e) for b, e in chunks))

    records = {}
    for (begin, end), values in zip(chunks, results):
        expected = end - begin + 1
        if len(values) != expected:
            if values:
                logger.warning(
                    "dailyDataRange(%d, %d) returned %d values, expected %d",
                    begin, end, len(values), expected,
                )
            continue
        records.update(decode_daily_range(values, begin))
    return records
