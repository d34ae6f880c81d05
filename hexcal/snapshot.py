"""
Snapshot pipeline and refresh scheduler.

A snapshot is every input of one aggregation pass read against a single
ledger day. The scheduler tags each refresh with a generation id and only
commits the result of the latest one issued, so a slow refresh can never
overwrite a newer one.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .accrual import AccrualResult, aggregate, annualized_yield, batch_start_day, pool_share
from .constants import DEFAULTS, YIELD_WINDOW_DAYS
from .decoding import DailyRecord, Stake
from .ledger import fetch_all_stakes, fetch_balances, fetch_daily_records
from .pricing import fetch_hex_usd, fetch_usd_price, to_fiat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Result of one refresh, all derived from the same last_day."""
    generation: int
    last_day: int
    owners: Tuple[str, ...]
    stakes: Tuple[Stake, ...]
    records: Dict[int, DailyRecord] = field(hash=False, compare=False)
    result: AccrualResult
    annualized_yield: Optional[Fraction]
    pool_share: Optional[Fraction]
    balances: Dict[str, int] = field(hash=False, default_factory=dict)
    usd_rate: Optional[float] = None

    @property
    def total_value_usd(self) -> Optional[float]:
        return to_fiat(self.result.total_value, self.usd_rate)


def records_window(stakes: Iterable[Stake], last_day: int) -> Tuple[int, int]:
    """
    Day range one range query must cover for a batch of stakes.

    Starts at the batch's earliest locked day minus one, and always
    includes the trailing days used by the yield estimate.
    """
    tail_start = max(1, last_day - YIELD_WINDOW_DAYS + 1)
    start = batch_start_day(stakes)
    if start is None:
        return tail_start, last_day
    return min(start, tail_start), last_day


async def fetch_snapshot(
    gateway,
    owners: Iterable[str],
    config: Optional[dict] = None,
    generation: int = 0,
    with_price: bool = True,
) -> Optional[Snapshot]:
    """
    Read and aggregate one snapshot.

    The current day is read once and passed explicitly to every
    aggregation call. Returns None if the ledger reports no current day.

    Without an on-chain price, the HTTP price is used when
    config["price_fallback"] is set.
    """
    config = {**DEFAULTS, **(config or {})}
    owners = tuple(dict.fromkeys(owners))

    last_day = await gateway.current_day()
    if last_day is None:
        logger.warning("No current day from ledger; snapshot skipped")
        return None

    stakes, balances = await asyncio.gather(
        fetch_all_stakes(gateway, owners),
        fetch_balances(gateway, owners),
    )
    start, end = records_window(stakes, last_day)
    records = await fetch_daily_records(gateway, start, end, config["range_chunk_days"])

    usd_rate = None
    if with_price:
        usd_rate = await fetch_hex_usd(gateway, config)
        if usd_rate is None and config["price_fallback"]:
            usd_rate = await asyncio.to_thread(fetch_usd_price, "HEX", config["request_timeout"])

    snapshot = Snapshot(
        generation=generation,
        last_day=last_day,
        owners=owners,
        stakes=tuple(stakes),
        records=records,
        result=aggregate(stakes, records, last_day),
        annualized_yield=annualized_yield(stakes, records, last_day),
        pool_share=pool_share(stakes, records, last_day),
        balances=balances,
        usd_rate=usd_rate,
    )
    logger.info(
        "Snapshot gen=%d day=%d owners=%d stakes=%d records=%d",
        generation, last_day, len(owners), len(stakes), len(records),
    )
    return snapshot


class RefreshScheduler:
    """
    Periodically rebuilds snapshots for a set of owners.

    Each refresh gets a new generation id. A finished refresh is committed
    only if no newer refresh has been issued since it started.
    """

    def __init__(
        self,
        gateway,
        owners: Iterable[str],
        interval: float = DEFAULTS["refresh_interval"],
        on_commit: Optional[Callable[[Snapshot], None]] = None,
        config: Optional[dict] = None,
        with_price: bool = True,
    ):
        self._gateway = gateway
        self.owners: List[str] = list(dict.fromkeys(owners))
        self.interval = interval
        self._on_commit = on_commit
        self._config = config
        self._with_price = with_price
        self._generations = itertools.count(1)
        self._latest_issued = 0
        self._wake = asyncio.Event()
        self._running = False
        self.latest: Optional[Snapshot] = None

    @property
    def latest_issued(self) -> int:
        return self._latest_issued

    def set_owners(self, owners: Iterable[str]):
        """Replace the tracked owners and request a refresh."""
        self.owners = list(dict.fromkeys(owners))
        self.trigger()

    async def refresh(self) -> Optional[Snapshot]:
        """Fetch a snapshot and commit it if it is still the newest."""
        generation = next(self._generations)
        self._latest_issued = generation
        snapshot = await fetch_snapshot(
            self._gateway, self.owners, self._config,
            generation=generation, with_price=self._with_price,
        )
        if generation != self._latest_issued:
            logger.info(
                "Discarding stale snapshot gen=%d (latest issued %d)",
                generation, self._latest_issued,
            )
            return None
        if snapshot is None:
            return None
        self.latest = snapshot
        if self._on_commit is not None:
            self._on_commit(snapshot)
        return snapshot

    def trigger(self):
        """Wake the run loop for an immediate refresh."""
        self._wake.set()

    async def run(self):
        """Refresh every `interval` seconds, or sooner when triggered, until stop()."""
        self._running = True
        while self._running:
            self._wake.clear()
            try:
                await self.refresh()
            except Exception:
                logger.exception("Error refreshing snapshot")
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    def stop(self):
        self._running = False
        self._wake.set()
