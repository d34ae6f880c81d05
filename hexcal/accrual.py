"""
Accrual engine for HEX stakes.

All sums are carried as exact fractions of hearts so that adding thousands
of daily terms of very different magnitude cannot drift. Conversion to a
display value happens only through hearts_to_hex().

Day windows:
    interest accrues on every day d with locked_day < d <= last_day
    that has a usable DailyRecord (total_shares > 0).
"""

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Iterable, Mapping, Optional, Tuple

from .constants import (
    BIG_PAY_DAY,
    DAYS_PER_YEAR,
    HEARTS_PER_HEX,
    SHARES_PER_TSHARE,
    YIELD_WINDOW_DAYS,
)
from .decoding import DailyRecord, Stake

DailyRecords = Mapping[int, DailyRecord]


@dataclass(frozen=True)
class StakeAccrual:
    """Interest and bonus earned by one stake, in hearts."""
    stake: Stake
    interest: Fraction
    bonus: Fraction

    @property
    def total(self) -> Fraction:
        return self.interest + self.bonus

    @property
    def value(self) -> Fraction:
        """Principal plus everything earned so far."""
        return self.stake.staked_hearts + self.total


@dataclass(frozen=True)
class AccrualResult:
    """Aggregate accrual for a set of stakes at one ledger day."""
    last_day: int
    stakes: Tuple[StakeAccrual, ...]
    total_staked: int
    total_shares: int
    total_interest: Fraction
    total_bonus: Fraction

    @property
    def total_value(self) -> Fraction:
        return self.total_staked + self.total_interest + self.total_bonus

    def for_stake(self, stake: Stake) -> Optional[StakeAccrual]:
        for accrual in self.stakes:
            if accrual.stake.key == stake.key:
                return accrual
        return None


def hearts_to_hex(hearts, places: int = 8) -> Decimal:
    """Convert an exact hearts amount to HEX, rounded for display."""
    value = Fraction(hearts) / HEARTS_PER_HEX
    quantum = Decimal(1).scaleb(-places)
    return (Decimal(value.numerator) / Decimal(value.denominator)).quantize(quantum)


def tshares(shares: int) -> Fraction:
    return Fraction(shares, SHARES_PER_TSHARE)


def _usable(record: Optional[DailyRecord]) -> bool:
    return record is not None and record.usable


# =============================================================================
# Per-stake Accrual
# =============================================================================

def accrue_stake(stake: Stake, records: DailyRecords, last_day: int) -> Fraction:
    """
    Interest earned by a stake over days (locked_day, last_day].

    Days missing from records, or with zero total shares, contribute
    nothing. Records outside the window are ignored.

    Args:
        stake: Stake to evaluate
        records: Mapping of day index -> DailyRecord
        last_day: Last day of the snapshot (inclusive)

    Returns:
        Interest in hearts as an exact Fraction
    """
    total = Fraction(0)
    if last_day <= stake.locked_day or stake.stake_shares == 0:
        return total

    window = last_day - stake.locked_day
    if len(records) < window:
        days = (d for d in records if stake.locked_day < d <= last_day)
    else:
        days = range(stake.locked_day + 1, last_day + 1)

    for day in days:
        record = records.get(day)
        if not _usable(record):
            continue
        total += record.interest_per_share * stake.stake_shares
    return total


def accrue_bonus(
    stake: Stake,
    records: DailyRecords,
    last_day: Optional[int] = None,
    bonus_day: int = BIG_PAY_DAY,
) -> Fraction:
    """
    One-time bonus earned on bonus_day.

    Zero unless locked_day < bonus_day <= last_day and the bonus day is
    present with shares. Without last_day, presence of the record is enough.
    """
    if stake.locked_day >= bonus_day:
        return Fraction(0)
    if last_day is not None and bonus_day > last_day:
        return Fraction(0)
    record = records.get(bonus_day)
    if not _usable(record):
        return Fraction(0)
    return record.bonus_per_share * stake.stake_shares


# =============================================================================
# Aggregates
# =============================================================================

def aggregate(stakes: Iterable[Stake], records: DailyRecords, last_day: int) -> AccrualResult:
    """
    Fold accrue_stake / accrue_bonus over all stakes.

    The result does not depend on the order of stakes: per-stake entries
    are sorted by (owner, stake_id) and totals are exact.
    """
    accruals = []
    total_staked = 0
    total_shares = 0
    total_interest = Fraction(0)
    total_bonus = Fraction(0)

    for stake in stakes:
        interest = accrue_stake(stake, records, last_day)
        bonus = accrue_bonus(stake, records, last_day)
        accruals.append(StakeAccrual(stake=stake, interest=interest, bonus=bonus))
        total_staked += stake.staked_hearts
        total_shares += stake.stake_shares
        total_interest += interest
        total_bonus += bonus

    accruals.sort(key=lambda a: a.stake.key)
    return AccrualResult(
        last_day=last_day,
        stakes=tuple(accruals),
        total_staked=total_staked,
        total_shares=total_shares,
        total_interest=total_interest,
        total_bonus=total_bonus,
    )


def latest_usable_days(records: DailyRecords, last_day: int, count: int = YIELD_WINDOW_DAYS):
    """The most recent `count` usable days at or before last_day, newest first."""
    days = sorted((d for d, r in records.items() if d <= last_day and _usable(r)), reverse=True)
    return days[:count]


def annualized_yield(
    stakes: Iterable[Stake],
    records: DailyRecords,
    last_day: int,
    window: int = YIELD_WINDOW_DAYS,
) -> Optional[Fraction]:
    """
    Annualized yield estimate in percent.

    Average daily payout to the tracked shares over the last `window`
    usable days, relative to principal plus accrued interest, scaled to a
    year.

    Returns:
        Percent as a Fraction, or None when fewer than `window` usable days
        exist or the tracked stakes hold nothing.
    """
    stakes = list(stakes)
    days = latest_usable_days(records, last_day, window)
    if len(days) < window:
        return None

    tracked_shares = sum(s.stake_shares for s in stakes)
    daily_sum = sum(
        (records[d].interest_per_share * tracked_shares for d in days),
        Fraction(0),
    )
    average = daily_sum / window

    total_staked = sum(s.staked_hearts for s in stakes)
    total_interest = sum((accrue_stake(s, records, last_day) for s in stakes), Fraction(0))
    base = total_staked + total_interest
    if base == 0:
        return None
    return average / base * DAYS_PER_YEAR * 100


def pool_share(stakes: Iterable[Stake], records: DailyRecords, last_day: int) -> Optional[Fraction]:
    """
    Percentage of the day's total pool shares held by the tracked stakes.

    None when the record for last_day is missing or has no shares.
    """
    record = records.get(last_day)
    if not _usable(record):
        return None
    tracked = sum(s.stake_shares for s in stakes)
    return tshares(tracked) / tshares(record.total_shares) * 100


def batch_start_day(stakes: Iterable[Stake]) -> Optional[int]:
    """
    First day a single range query must cover for a batch of stakes.

    Earliest locked_day minus one, never below day 1. None for no stakes.
    """
    locked = [s.locked_day for s in stakes]
    if not locked:
        return None
    return max(1, min(locked) - 1)
