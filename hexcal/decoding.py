"""
Decoders for raw HEX ledger values.

Turns the values returned by the ledger contract into immutable typed
records:

- stakeLists(owner, index) entries -> Stake
- dailyDataRange(begin, end) packed integers -> DailyRecord

Daily data packing (25 bytes, big-endian):

    | unclaimed satoshis (7) | total shares (9) | payout (9) |
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .constants import (
    BIG_PAY_DAY,
    HEARTS_PER_SATOSHI,
    LAUNCH_DATE,
    PACKED_DAY_BYTES,
    PAYOUT_BITS,
    SATOSHIS_BITS,
    SHARES_BITS,
)
from .errors import DivisionUnavailable, MalformedDailyRecord, MalformedStake

logger = logging.getLogger(__name__)

RawStake = Union[Mapping, Sequence]

STAKE_FIELDS = (
    "stakeId",
    "stakedHearts",
    "stakeShares",
    "lockedDay",
    "stakedDays",
    "unlockedDay",
    "isAutoStake",
)

_PAYOUT_MASK = (1 << PAYOUT_BITS) - 1
_SHARES_MASK = (1 << SHARES_BITS) - 1
_SATOSHIS_MASK = (1 << SATOSHIS_BITS) - 1


def day_to_date(day: int, launch_date: date = LAUNCH_DATE) -> date:
    """Calendar date of a 1-based ledger day index."""
    return launch_date + timedelta(days=day - 1)


def date_to_day(when: date, launch_date: date = LAUNCH_DATE) -> int:
    """Ledger day index of a calendar date (inverse of day_to_date)."""
    return (when - launch_date).days + 1


# =============================================================================
# Stakes
# =============================================================================

@dataclass(frozen=True)
class Stake:
    """A single stake as recorded on the ledger."""
    stake_id: int
    owner: str
    staked_hearts: int
    stake_shares: int
    locked_day: int
    staked_days: int
    unlocked_day: int = 0
    is_auto_stake: bool = False
    launch_date: date = LAUNCH_DATE

    @property
    def unlock_day(self) -> int:
        """Day index the stake becomes due (lockedDay + stakedDays)."""
        return self.locked_day + self.staked_days

    @property
    def unlock_date(self) -> date:
        return day_to_date(self.unlock_day, self.launch_date)

    @property
    def is_open(self) -> bool:
        return self.unlocked_day == 0

    def days_remaining(self, current_day: int) -> int:
        """Days until unlock, negative once the unlock day has passed."""
        return self.unlock_day - current_day

    @property
    def key(self):
        """Identity of the stake across refreshes."""
        return (self.owner.lower(), self.stake_id)


def _parse_uint(value, field: str) -> int:
    if isinstance(value, bool):
        raise MalformedStake(f"{field}: expected integer, got bool")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise MalformedStake(f"{field}: not a non-negative integer: {value!r}")
        parsed = int(text)
    else:
        raise MalformedStake(f"{field}: unsupported type {type(value).__name__}")
    if parsed < 0:
        raise MalformedStake(f"{field}: negative value {parsed}")
    return parsed


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return bool(value)


def _stake_fields(raw: RawStake) -> dict:
    if isinstance(raw, Mapping):
        missing = [name for name in STAKE_FIELDS if name not in raw]
        if missing:
            raise MalformedStake(f"missing fields: {', '.join(missing)}")
        return {name: raw[name] for name in STAKE_FIELDS}
    if isinstance(raw, (list, tuple)):
        if len(raw) < len(STAKE_FIELDS):
            raise MalformedStake(
                f"expected {len(STAKE_FIELDS)} fields, got {len(raw)}"
            )
        return dict(zip(STAKE_FIELDS, raw))
    raise MalformedStake(f"unsupported stake payload {type(raw).__name__}")


def decode_stake(raw: RawStake, owner: str, launch_date: date = LAUNCH_DATE) -> Stake:
    """
    Decode one stakeLists entry.

    Args:
        raw: Mapping keyed by the ABI field names, or a tuple in ABI order.
             Numeric fields may be ints or decimal strings.
        owner: Address that owns the stake
        launch_date: Calendar date of day 1

    Returns:
        Stake

    Raises:
        MalformedStake: if a field is missing, unparseable, or out of range
    """
    fields = _stake_fields(raw)
    locked_day = _parse_uint(fields["lockedDay"], "lockedDay")
    staked_days = _parse_uint(fields["stakedDays"], "stakedDays")
    if locked_day < 1:
        raise MalformedStake(f"lockedDay must be >= 1, got {locked_day}")
    if staked_days < 1:
        raise MalformedStake(f"stakedDays must be >= 1, got {staked_days}")

    return Stake(
        stake_id=_parse_uint(fields["stakeId"], "stakeId"),
        owner=owner,
        staked_hearts=_parse_uint(fields["stakedHearts"], "stakedHearts"),
        stake_shares=_parse_uint(fields["stakeShares"], "stakeShares"),
        locked_day=locked_day,
        staked_days=staked_days,
        unlocked_day=_parse_uint(fields["unlockedDay"], "unlockedDay"),
        is_auto_stake=_parse_bool(fields["isAutoStake"]),
        launch_date=launch_date,
    )


def decode_stakes(raws: Iterable[RawStake], owner: str, launch_date: date = LAUNCH_DATE) -> List[Stake]:
    """Decode a batch of stake entries, skipping malformed ones."""
    stakes = []
    for index, raw in enumerate(raws):
        if raw is None:
            continue
        try:
            stakes.append(decode_stake(raw, owner, launch_date))
        except MalformedStake as exc:
            logger.warning("Skipping stake %d of %s: %s", index, owner, exc)
    return stakes


# =============================================================================
# Daily Data
# =============================================================================

@dataclass(frozen=True)
class DailyRecord:
    """
    Pool totals for one ledger day.

    interest_per_share is None when total_shares is zero; such a day is
    unusable and must be skipped by every sum.
    """
    day: int
    payout: int
    total_shares: int
    unclaimed_satoshis: int = 0
    interest_per_share: Optional[Fraction] = None
    bonus_per_share: Fraction = Fraction(0)

    @property
    def usable(self) -> bool:
        return self.total_shares > 0

    def require_interest_per_share(self) -> Fraction:
        if self.interest_per_share is None:
            raise DivisionUnavailable(f"day {self.day} has no recorded shares")
        return self.interest_per_share


def make_daily_record(
    day: int,
    payout: int,
    total_shares: int,
    unclaimed_satoshis: int = 0,
    bonus_day: int = BIG_PAY_DAY,
) -> DailyRecord:
    """Build a DailyRecord from raw totals, deriving the per-share ratios."""
    if total_shares > 0:
        interest = Fraction(payout, total_shares)
        if day == bonus_day:
            bonus = Fraction(unclaimed_satoshis * HEARTS_PER_SATOSHI, total_shares)
        else:
            bonus = Fraction(0)
    else:
        interest = None
        bonus = Fraction(0)
    return DailyRecord(
        day=day,
        payout=payout,
        total_shares=total_shares,
        unclaimed_satoshis=unclaimed_satoshis,
        interest_per_share=interest,
        bonus_per_share=bonus,
    )


def unpack_daily_value(value: int):
    """
    Split a packed daily value into (payout, total_shares, unclaimed_satoshis).

    Raises:
        MalformedDailyRecord: for negative, non-integer, or oversized values
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError as exc:
            raise MalformedDailyRecord(f"not an integer: {value!r}") from exc
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedDailyRecord(f"unsupported type {type(value).__name__}")
    if value < 0:
        raise MalformedDailyRecord(f"negative packed value {value}")
    if value.bit_length() > PACKED_DAY_BYTES * 8:
        raise MalformedDailyRecord(f"packed value wider than {PACKED_DAY_BYTES} bytes")

    payout = value & _PAYOUT_MASK
    total_shares = (value >> PAYOUT_BITS) & _SHARES_MASK
    unclaimed_satoshis = (value >> (PAYOUT_BITS + SHARES_BITS)) & _SATOSHIS_MASK
    return payout, total_shares, unclaimed_satoshis


def decode_daily_record(value: int, day: int, bonus_day: int = BIG_PAY_DAY) -> DailyRecord:
    """Decode one packed dailyDataRange value for the given day index."""
    payout, total_shares, unclaimed_satoshis = unpack_daily_value(value)
    return make_daily_record(day, payout, total_shares, unclaimed_satoshis, bonus_day)


def encode_daily_record(payout: int, total_shares: int, unclaimed_satoshis: int = 0) -> int:
    """Pack daily totals the way the ledger does. Inverse of unpack_daily_value."""
    for name, value, bits in (
        ("payout", payout, PAYOUT_BITS),
        ("total_shares", total_shares, SHARES_BITS),
        ("unclaimed_satoshis", unclaimed_satoshis, SATOSHIS_BITS),
    ):
        if value < 0 or value.bit_length() > bits:
            raise ValueError(f"{name} does not fit in {bits} bits: {value}")
    return (
        (unclaimed_satoshis << (PAYOUT_BITS + SHARES_BITS))
        | (total_shares << PAYOUT_BITS)
        | payout
    )


def decode_daily_range(
    values: Iterable[int],
    start_day: int,
    bonus_day: int = BIG_PAY_DAY,
) -> Dict[int, DailyRecord]:
    """
    Decode a contiguous dailyDataRange result into a day -> record map.

    The value at position i belongs to day start_day + i. Malformed values
    are logged and left out of the map.
    """
    records = {}
    for offset, value in enumerate(values):
        day = start_day + offset
        try:
            records[day] = decode_daily_record(value, day, bonus_day)
        except MalformedDailyRecord as exc:
            logger.warning("Skipping daily data for day %d: %s", day, exc)
    return records
