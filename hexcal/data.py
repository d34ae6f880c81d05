"""
Tabular views of stakes and daily records for HEX stake analysis.

Builds pandas DataFrames from decoded records and accrual results, and
computes summary statistics for reports. Values here are for display:
exact Fractions are converted to floats at this boundary.
"""

import pandas as pd
import numpy as np
from datetime import date
from typing import Iterable, Mapping, Optional

from .accrual import AccrualResult
from .constants import HEARTS_PER_HEX, SHARES_PER_TSHARE
from .decoding import DailyRecord, Stake


def stakes_frame(
    stakes: Iterable[Stake],
    result: Optional[AccrualResult] = None,
    current_day: Optional[int] = None,
) -> pd.DataFrame:
    """
    One row per stake, sorted by unlock date.

    Columns:
        - stake_id, owner, locked_day, staked_days, unlock_day, unlock_date
        - staked_hex: principal in HEX
        - tshares: stake shares in T-shares
        - is_open, is_auto_stake
        - interest_hex, bonus_hex: when an AccrualResult is given
        - days_remaining: when current_day is given

    Args:
        stakes: Decoded stakes
        result: Optional accrual result for the same stakes
        current_day: Optional ledger day for the countdown column

    Returns:
        DataFrame indexed by (owner, stake_id)
    """
    rows = []
    for stake in stakes:
        row = {
            "owner": stake.owner,
            "stake_id": stake.stake_id,
            "locked_day": stake.locked_day,
            "staked_days": stake.staked_days,
            "unlock_day": stake.unlock_day,
            "unlock_date": pd.Timestamp(stake.unlock_date),
            "staked_hex": stake.staked_hearts / HEARTS_PER_HEX,
            "tshares": stake.stake_shares / SHARES_PER_TSHARE,
            "is_open": stake.is_open,
            "is_auto_stake": stake.is_auto_stake,
        }
        if result is not None:
            accrual = result.for_stake(stake)
            row["interest_hex"] = float(accrual.interest) / HEARTS_PER_HEX if accrual else np.nan
            row["bonus_hex"] = float(accrual.bonus) / HEARTS_PER_HEX if accrual else np.nan
        if current_day is not None:
            row["days_remaining"] = stake.days_remaining(current_day)
        rows.append(row)

    columns = [
        "owner", "stake_id", "locked_day", "staked_days", "unlock_day", "unlock_date",
        "staked_hex", "tshares", "is_open", "is_auto_stake",
    ]
    if result is not None:
        columns += ["interest_hex", "bonus_hex"]
    if current_day is not None:
        columns.append("days_remaining")

    df = pd.DataFrame(rows, columns=columns)
    df = df.sort_values(["unlock_date", "owner", "stake_id"])
    return df.set_index(["owner", "stake_id"])


def daily_frame(records: Mapping[int, DailyRecord], launch_date: Optional[date] = None) -> pd.DataFrame:
    """
    One row per day, indexed by day number.

    Unusable days (no shares) keep NaN in interest_per_share rather than 0.
    """
    rows = []
    for day in sorted(records):
        record = records[day]
        rows.append({
            "day": day,
            "payout": record.payout,
            "total_shares": record.total_shares,
            "unclaimed_satoshis": record.unclaimed_satoshis,
            "interest_per_share": (
                float(record.interest_per_share) if record.interest_per_share is not None else np.nan
            ),
            "bonus_per_share": float(record.bonus_per_share),
        })

    df = pd.DataFrame(
        rows,
        columns=["day", "payout", "total_shares", "unclaimed_satoshis",
                 "interest_per_share", "bonus_per_share"],
    ).set_index("day")

    if launch_date is not None and len(df) > 0:
        df["date"] = pd.Timestamp(launch_date) + pd.to_timedelta(df.index - 1, unit="D")

    # Payout per T-share in hearts, the figure usually quoted
    df["payout_per_tshare"] = df["interest_per_share"] * SHARES_PER_TSHARE
    return df


def get_summary_stats(
    result: AccrualResult,
    annualized_yield=None,
    pool_share=None,
    usd_rate: Optional[float] = None,
) -> dict:
    """
    Summary statistics for an accrual result.

    Undefined values (no yield window yet, no price) stay None.

    Args:
        result: AccrualResult from aggregate()
        annualized_yield: Percent, or None
        pool_share: Percent, or None
        usd_rate: USD per HEX, or None

    Returns:
        Dictionary of summary statistics
    """
    open_stakes = [a for a in result.stakes if a.stake.is_open]
    total_hex = float(result.total_value) / HEARTS_PER_HEX
    unlock_dates = sorted(a.stake.unlock_date for a in open_stakes)

    stats = {
        "last_day": result.last_day,
        "stakes": {
            "count": len(result.stakes),
            "open": len(open_stakes),
            "next_unlock": unlock_dates[0].isoformat() if unlock_dates else None,
        },
        "hex": {
            "staked": result.total_staked / HEARTS_PER_HEX,
            "interest": float(result.total_interest) / HEARTS_PER_HEX,
            "bonus": float(result.total_bonus) / HEARTS_PER_HEX,
            "total": total_hex,
        },
        "tshares": result.total_shares / SHARES_PER_TSHARE,
        "annualized_yield": float(annualized_yield) if annualized_yield is not None else None,
        "pool_share": float(pool_share) if pool_share is not None else None,
        "usd": {
            "rate": usd_rate,
            "total": total_hex * usd_rate if usd_rate is not None else None,
        },
    }
    return stats


def _fmt(value, spec: str, suffix: str = "") -> str:
    if value is None:
        return "n/a"
    return f"{value:{spec}}{suffix}"


def format_stats_report(stats: dict) -> str:
    """
    Format summary statistics as a readable report.

    Args:
        stats: Dictionary from get_summary_stats()

    Returns:
        Formatted string report
    """
    lines = [
        "=" * 60,
        "HEX Stake Summary",
        "=" * 60,
        f"Ledger Day: {stats['last_day']}",
        f"Stakes: {stats['stakes']['count']} ({stats['stakes']['open']} open)",
        f"Next Unlock: {stats['stakes']['next_unlock'] or 'n/a'}",
        "",
        "Holdings (HEX):",
        f"  Staked:   {stats['hex']['staked']:,.2f}",
        f"  Interest: {stats['hex']['interest']:,.2f}",
        f"  Bonus:    {stats['hex']['bonus']:,.2f}",
        f"  Total:    {stats['hex']['total']:,.2f}",
        f"  T-Shares: {stats['tshares']:,.3f}",
        "",
        f"Annualized Yield: {_fmt(stats['annualized_yield'], '.2f', '%')}",
        f"Pool Share:       {_fmt(stats['pool_share'], '.6f', '%')}",
        f"HEX/USD:          {_fmt(stats['usd']['rate'], '.6f')}",
        f"Total USD:        {_fmt(stats['usd']['total'], ',.2f')}",
        "=" * 60,
    ]
    return "\n".join(lines)
