"""
HEX Stake Calendar and Accrual Module

This module reads HEX stakes and daily pool data from the ledger contract
and computes unlock schedules, accrued interest, bonus payouts, pool share,
and an annualized yield estimate.

Modules:
    decoding: Stake and packed daily data decoders
    accrual: Exact interest / bonus aggregation over stake windows
    pricing: Fiat rate combinators and price sources
    ledger: Async read-only ledger gateway (web3)
    snapshot: Snapshot pipeline and generation-tagged refresh scheduler
    data: DataFrame views and summary reports
    unlock_calendar: Calendar events for unlock days
    visualizations: Plotting functions
"""

from .constants import (
    BIG_PAY_DAY,
    HEARTS_PER_HEX,
    HEARTS_PER_SATOSHI,
    LAUNCH_DATE,
    DEFAULTS,
    load_config,
)

from .errors import (
    HexcalError,
    MalformedStake,
    MalformedDailyRecord,
    DivisionUnavailable,
    PriceUnavailable,
    LedgerCallFailed,
)

from .decoding import (
    Stake,
    DailyRecord,
    decode_stake,
    decode_stakes,
    decode_daily_record,
    decode_daily_range,
    encode_daily_record,
    make_daily_record,
    day_to_date,
)

from .accrual import (
    AccrualResult,
    StakeAccrual,
    accrue_stake,
    accrue_bonus,
    aggregate,
    annualized_yield,
    pool_share,
    batch_start_day,
    hearts_to_hex,
)

from .pricing import (
    chained_rate,
    reserve_rate,
    quote_rate,
    oracle_rate,
    to_fiat,
    fetch_hex_usd,
    fetch_usd_price,
)

from .ledger import (
    LedgerGateway,
    fetch_stakes,
    fetch_all_stakes,
    fetch_daily_records,
)

from .snapshot import (
    Snapshot,
    RefreshScheduler,
    fetch_snapshot,
)

from .data import (
    stakes_frame,
    daily_frame,
    get_summary_stats,
    format_stats_report,
)

from .unlock_calendar import stake_events

__version__ = "0.1.0"
__all__ = [
    # Constants
    "BIG_PAY_DAY",
    "HEARTS_PER_HEX",
    "HEARTS_PER_SATOSHI",
    "LAUNCH_DATE",
    "DEFAULTS",
    "load_config",
    # Errors
    "HexcalError",
    "MalformedStake",
    "MalformedDailyRecord",
    "DivisionUnavailable",
    "PriceUnavailable",
    "LedgerCallFailed",
    # Decoding
    "Stake",
    "DailyRecord",
    "decode_stake",
    "decode_stakes",
    "decode_daily_record",
    "decode_daily_range",
    "encode_daily_record",
    "make_daily_record",
    "day_to_date",
    # Accrual
    "AccrualResult",
    "StakeAccrual",
    "accrue_stake",
    "accrue_bonus",
    "aggregate",
    "annualized_yield",
    "pool_share",
    "batch_start_day",
    "hearts_to_hex",
    # Pricing
    "chained_rate",
    "reserve_rate",
    "quote_rate",
    "oracle_rate",
    "to_fiat",
    "fetch_hex_usd",
    "fetch_usd_price",
    # Ledger
    "LedgerGateway",
    "fetch_stakes",
    "fetch_all_stakes",
    "fetch_daily_records",
    # Snapshot
    "Snapshot",
    "RefreshScheduler",
    "fetch_snapshot",
    # Data
    "stakes_frame",
    "daily_frame",
    "get_summary_stats",
    "format_stats_report",
    # Calendar
    "stake_events",
]
