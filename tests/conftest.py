"""Shared fixtures for the hexcal test suite."""

import matplotlib

matplotlib.use("Agg")

import pytest

from hexcal.decoding import Stake, encode_daily_record, make_daily_record


# ── Constants ───────────────────────────────────────────────────────────────

OWNER_A = "0x24691e54afafe2416a8252097c9ca67557271475"
OWNER_B = "0xabcdef0123456789abcdef0123456789abcdef01"

POOL_SHARES = 10 ** 6


# ── Helpers ─────────────────────────────────────────────────────────────────

def make_stake(stake_id=1, owner=OWNER_A, staked_hearts=10 ** 12, stake_shares=1000,
               locked_day=100, staked_days=50, unlocked_day=0, is_auto_stake=False):
    return Stake(
        stake_id=stake_id,
        owner=owner,
        staked_hearts=staked_hearts,
        stake_shares=stake_shares,
        locked_day=locked_day,
        staked_days=staked_days,
        unlocked_day=unlocked_day,
        is_auto_stake=is_auto_stake,
    )


def interest_records(days, interest_per_share=2, total_shares=POOL_SHARES):
    """Day -> record map with a constant whole-number interest per share."""
    return {
        day: make_daily_record(day, interest_per_share * total_shares, total_shares)
        for day in days
    }


def raw_stake(stake_id, staked_hearts, stake_shares, locked_day, staked_days,
              unlocked_day=0, is_auto_stake=False):
    """stakeLists entry as returned with decimal-string fields."""
    return {
        "stakeId": str(stake_id),
        "stakedHearts": str(staked_hearts),
        "stakeShares": str(stake_shares),
        "lockedDay": str(locked_day),
        "stakedDays": str(staked_days),
        "unlockedDay": str(unlocked_day),
        "isAutoStake": is_auto_stake,
    }


class FakeGateway:
    """In-memory stand-in for LedgerGateway with the same async reads."""

    def __init__(self, day=200, stakes=None, daily=None, balances=None,
                 reserves=None, oracle=None, quote=None):
        self.day = day
        self.stakes = stakes or {}       # owner -> [raw stake]
        self.daily = daily or {}         # day -> packed int
        self.balances = balances or {}
        self.reserves = reserves or {}   # pair address -> (r0, r1)
        self.oracle = oracle
        self.quote = quote
        self.range_calls = []

    async def stake_count(self, owner):
        return len(self.stakes.get(owner, []))

    async def stake_list(self, owner, index):
        entries = self.stakes.get(owner, [])
        return entries[index] if index < len(entries) else None

    async def daily_data_range(self, start_day, end_day):
        self.range_calls.append((start_day, end_day))
        return [self.daily.get(d, 0) for d in range(start_day, end_day + 1)]

    async def current_day(self):
        return self.day

    async def balance_of(self, owner):
        return self.balances.get(owner, 0)

    async def pair_reserves(self, pair_address):
        return self.reserves.get(pair_address)

    async def oracle_read(self, oracle_address):
        return self.oracle

    async def swap_quote(self, router_address, amount_in, path):
        return self.quote


def packed_days(days, interest_per_share=2, total_shares=POOL_SHARES):
    return {d: encode_daily_record(interest_per_share * total_shares, total_shares) for d in days}


# ── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def stake():
    """Stake locked on day 100 for 50 days with 1000 shares."""
    return make_stake()


@pytest.fixture
def gateway():
    """Two owners with open stakes and a fully populated daily range."""
    return FakeGateway(
        day=200,
        stakes={
            OWNER_A: [
                raw_stake(1, 10 ** 12, 1000, 100, 50),
                raw_stake(2, 5 * 10 ** 11, 500, 150, 365, is_auto_stake=True),
            ],
            OWNER_B: [raw_stake(7, 2 * 10 ** 12, 2500, 120, 100)],
        },
        daily=packed_days(range(1, 201)),
        balances={OWNER_A: 123, OWNER_B: 0},
    )
