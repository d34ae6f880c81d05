"""
test_ledger.py - LedgerGateway reads and batched fetch helpers.

The web3 layer is replaced by a fake contract factory so every read can be
made to succeed or fail without a node.
"""

from fractions import Fraction

import pytest

from hexcal.constants import HEX_ADDRESS
from hexcal.decoding import encode_daily_record
from hexcal.ledger import (
    LedgerGateway,
    fetch_all_stakes,
    fetch_balances,
    fetch_daily_records,
    fetch_stakes,
)
from hexcal.snapshot import fetch_snapshot

from .conftest import OWNER_A, OWNER_B, POOL_SHARES, FakeGateway, raw_stake

pytestmark = pytest.mark.asyncio

PAIR = "0x" + "11" * 20
ORACLE = "0x" + "22" * 20
ROUTER = "0x" + "33" * 20


class FakeCall:
    def __init__(self, handler, args):
        self._handler = handler
        self._args = args

    async def call(self):
        return self._handler(*self._args)


class FakeFunctions:
    def __init__(self, handlers):
        self._handlers = handlers

    def __getattr__(self, name):
        handler = self._handlers[name]
        return lambda *args: FakeCall(handler, args)


class FakeContract:
    def __init__(self, handlers):
        self.functions = FakeFunctions(handlers)


class FakeEth:
    def __init__(self, contracts):
        self._contracts = {addr.lower(): handlers for addr, handlers in contracts.items()}

    def contract(self, address, abi):
        return FakeContract(self._contracts.get(address.lower(), {}))


class FakeWeb3:
    def __init__(self, contracts):
        self.eth = FakeEth(contracts)


def fail(*args):
    raise ConnectionError("node unreachable")


def make_gateway(hex_handlers=None, **other_contracts):
    contracts = {HEX_ADDRESS: hex_handlers or {}}
    contracts.update(other_contracts)
    return LedgerGateway(FakeWeb3(contracts))


# ── HEX contract reads ──────────────────────────────────────────────────────

async def test_stake_count_and_list():
    entries = {OWNER_A.lower(): [(1, 100, 200, 10, 20, 0, False)]}
    gateway = make_gateway({
        "stakeCount": lambda owner: len(entries[owner.lower()]),
        "stakeLists": lambda owner, i: entries[owner.lower()][i],
    })
    assert await gateway.stake_count(OWNER_A) == 1
    assert await gateway.stake_list(OWNER_A, 0) == (1, 100, 200, 10, 20, 0, False)


async def test_failed_reads_degrade():
    gateway = make_gateway({
        "stakeCount": fail,
        "stakeLists": fail,
        "dailyDataRange": fail,
        "globalInfo": fail,
        "balanceOf": fail,
    })
    assert await gateway.stake_count(OWNER_A) == 0
    assert await gateway.stake_list(OWNER_A, 0) is None
    assert await gateway.daily_data_range(1, 10) == []
    assert await gateway.global_info() == []
    assert await gateway.current_day() is None
    assert await gateway.balance_of(OWNER_A) == 0


async def test_missing_method_degrades():
    gateway = make_gateway({})
    assert await gateway.stake_count(OWNER_A) == 0


async def test_daily_data_range_is_inclusive():
    calls = []

    def daily_range(begin, end):
        calls.append((begin, end))
        return [encode_daily_record(d, 1) for d in range(begin, end)]

    gateway = make_gateway({"dailyDataRange": daily_range})
    values = await gateway.daily_data_range(5, 7)

    assert calls == [(5, 8)]
    assert len(values) == 3
    assert await gateway.daily_data_range(7, 5) == []


def global_info(daily_data_count):
    return [0, 0, 0, 0, daily_data_count, 0, 0, 0, 0, 0, 0, 0, 0]


async def test_current_day_is_last_recorded_day():
    gateway = make_gateway({"globalInfo": lambda: global_info(812)})
    assert await gateway.current_day() == 811


async def test_current_day_without_recorded_days():
    gateway = make_gateway({"globalInfo": lambda: global_info(0)})
    assert await gateway.current_day() is None


async def test_current_day_short_global_info():
    gateway = make_gateway({"globalInfo": lambda: [1, 2]})
    assert await gateway.current_day() is None


async def test_balance_of():
    gateway = make_gateway({"balanceOf": lambda owner: 5 * 10 ** 8})
    assert await gateway.balance_of(OWNER_B) == 5 * 10 ** 8


# ── Price source reads ──────────────────────────────────────────────────────

async def test_pair_reserves():
    gateway = make_gateway(**{PAIR: {"getReserves": lambda: (10, 20, 1700000000)}})
    assert await gateway.pair_reserves(PAIR) == (10, 20)


async def test_oracle_read_decodes_bytes32():
    value = 2000 * 10 ** 18
    gateway = make_gateway(**{ORACLE: {"read": lambda: value.to_bytes(32, "big")}})
    assert await gateway.oracle_read(ORACLE) == value


async def test_swap_quote_returns_last_amount():
    gateway = make_gateway(**{ROUTER: {"getAmountsOut": lambda amount, path: [amount, amount * 3]}})
    assert await gateway.swap_quote(ROUTER, 7, [PAIR, ORACLE]) == 21


async def test_price_reads_degrade():
    gateway = make_gateway(**{
        PAIR: {"getReserves": fail},
        ORACLE: {"read": fail},
        ROUTER: {"getAmountsOut": lambda amount, path: []},
    })
    assert await gateway.pair_reserves(PAIR) is None
    assert await gateway.oracle_read(ORACLE) is None
    assert await gateway.swap_quote(ROUTER, 7, [PAIR, ORACLE]) is None


# ── Batched fetch helpers ───────────────────────────────────────────────────

async def test_fetch_stakes_decodes_and_skips_bad_entries():
    bad = raw_stake(2, 1, 1, 1, 1)
    bad["stakedHearts"] = "lots"
    gateway = FakeGateway(stakes={OWNER_A: [raw_stake(1, 100, 200, 10, 20), bad, None]})

    stakes = await fetch_stakes(gateway, OWNER_A)

    assert [s.stake_id for s in stakes] == [1]
    assert stakes[0].owner == OWNER_A


async def test_fetch_stakes_for_unknown_owner():
    assert await fetch_stakes(FakeGateway(), OWNER_B) == []


async def test_fetch_all_stakes_deduplicates_owners(gateway):
    stakes = await fetch_all_stakes(gateway, [OWNER_A, OWNER_B, OWNER_A])
    assert sorted((s.owner, s.stake_id) for s in stakes) == [(OWNER_A, 1), (OWNER_A, 2), (OWNER_B, 7)]


async def test_fetch_balances(gateway):
    assert await fetch_balances(gateway, [OWNER_A, OWNER_B]) == {OWNER_A: 123, OWNER_B: 0}


async def test_fetch_daily_records_chunks_range():
    daily = {d: encode_daily_record(d * 2, 2) for d in range(1, 6)}
    gateway = FakeGateway(daily=daily)

    records = await fetch_daily_records(gateway, 1, 5, chunk_days=2)

    assert sorted(gateway.range_calls) == [(1, 2), (3, 4), (5, 5)]
    assert sorted(records) == [1, 2, 3, 4, 5]
    assert all(records[d].interest_per_share == d for d in records)


async def test_fetch_daily_records_drops_short_chunks():
    class ShortGateway(FakeGateway):
        async def daily_data_range(self, start_day, end_day):
            values = await super().daily_data_range(start_day, end_day)
            return values[:-1] if start_day == 3 else values

    gateway = ShortGateway(daily={d: encode_daily_record(1, 1) for d in range(1, 7)})
    records = await fetch_daily_records(gateway, 1, 6, chunk_days=2)
    assert sorted(records) == [1, 2, 5, 6]


async def test_fetch_daily_records_empty_range():
    assert await fetch_daily_records(FakeGateway(), 10, 5) == {}


async def test_fetch_daily_records_rejects_bad_chunk_size():
    with pytest.raises(ValueError):
        await fetch_daily_records(FakeGateway(), 1, 5, chunk_days=0)


# ── Against the contract's range bound ──────────────────────────────────────

def bounded_hex_contract(daily_data_count, stakes):
    """HEX contract handlers that reject ranges past dailyDataCount."""

    def daily_range(begin, end):
        if not (begin < end <= daily_data_count):
            raise ValueError("HEX: range invalid")
        return [encode_daily_record(2 * POOL_SHARES, POOL_SHARES) for _ in range(begin, end)]

    return {
        "globalInfo": lambda: global_info(daily_data_count),
        "dailyDataRange": daily_range,
        "stakeCount": lambda owner: len(stakes),
        "stakeLists": lambda owner, i: stakes[i],
        "balanceOf": lambda owner: 0,
    }


async def test_snapshot_reads_up_to_last_recorded_day():
    gateway = make_gateway(bounded_hex_contract(201, [(1, 10 ** 12, 1000, 100, 50, 0, False)]))

    snapshot = await fetch_snapshot(gateway, [OWNER_A], with_price=False)

    assert snapshot.last_day == 200
    assert max(snapshot.records) == 200
    assert snapshot.pool_share == Fraction(1000, POOL_SHARES) * 100
    assert snapshot.annualized_yield is not None
    assert snapshot.result.total_interest == 2 * 1000 * 100


async def test_chunked_range_stays_within_bound():
    gateway = make_gateway(bounded_hex_contract(201, []))
    last_day = await gateway.current_day()

    records = await fetch_daily_records(gateway, 1, last_day, chunk_days=64)

    assert sorted(records) == list(range(1, 201))
