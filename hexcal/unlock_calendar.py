"""
Calendar entries for stake unlock days.

Produces plain event dicts (uid, start, end, summary, description) that an
ICS writer or calendar API can consume. One all-day event per stake.
"""

from typing import Iterable, List

from .accrual import hearts_to_hex
from .decoding import Stake

EVENT_LOCATION = "https://go.hex.com/stake/"


def stake_event(stake: Stake) -> dict:
    """All-day event on the stake's unlock date."""
    principal = hearts_to_hex(stake.staked_hearts, places=2)
    return {
        "uid": f"stake-{stake.stake_id}",
        "start": stake.unlock_date,
        "end": stake.unlock_date,
        "all_day": True,
        "summary": f"HEX unlock day for #{stake.stake_id}",
        "location": EVENT_LOCATION,
        "description": (
            f"Your HEX stake #{stake.stake_id} of {principal:,} HEX "
            f"unlocks today (day {stake.unlock_day}).\n\n"
            f"This stake has been made with account {stake.owner}."
        ),
    }


def stake_events(stakes: Iterable[Stake], include_closed: bool = True) -> List[dict]:
    """Events for all stakes, ordered by unlock date."""
    selected = [s for s in stakes if include_closed or s.is_open]
    selected.sort(key=lambda s: (s.unlock_date, s.owner.lower(), s.stake_id))
    return [stake_event(s) for s in selected]
