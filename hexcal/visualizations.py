"""
Visualization functions for HEX stake analysis.

All plotting functions support an `advanced` parameter:
    - advanced=False (default): Include explanatory titles and annotations
    - advanced=True: Minimal annotations, just data and axis labels
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Optional, Tuple, Union
from pathlib import Path

from .constants import BIG_PAY_DAY, HEARTS_PER_HEX, LAUNCH_DATE


# =============================================================================
# Style Configuration
# =============================================================================

COLORS = {
    "primary": "#2E86AB",      # Blue - main data
    "secondary": "#A23B72",    # Magenta - secondary data
    "positive": "#28A745",     # Green - open stakes
    "negative": "#DC3545",     # Red - overdue stakes
    "neutral": "#6C757D",      # Gray - closed stakes
    "highlight": "#F18F01",    # Orange - bonus day / today
}


def set_style(advanced: bool = False):
    """Set matplotlib style based on audience."""
    plt.style.use('seaborn-v0_8-whitegrid')
    plt.rcParams.update({
        'font.size': 10 if advanced else 11,
        'axes.titlesize': 12 if advanced else 14,
        'axes.labelsize': 10 if advanced else 12,
        'figure.dpi': 100,
        'savefig.dpi': 150,
        'savefig.bbox': 'tight',
    })


def _stake_color(row, current_day: Optional[int]) -> str:
    if not row["is_open"]:
        return COLORS["neutral"]
    if current_day is not None and row["unlock_day"] <= current_day:
        return COLORS["negative"]
    return COLORS["positive"]


# =============================================================================
# Plots
# =============================================================================

def plot_unlock_schedule(
    stakes_df: pd.DataFrame,
    current_day: Optional[int] = None,
    ax: Optional[plt.Axes] = None,
    advanced: bool = False,
    figsize: Tuple[int, int] = (12, 5),
) -> plt.Axes:
    """
    Plot each stake as a bar from its locked day to its unlock day.

    Args:
        stakes_df: DataFrame from data.stakes_frame()
        current_day: Ledger day to mark with a vertical line
        ax: Matplotlib axes (created if None)
        advanced: If True, minimal annotations
        figsize: Figure size if creating new figure

    Returns:
        Matplotlib axes
    """
    set_style(advanced)

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    df = stakes_df.reset_index()
    y = np.arange(len(df))
    colors = [_stake_color(row, current_day) for _, row in df.iterrows()]

    ax.barh(y, df["staked_days"], left=df["locked_day"], color=colors, alpha=0.8,
            height=0.6)
    ax.set_yticks(y)
    ax.set_yticklabels([f"#{sid}" for sid in df["stake_id"]])

    if current_day is not None:
        ax.axvline(x=current_day, color=COLORS["highlight"], linestyle='--', linewidth=1.5,
                   label=f"Day {current_day}")
        ax.legend(loc="lower right")

    ax.set_xlabel("Ledger Day")
    ax.set_ylabel("Stake")

    if not advanced:
        ax.set_title("Stake Unlock Schedule\n"
                     f"Day 1 = {LAUNCH_DATE.isoformat()}; red bars are past their unlock day")
    else:
        ax.set_title("Unlock Schedule")

    return ax


def plot_daily_payout(
    daily_df: pd.DataFrame,
    ax: Optional[plt.Axes] = None,
    advanced: bool = False,
    window: int = 7,
    figsize: Tuple[int, int] = (12, 5),
) -> plt.Axes:
    """
    Plot payout per T-share (in HEX) for each recorded day.

    Args:
        daily_df: DataFrame from data.daily_frame()
        ax: Matplotlib axes (created if None)
        advanced: If True, minimal annotations
        window: Rolling mean window in days
        figsize: Figure size if creating new figure

    Returns:
        Matplotlib axes
    """
    set_style(advanced)

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    payout_hex = daily_df["payout_per_tshare"] / HEARTS_PER_HEX

    ax.plot(daily_df.index, payout_hex, label="Payout per T-share",
            color=COLORS["primary"], linewidth=1.0, alpha=0.6)
    ax.plot(daily_df.index, payout_hex.rolling(window=window, min_periods=1).mean(),
            label=f"{window}-day mean", color=COLORS["secondary"], linewidth=1.5)

    if BIG_PAY_DAY in daily_df.index:
        ax.axvline(x=BIG_PAY_DAY, color=COLORS["highlight"], linestyle=':', linewidth=1.5,
                   label="Big Pay Day")

    ax.set_xlabel("Ledger Day")
    ax.set_ylabel("HEX per T-share")
    ax.legend(loc="upper right")

    if not advanced:
        ax.set_title("Daily Payout per T-share\n"
                     "Gaps are days without recorded shares")
    else:
        ax.set_title("Payout per T-share")

    return ax


def plot_stake_dashboard(
    stakes_df: pd.DataFrame,
    daily_df: pd.DataFrame,
    current_day: Optional[int] = None,
    figsize: Tuple[int, int] = (12, 9),
    advanced: bool = False,
    save_path: Optional[Union[str, Path]] = None,
):
    """
    Unlock schedule above daily payout history.

    Returns:
        Matplotlib figure
    """
    fig, axes = plt.subplots(2, 1, figsize=figsize)

    plot_unlock_schedule(stakes_df, current_day=current_day, ax=axes[0], advanced=advanced)
    plot_daily_payout(daily_df, ax=axes[1], advanced=advanced)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
