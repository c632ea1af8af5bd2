"""
Price history analysis for Airfare Watch.

Reduces each flight date's price history to its inflection points and
summarizes the cleaned observations for the report narrative.
"""

import logging
from datetime import date
from typing import Any, List, Optional, Sequence

import numpy as np
import pandas as pd

from config import CURRENCY
from errors import OrderingViolation
from models import FlightDateSummary
from utils import format_currency, format_date_long, format_flight_date_label, is_missing

# Configure logging
logger = logging.getLogger(__name__)

FLAG_COLUMNS = ["prev_differs", "next_differs"]


# =============================================================================
# CHANGE DETECTION
# =============================================================================

def na_aware_differs(a: Any, b: Any) -> bool:
    """
    Compare two optional prices, treating "missing" as a value of its own.

    Plain inequality on NaN is never a usable answer here, so the four cases
    are spelled out:

        both present, different  -> True
        both present, equal      -> False
        exactly one missing      -> True
        both missing             -> False

    Args:
        a: Number, None, NaN or pandas.NA
        b: Number, None, NaN or pandas.NA

    Returns:
        True if the values differ
    """
    a_missing = is_missing(a)
    b_missing = is_missing(b)

    if a_missing and b_missing:
        return False
    if a_missing or b_missing:
        return True
    return bool(a != b)


def na_aware_differs_series(a: pd.Series, b: pd.Series) -> pd.Series:
    """Element-wise na_aware_differs over two equally long Series (a's index is kept)."""
    if len(a) != len(b):
        raise ValueError(f"Series lengths differ: {len(a)} != {len(b)}")

    a_values = a.to_numpy(dtype=float, na_value=np.nan)
    b_values = b.to_numpy(dtype=float, na_value=np.nan)
    a_missing = np.isnan(a_values)
    b_missing = np.isnan(b_values)

    with np.errstate(invalid="ignore"):
        both_present_differ = ~a_missing & ~b_missing & (a_values != b_values)

    return pd.Series((a_missing ^ b_missing) | both_present_differ, index=a.index, dtype=bool)


# =============================================================================
# INFLECTION POINTS
# =============================================================================

def sort_partitions(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Order observations by flight date (first appearance) then date recorded.

    Raises:
        OrderingViolation: If a flight date has two rows for the same date,
            or its days_before does not decrease from one recorded date to the next
    """
    if frame.empty:
        return frame.reset_index(drop=True)

    order = {fd: i for i, fd in enumerate(pd.unique(frame["flight_date"]))}
    ordered = (
        frame.assign(_partition=frame["flight_date"].map(order))
        .sort_values(["_partition", "date_recorded"], kind="mergesort")
        .drop(columns="_partition")
        .reset_index(drop=True)
    )

    duplicated = ordered.duplicated(["flight_date", "date_recorded"], keep=False)
    if duplicated.any():
        first = ordered.loc[duplicated, "flight_date"].iloc[0]
        dates = ordered.loc[duplicated & (ordered["flight_date"] == first), "date_recorded"].unique()
        raise OrderingViolation(first, sorted(dates))

    # days_before counts down to the flight, so it must fall as date_recorded rises
    steps = ordered.groupby("flight_date", sort=False)["days_before"].diff()
    rising = (steps >= 0).to_numpy()
    if rising.any():
        first = ordered.loc[rising, "flight_date"].iloc[0]
        dates = ordered.loc[rising & (ordered["flight_date"] == first).to_numpy(), "date_recorded"]
        raise OrderingViolation(first, list(dates), problem="has days_before not decreasing on")

    return ordered


def flag_inflection_points(cleaned: pd.DataFrame) -> pd.DataFrame:
    """
    Compare every observation with its neighbours inside its flight date.

    Neighbours are the adjacent rows of the cleaned table, so an excluded
    day is skipped rather than treated as a gap. The first and last row of
    a flight date always count as differing from their absent neighbour.

    Returns:
        Sorted copy of cleaned with prev_differs and next_differs columns
    """
    ordered = sort_partitions(cleaned)
    if ordered.empty:
        return ordered.assign(**{col: pd.Series(dtype=bool) for col in FLAG_COLUMNS})

    prices = ordered["lowest_price"].astype(float)
    groups = prices.groupby(ordered["flight_date"], sort=False)
    position = groups.cumcount()
    is_first = position == 0
    is_last = groups.cumcount(ascending=False) == 0

    prev_differs = na_aware_differs_series(groups.shift(1), prices) | is_first
    next_differs = na_aware_differs_series(prices, groups.shift(-1)) | is_last

    return ordered.assign(prev_differs=prev_differs, next_differs=next_differs)


def reduce_to_inflection_points(cleaned: pd.DataFrame) -> pd.DataFrame:
    """
    Keep only the observations where the price changes.

    A run of identical consecutive prices collapses to its first and last
    observation; isolated values, jumps, and moves into or out of missing
    data are all kept. A flight date with a single observation is kept.

    Args:
        cleaned: The cleaned table

    Returns:
        Reduced table (with prev_differs/next_differs), flight dates in
        order of first appearance, each in chronological order
    """
    flagged = flag_inflection_points(cleaned)
    keep = flagged["prev_differs"] | flagged["next_differs"]
    reduced = flagged.loc[keep].reset_index(drop=True)
    logger.debug(f"Reduced {len(flagged)} observations to {len(reduced)} inflection points")
    return reduced


# =============================================================================
# SUMMARIES
# =============================================================================

def count_price_changes(prices: Sequence[Any]) -> int:
    """
    Count fare moves, skipping observations with no fare.

    Example:
        >>> count_price_changes([100, 100, None, 120, 90])
        2
    """
    present = [p for p in prices if not is_missing(p)]
    return sum(na_aware_differs(a, b) for a, b in zip(present, present[1:]))


def _optional_float(value: Any) -> Optional[float]:
    return None if is_missing(value) else float(value)


def summarize_flight_dates(
    cleaned: pd.DataFrame,
    reduced: Optional[pd.DataFrame] = None,
) -> List[FlightDateSummary]:
    """
    Summarize the price history of every flight date in the cleaned table.

    Args:
        cleaned: The cleaned table
        reduced: The reduced table, used for inflection counts

    Returns:
        One FlightDateSummary per flight date, in table order
    """
    ordered = sort_partitions(cleaned)
    inflections = (
        reduced["flight_date"].value_counts().to_dict()
        if reduced is not None and not reduced.empty
        else {}
    )

    summaries = []
    for flight_date, group in ordered.groupby("flight_date", sort=False):
        prices = group["lowest_price"]
        present = group.loc[prices.notna()]
        first_row = group.iloc[0]

        summary = FlightDateSummary(
            flight_date=str(flight_date),
            label=format_flight_date_label(str(flight_date), first_row["day_of_week"]),
            route=f"{first_row['origin']}-{first_row['destination']}".upper(),
            observation_count=len(group),
            missing_count=int(prices.isna().sum()),
            first_recorded=group["date_recorded"].iloc[0],
            last_recorded=group["date_recorded"].iloc[-1],
            latest_price=_optional_float(prices.iloc[-1]),
            price_changes=count_price_changes(prices.tolist()),
            inflection_count=int(inflections.get(flight_date, 0)),
        )

        if not present.empty:
            cheapest = present.loc[present["lowest_price"].idxmin()]
            summary.lowest_price = float(cheapest["lowest_price"])
            summary.lowest_price_recorded = cheapest["date_recorded"]
            summary.lowest_price_days_before = int(cheapest["days_before"])
            summary.highest_price = float(present["lowest_price"].max())

        summaries.append(summary)

    return summaries


def cheapest_flight_date(summaries: Sequence[FlightDateSummary]) -> Optional[FlightDateSummary]:
    """Return the summary with the lowest fare seen, or None if no fares were found."""
    priced = [s for s in summaries if s.lowest_price is not None]
    if not priced:
        return None
    return min(priced, key=lambda s: s.lowest_price)


# =============================================================================
# NARRATIVE
# =============================================================================

def _describe_flight_date(summary: FlightDateSummary, currency: str) -> str:
    if summary.lowest_price is None:
        return (
            f"{summary.label}: {summary.observation_count} checks since "
            f"{format_date_long(summary.first_recorded)}, and no fare has been found yet."
        )

    text = (
        f"{summary.label}: {summary.observation_count} checks since "
        f"{format_date_long(summary.first_recorded)}. Fares ranged from "
        f"{format_currency(summary.lowest_price, currency)} to "
        f"{format_currency(summary.highest_price, currency)}"
    )
    if summary.price_changes == 0:
        text += " and never moved."
    elif summary.price_changes == 1:
        text += " and moved once."
    else:
        text += f" and moved {summary.price_changes} times."

    if summary.missing_count:
        text += f" No fare was listed on {summary.missing_count} of those days."

    if summary.latest_price is None:
        text += " The latest check found no fare."
    else:
        text += f" The latest check found {format_currency(summary.latest_price, currency)}."
    return text


def build_narrative(
    summaries: Sequence[FlightDateSummary],
    as_of: Optional[date] = None,
    currency: str = CURRENCY,
) -> List[str]:
    """
    Turn the flight date summaries into report paragraphs.

    Returns:
        An overview paragraph followed by one paragraph per flight date
    """
    as_of_text = f"As of {format_date_long(as_of)}" if as_of else "So far"

    if not summaries:
        return [f"{as_of_text}, no observations have been recorded."]

    total = sum(s.observation_count for s in summaries)
    overview = (
        f"{as_of_text}, {total} fare checks have been recorded across "
        f"{len(summaries)} departure{'s' if len(summaries) != 1 else ''}."
    )

    best = cheapest_flight_date(summaries)
    if best is not None:
        overview += (
            f" The cheapest fare seen was {format_currency(best.lowest_price, currency)} "
            f"for the {best.label} departure, recorded on "
            f"{format_date_long(best.lowest_price_recorded)} "
            f"({best.lowest_price_days_before} days before the flight)."
        )

    return [overview] + [_describe_flight_date(s, currency) for s in summaries]
