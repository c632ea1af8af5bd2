"""
Observation loading and cleaning for Airfare Watch.

Reads the hand-maintained CSV files (one per tracked flight date), parses
recorded dates, and drops the observations the analysis excludes. Every
function returns a new DataFrame; inputs are never modified.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from analyzer import sort_partitions
from config import (
    EXCLUDED_CARRIER_FLAG,
    EXPECTED_COLUMNS,
    FALSE_TOKENS,
    MISSING_PRICE_TOKENS,
    TRUE_TOKENS,
    get_flight_file,
)
from errors import LoadError, ParseError
from models import Observation
from utils import parse_recorded_date

# Configure logging
logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Name used in errors raised on an in-memory table rather than a file
TABLE_SOURCE = "observation table"


# =============================================================================
# RECORD LOADER
# =============================================================================

def _first_bad_row(mask: pd.Series) -> int:
    """1-based data row number of the first True entry in mask."""
    return int(np.flatnonzero(mask.to_numpy())[0]) + 1


def _coerce_prices(column: pd.Series, source: str) -> pd.Series:
    missing = column.isin(MISSING_PRICE_TOKENS)
    prices = pd.to_numeric(column.where(~missing), errors="coerce")

    bad = prices.isna() & ~missing
    if bad.any():
        row = _first_bad_row(bad)
        raise LoadError(source, f"non-numeric lowest_price {column[bad].iloc[0]!r} in row {row}")

    infinite = prices.notna() & ~np.isfinite(prices)
    if infinite.any():
        raise LoadError(source, f"non-finite lowest_price in row {_first_bad_row(infinite)}")

    negative = prices < 0
    if negative.any():
        raise LoadError(source, f"negative lowest_price in row {_first_bad_row(negative)}")

    return prices.astype(float)


def _coerce_days_before(column: pd.Series, source: str) -> pd.Series:
    days = pd.to_numeric(column, errors="coerce")
    bad = days.isna() | (days < 0) | (days % 1 != 0)
    if bad.any():
        row = _first_bad_row(bad)
        raise LoadError(source, f"invalid days_before {column[bad].iloc[0]!r} in row {row}")
    return days.astype(int)


def _coerce_flags(column: pd.Series, name: str, source: str) -> pd.Series:
    tokens = column.str.lower()
    truthy = tokens.isin(TRUE_TOKENS)
    falsy = tokens.isin(FALSE_TOKENS)

    bad = ~(truthy | falsy)
    if bad.any():
        row = _first_bad_row(bad)
        raise LoadError(source, f"unrecognised {name} value {column[bad].iloc[0]!r} in row {row}")
    return truthy.astype(bool)


def _required_columns(expected_columns: Sequence[str], flag_column: Optional[str]) -> List[str]:
    required = list(expected_columns)
    if flag_column and flag_column not in required:
        required.append(flag_column)
    return required


def load_flight_file(
    path: PathLike,
    expected_columns: Sequence[str] = EXPECTED_COLUMNS,
    flag_column: Optional[str] = EXCLUDED_CARRIER_FLAG,
) -> pd.DataFrame:
    """
    Read one observation file.

    Args:
        path: CSV file holding the observations for a single flight date
        expected_columns: Columns every file must carry
        flag_column: Exclusion flag column, required and kept as well

    Returns:
        DataFrame with the expected columns in canonical order, followed by
        the flag column when it is not one of them. Prices are floats (NaN
        when no fare was found), flags are bools, and date_recorded is still
        the raw string.

    Raises:
        LoadError: If the file is missing, unreadable or lacks a column
    """
    path = Path(path)
    source = str(path)

    if not path.is_file():
        raise LoadError(source, "file not found")

    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError as e:
        raise LoadError(source, "file is empty") from e
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise LoadError(source, str(e)) from e

    frame.columns = [str(c).strip() for c in frame.columns]

    required = _required_columns(expected_columns, flag_column)

    missing = [c for c in required if c not in frame.columns]
    if missing:
        raise LoadError(source, f"missing expected column(s): {', '.join(missing)}")

    extra = [c for c in frame.columns if c not in required]
    if extra:
        logger.warning(f"Ignoring unexpected column(s) in {source}: {', '.join(extra)}")

    frame = frame.loc[:, required].copy()
    for col in frame.columns:
        frame[col] = frame[col].str.strip()

    if "lowest_price" in frame.columns:
        frame["lowest_price"] = _coerce_prices(frame["lowest_price"], source)
    if "days_before" in frame.columns:
        frame["days_before"] = _coerce_days_before(frame["days_before"], source)
    for name in dict.fromkeys(["cheapest_is_budget_carrier", flag_column]):
        if name and name in frame.columns:
            frame[name] = _coerce_flags(frame[name], name, source)

    logger.info(f"Loaded {len(frame)} observations from {source}")
    return frame


def _read_sources(
    flight_dates: Sequence[str],
    data_dir: Optional[PathLike],
    flag_column: Optional[str],
) -> List[Tuple[Path, pd.DataFrame]]:
    return [
        (path, load_flight_file(path, flag_column=flag_column))
        for path in (get_flight_file(fd, data_dir) for fd in flight_dates)
    ]


def _concat(frames: List[pd.DataFrame], flag_column: Optional[str]) -> pd.DataFrame:
    if not frames:
        return pd.DataFrame(columns=_required_columns(EXPECTED_COLUMNS, flag_column))
    return pd.concat(frames, ignore_index=True)


def load_observations(
    flight_dates: Sequence[str],
    data_dir: Optional[PathLike] = None,
    flag_column: Optional[str] = EXCLUDED_CARRIER_FLAG,
) -> pd.DataFrame:
    """
    Read and concatenate the observation files of several flight dates.

    Files are concatenated in the order given and each file keeps its own
    row order. No deduplication is done.

    Args:
        flight_dates: Ordered flight date identifiers
        data_dir: Directory holding the files (defaults to DATA_DIR)
        flag_column: Exclusion flag column every file must carry

    Returns:
        Unified DataFrame with raw date_recorded strings

    Raises:
        LoadError: If any source is missing or malformed
    """
    sources = _read_sources(flight_dates, data_dir, flag_column)
    return _concat([frame for _, frame in sources], flag_column)


# =============================================================================
# DATE NORMALIZER
# =============================================================================

def normalize_dates(frame: pd.DataFrame, source: Optional[PathLike] = None) -> pd.DataFrame:
    """
    Parse every date_recorded string into a datetime.date.

    Args:
        frame: Observations with raw date_recorded strings
        source: File the rows came from, used in error messages

    Returns:
        Copy of frame with parsed dates

    Raises:
        ParseError: On the first malformed value, naming source and row
    """
    parsed = []
    for row, value in enumerate(frame["date_recorded"].tolist(), start=1):
        try:
            parsed.append(parse_recorded_date(value))
        except ParseError as e:
            raise ParseError(value, source=source, row=row) from e

    result = frame.copy()
    result["date_recorded"] = pd.Series(parsed, index=frame.index, dtype=object)
    return result


# =============================================================================
# FILTERS
# =============================================================================

def filter_cheapest_alternative(
    frame: pd.DataFrame,
    flag_column: str = EXCLUDED_CARRIER_FLAG,
) -> pd.DataFrame:
    """
    Drop observations where the excluded carrier held the cheapest fare.

    Args:
        frame: Observations
        flag_column: Boolean column marking the excluded rows

    Returns:
        Surviving rows in their original relative order

    Raises:
        LoadError: If the flag column is absent or does not hold booleans
    """
    if flag_column not in frame.columns:
        raise LoadError(TABLE_SOURCE, f"exclusion flag column '{flag_column}' not found")
    if not frame.empty and not pd.api.types.is_bool_dtype(frame[flag_column]):
        raise LoadError(
            TABLE_SOURCE,
            f"exclusion flag column '{flag_column}' is not boolean (dtype {frame[flag_column].dtype})",
        )

    keep = ~frame[flag_column].astype(bool)
    result = frame.loc[keep].reset_index(drop=True)
    logger.debug(f"Excluded {len(frame) - len(result)} of {len(frame)} rows flagged by {flag_column}")
    return result


def apply_as_of_cutoff(frame: pd.DataFrame, as_of: Optional[date]) -> pd.DataFrame:
    """
    Keep observations recorded on or before the as-of date.

    Args:
        frame: Observations with parsed date_recorded values
        as_of: Latest date to include; None keeps everything

    Returns:
        Filtered copy of frame
    """
    if as_of is None:
        return frame.reset_index(drop=True)
    if isinstance(as_of, datetime):
        as_of = as_of.date()

    keep = frame["date_recorded"].map(lambda d: d <= as_of).astype(bool)
    result = frame.loc[keep].reset_index(drop=True)
    logger.debug(f"As-of {as_of}: kept {len(result)} of {len(frame)} rows")
    return result


# =============================================================================
# PIPELINE
# =============================================================================

def load_normalized_observations(
    flight_dates: Sequence[str],
    data_dir: Optional[PathLike] = None,
    flag_column: Optional[str] = EXCLUDED_CARRIER_FLAG,
) -> pd.DataFrame:
    """Load every flight date file and parse its recorded dates."""
    sources = _read_sources(flight_dates, data_dir, flag_column)
    frames = [normalize_dates(frame, source=path) for path, frame in sources]
    return _concat(frames, flag_column)


def clean_observations(
    observations: pd.DataFrame,
    as_of: Optional[date] = None,
    flag_column: str = EXCLUDED_CARRIER_FLAG,
) -> Tuple[pd.DataFrame, int]:
    """
    Apply the as-of cutoff, drop excluded observations and check ordering.

    The cutoff runs first, so the excluded count only covers observations
    inside the as-of window.

    Args:
        observations: Normalized observations of every flight date
        as_of: Latest date_recorded to include
        flag_column: Boolean column marking excluded rows

    Returns:
        Tuple of (cleaned table sorted by flight date then date recorded,
        number of rows dropped by the exclusion flag)

    Raises:
        LoadError: If the flag column is unusable
        OrderingViolation: If a flight date's rows are not strictly chronological
    """
    within_cutoff = apply_as_of_cutoff(observations, as_of)
    cleaned = sort_partitions(filter_cheapest_alternative(within_cutoff, flag_column))
    return cleaned, len(within_cutoff) - len(cleaned)


def build_cleaned_table(
    flight_dates: Sequence[str],
    data_dir: Optional[PathLike] = None,
    as_of: Optional[date] = None,
    flag_column: str = EXCLUDED_CARRIER_FLAG,
) -> pd.DataFrame:
    """
    Run load, date parsing, the as-of cutoff and carrier exclusion.

    Args:
        flight_dates: Ordered flight date identifiers
        data_dir: Directory holding the files (defaults to DATA_DIR)
        as_of: Latest date_recorded to include
        flag_column: Boolean column marking excluded rows

    Returns:
        The cleaned table
    """
    observations = load_normalized_observations(flight_dates, data_dir, flag_column)
    cleaned, excluded = clean_observations(observations, as_of, flag_column)
    logger.info(
        f"Cleaned table: {len(cleaned)} of {len(observations)} observations "
        f"across {len(flight_dates)} flight dates ({excluded} excluded by {flag_column})"
    )
    return cleaned


def iter_observations(frame: pd.DataFrame) -> Iterator[Observation]:
    """Yield table rows as Observation models."""
    fields = [c for c in EXPECTED_COLUMNS if c in frame.columns]
    for record in frame[fields].to_dict(orient="records"):
        yield Observation(**record)
