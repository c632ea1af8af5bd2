"""
Utility functions for Airfare Watch.

Contains helper functions for date parsing, formatting, and missing-value checks.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

from errors import ParseError

logger = logging.getLogger(__name__)

# Two-digit month, two-digit day, four-digit year, the same delimiter twice
RECORDED_DATE_PATTERN = re.compile(r"^(\d{2})([/\-.])(\d{2})\2(\d{4})$")


# =============================================================================
# DATE UTILITIES
# =============================================================================

def parse_recorded_date(value: Any) -> date:
    """
    Parse a hand-entered recorded date string.

    Args:
        value: Date string in 'MM/DD/YYYY' format ('-' or '.' also accepted
            as the delimiter)

    Returns:
        Parsed date object

    Raises:
        ParseError: If the string is malformed or names an impossible date

    Example:
        >>> parse_recorded_date('11/03/2024')
        datetime.date(2024, 11, 3)
    """
    if not isinstance(value, str):
        raise ParseError(value)

    match = RECORDED_DATE_PATTERN.match(value.strip())
    if match is None:
        raise ParseError(value)

    month, _, day, year = match.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError as e:
        raise ParseError(value) from e


def format_recorded_date(d: date, sep: str = "/") -> str:
    """
    Format a date the way recorded dates are written in the input files.

    Example:
        >>> format_recorded_date(date(2024, 11, 3))
        '11/03/2024'
    """
    return f"{d.month:02d}{sep}{d.day:02d}{sep}{d.year:04d}"


def parse_iso_date(date_str: str) -> date:
    """
    Parse a 'YYYY-MM-DD' string (flight date identifiers, CLI cutoffs).

    Raises:
        ValueError: If date string cannot be parsed
    """
    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid date '{date_str}'. Expected 'YYYY-MM-DD' (e.g., '2024-12-20')") from e


# =============================================================================
# MISSING VALUES
# =============================================================================

def is_missing(value: Any) -> bool:
    """True for None, NaN and pandas.NA."""
    if value is None or value is pd.NA:
        return True
    if isinstance(value, float):
        return math.isnan(value)
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


# =============================================================================
# FORMATTING UTILITIES
# =============================================================================

def format_currency(amount: Optional[float], currency: str = "USD") -> str:
    """
    Format a currency amount with proper symbol and thousand separators.

    Args:
        amount: The monetary amount (None/NaN renders as 'n/a')
        currency: Currency code (default: USD)

    Returns:
        Formatted currency string (e.g., '$1,234')

    Example:
        >>> format_currency(1234.0)
        '$1,234'
    """
    if is_missing(amount):
        return "n/a"

    symbols = {
        "USD": "$",
        "EUR": "€",
        "GBP": "£",
        "CAD": "C$",
        "AUD": "A$",
    }
    symbol = symbols.get(currency.upper(), currency + " ")
    if float(amount).is_integer():
        return f"{symbol}{amount:,.0f}"
    return f"{symbol}{amount:,.2f}"


def format_flight_date_label(flight_date: str, day_of_week: Optional[str] = None) -> str:
    """
    Human-readable legend label for a flight date identifier.

    Falls back to the identifier itself when it is not an ISO date.

    Example:
        >>> format_flight_date_label('2024-12-20', 'Friday')
        'Fri Dec 20'
    """
    try:
        d = parse_iso_date(flight_date)
    except ValueError:
        return flight_date

    weekday = (day_of_week or d.strftime("%A")).strip()[:3].title()
    return f"{weekday} {d.strftime('%b')} {d.day}"


def format_date_long(d: Optional[date]) -> str:
    """Format a date for prose (e.g., 'November 3, 2024')."""
    if d is None:
        return "n/a"
    return f"{d.strftime('%B')} {d.day}, {d.year}"
