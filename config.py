"""
Configuration module for Airfare Watch.

Loads environment variables and defines application constants.
"""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _parse_env_list(value: Optional[str], default: list[str]) -> list[str]:
    """Split a comma separated environment value, falling back to a default."""
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_env_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date from the environment; empty means unset."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}'. Expected 'YYYY-MM-DD'") from e


# =============================================================================
# INPUT FILES
# =============================================================================
DATA_DIR = Path(os.getenv("AIRFARE_DATA_DIR", "data"))

# One CSV per tracked flight date, e.g. data/flights_2024-12-20.csv
FLIGHT_FILE_PATTERN = os.getenv("AIRFARE_FILE_PATTERN", "flights_{flight_date}.csv")

DEFAULT_FLIGHT_DATES = ["2024-12-20", "2024-12-21", "2024-12-22"]

# Order matters: files are loaded and plotted in this order
TRACKED_FLIGHT_DATES = _parse_env_list(os.getenv("AIRFARE_FLIGHT_DATES"), DEFAULT_FLIGHT_DATES)

# =============================================================================
# CLEANING PARAMETERS
# =============================================================================
# Latest date_recorded included in a report (None = everything on file)
AS_OF_CUTOFF_DATE = _parse_env_date(os.getenv("AIRFARE_AS_OF"))

# Rows where this flag is true are dropped before reduction
EXCLUDED_CARRIER_FLAG = os.getenv("AIRFARE_EXCLUDED_FLAG", "cheapest_is_budget_carrier")

EXPECTED_COLUMNS = [
    "flight_date",
    "days_before",
    "lowest_price",
    "day_of_week",
    "origin",
    "destination",
    "cheapest_is_budget_carrier",
    "date_recorded",
]

MISSING_PRICE_TOKENS = ["", "NA", "N/A", "na", "n/a", "None"]
TRUE_TOKENS = {"true", "t", "yes", "y", "1"}
FALSE_TOKENS = {"false", "f", "no", "n", "0"}

# =============================================================================
# OUTPUT
# =============================================================================
REPORT_OUTPUT_PATH = Path(os.getenv("AIRFARE_REPORT_PATH", "reports/airfare_report.html"))
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
REPORT_TEMPLATE = "report.html.j2"
REPORT_TITLE = "Watching Holiday Airfares"

CURRENCY = os.getenv("AIRFARE_CURRENCY", "USD")
LOG_LEVEL = os.getenv("AIRFARE_LOG_LEVEL", "INFO")

CHART_HEIGHT = 450

# Color scheme for visualizations
COLORS = {
    "cheap": "#28a745",      # Green for good prices
    "primary": "#007bff",    # Blue primary
}

# One line color per tracked flight date, cycled if there are more dates
SERIES_COLORS = ["#007bff", "#fd7e14", "#6f42c1", "#20c997", "#e83e8c", "#17a2b8"]


def get_flight_file(flight_date: str, data_dir: Optional[Path] = None) -> Path:
    """
    Resolve the CSV path holding observations for a flight date.

    Args:
        flight_date: Flight date identifier (e.g., '2024-12-20')
        data_dir: Directory holding the files (defaults to DATA_DIR)

    Returns:
        Path of the observation file
    """
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    return base / FLIGHT_FILE_PATTERN.format(flight_date=flight_date)


def get_series_color(index: int) -> str:
    """Get the line color for the n-th flight date."""
    return SERIES_COLORS[index % len(SERIES_COLORS)]
