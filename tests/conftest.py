from datetime import date, timedelta

import numpy as np
import pandas as pd
import pytest

from config import EXPECTED_COLUMNS

HEADER = ",".join(EXPECTED_COLUMNS)


@pytest.fixture
def make_cleaned():
    """Builds a cleaned table for one flight date from a list of prices (None = no fare)."""
    def _make(prices, flight_date="2024-12-20", start=date(2024, 11, 1), day_of_week="Friday"):
        departure = date.fromisoformat(flight_date)
        recorded = [start + timedelta(days=i) for i in range(len(prices))]
        return pd.DataFrame({
            'flight_date': [flight_date] * len(prices),
            'days_before': [(departure - d).days for d in recorded],
            'lowest_price': [np.nan if p is None else float(p) for p in prices],
            'day_of_week': [day_of_week] * len(prices),
            'origin': ['DEN'] * len(prices),
            'destination': ['LGA'] * len(prices),
            'cheapest_is_budget_carrier': [False] * len(prices),
            'date_recorded': pd.Series(recorded, dtype=object),
        })
    return _make


@pytest.fixture
def write_flight_file(tmp_path):
    """Writes CSV rows (without header) to tmp_path under the default file pattern."""
    def _write(flight_date, rows, header=HEADER):
        path = tmp_path / f"flights_{flight_date}.csv"
        path.write_text("\n".join([header] + list(rows)) + "\n")
        return path
    return _write


@pytest.fixture
def sample_data_dir(write_flight_file, tmp_path):
    """Two flight dates; the 12/20 file has one budget-carrier day and one missing fare."""
    write_flight_file("2024-12-20", [
        "2024-12-20,19,200,Friday,DEN,LGA,FALSE,12/01/2024",
        "2024-12-20,18,200,Friday,DEN,LGA,FALSE,12/02/2024",
        "2024-12-20,17,150,Friday,DEN,LGA,TRUE,12/03/2024",
        "2024-12-20,16,200,Friday,DEN,LGA,FALSE,12/04/2024",
        "2024-12-20,15,NA,Friday,DEN,LGA,FALSE,12/05/2024",
        "2024-12-20,14,230,Friday,DEN,LGA,FALSE,12/06/2024",
    ])
    write_flight_file("2024-12-21", [
        "2024-12-21,20,180,Saturday,DEN,LGA,FALSE,12/01/2024",
        "2024-12-21,19,180,Saturday,DEN,LGA,FALSE,12/02/2024",
        "2024-12-21,18,175,Saturday,DEN,LGA,FALSE,12/03/2024",
        "2024-12-21,17,175,Saturday,DEN,LGA,FALSE,12/04/2024",
        "2024-12-21,16,190,Saturday,DEN,LGA,FALSE,12/05/2024",
        "2024-12-21,15,190,Saturday,DEN,LGA,FALSE,12/06/2024",
    ])
    return tmp_path
