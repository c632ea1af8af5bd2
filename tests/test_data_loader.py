from datetime import date

import pandas as pd
import pytest

from config import EXPECTED_COLUMNS
from data_loader import (
    apply_as_of_cutoff,
    build_cleaned_table,
    clean_observations,
    filter_cheapest_alternative,
    iter_observations,
    load_flight_file,
    load_observations,
    load_normalized_observations,
    normalize_dates,
)
from errors import LoadError, OrderingViolation, ParseError

CHARTER_HEADER = ",".join(EXPECTED_COLUMNS + ["cheapest_is_charter"])


# ---------------------------------------------------------------------------
# Record loader
# ---------------------------------------------------------------------------

def test_load_preserves_file_and_row_order(sample_data_dir):
    frame = load_observations(["2024-12-21", "2024-12-20"], sample_data_dir)

    assert list(frame.columns) == EXPECTED_COLUMNS
    assert frame["flight_date"].tolist() == ["2024-12-21"] * 6 + ["2024-12-20"] * 6
    assert frame["date_recorded"].tolist()[:2] == ["12/01/2024", "12/02/2024"]
    assert frame.index.tolist() == list(range(12))


def test_load_coerces_types(sample_data_dir):
    frame = load_flight_file(sample_data_dir / "flights_2024-12-20.csv")

    assert frame["lowest_price"].isna().tolist() == [False, False, False, False, True, False]
    assert frame["cheapest_is_budget_carrier"].tolist() == [False, False, True, False, False, False]
    assert frame["days_before"].tolist() == [19, 18, 17, 16, 15, 14]
    assert frame["lowest_price"].dtype == float


def test_missing_file_raises_load_error(tmp_path):
    with pytest.raises(LoadError) as exc_info:
        load_observations(["2024-12-25"], tmp_path)

    assert "flights_2024-12-25.csv" in str(exc_info.value)
    assert "not found" in exc_info.value.reason


def test_empty_file_raises_load_error(tmp_path):
    path = tmp_path / "flights_2024-12-20.csv"
    path.write_text("")

    with pytest.raises(LoadError):
        load_flight_file(path)


def test_missing_column_raises_load_error(write_flight_file):
    header = ",".join(c for c in EXPECTED_COLUMNS if c != "lowest_price")
    path = write_flight_file("2024-12-20", ["2024-12-20,19,Friday,DEN,LGA,FALSE,12/01/2024"], header=header)

    with pytest.raises(LoadError) as exc_info:
        load_flight_file(path)

    assert "lowest_price" in str(exc_info.value)


def test_extra_columns_are_dropped(write_flight_file):
    header = ",".join(EXPECTED_COLUMNS + ["notes"])
    path = write_flight_file("2024-12-20", ["2024-12-20,19,200,Friday,DEN,LGA,FALSE,12/01/2024,checked twice"],
                             header=header)

    frame = load_flight_file(path)

    assert list(frame.columns) == EXPECTED_COLUMNS


@pytest.mark.parametrize("row, fragment", [
    ("2024-12-20,19,cheap,Friday,DEN,LGA,FALSE,12/01/2024", "lowest_price"),
    ("2024-12-20,19,-5,Friday,DEN,LGA,FALSE,12/01/2024", "negative"),
    ("2024-12-20,19,inf,Friday,DEN,LGA,FALSE,12/01/2024", "non-finite"),
    ("2024-12-20,19,-inf,Friday,DEN,LGA,FALSE,12/01/2024", "non-finite"),
    ("2024-12-20,19,Infinity,Friday,DEN,LGA,FALSE,12/01/2024", "lowest_price"),
    ("2024-12-20,soon,200,Friday,DEN,LGA,FALSE,12/01/2024", "days_before"),
    ("2024-12-20,19,200,Friday,DEN,LGA,maybe,12/01/2024", "cheapest_is_budget_carrier"),
])
def test_malformed_values_raise_load_error(write_flight_file, row, fragment):
    path = write_flight_file("2024-12-20", ["2024-12-20,20,210,Friday,DEN,LGA,FALSE,11/30/2024", row])

    with pytest.raises(LoadError) as exc_info:
        load_flight_file(path)

    assert fragment in str(exc_info.value)
    assert "row 2" in str(exc_info.value)


def test_blank_price_is_missing(write_flight_file):
    path = write_flight_file("2024-12-20", ["2024-12-20,19,,Friday,DEN,LGA,no,12/01/2024"])

    frame = load_flight_file(path)

    assert pd.isna(frame.loc[0, "lowest_price"])
    assert not frame.loc[0, "cheapest_is_budget_carrier"]


# ---------------------------------------------------------------------------
# Date normalizer
# ---------------------------------------------------------------------------

def test_normalize_dates_parses_every_row(sample_data_dir):
    frame = load_flight_file(sample_data_dir / "flights_2024-12-21.csv")

    normalized = normalize_dates(frame)

    assert normalized["date_recorded"].tolist()[0] == date(2024, 12, 1)
    assert frame["date_recorded"].tolist()[0] == "12/01/2024"


def test_bad_recorded_date_names_source_and_row(write_flight_file, tmp_path):
    write_flight_file("2024-12-20", [
        "2024-12-20,19,200,Friday,DEN,LGA,FALSE,12/01/2024",
        "2024-12-20,18,200,Friday,DEN,LGA,FALSE,2024-12-02",
    ])

    with pytest.raises(ParseError) as exc_info:
        load_normalized_observations(["2024-12-20"], tmp_path)

    assert exc_info.value.row == 2
    assert exc_info.value.value == "2024-12-02"
    assert "flights_2024-12-20.csv" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def test_filter_drops_budget_carrier_rows_in_order(sample_data_dir):
    frame = load_observations(["2024-12-20"], sample_data_dir)

    filtered = filter_cheapest_alternative(frame)

    assert not filtered["cheapest_is_budget_carrier"].any()
    assert filtered["date_recorded"].tolist() == [
        "12/01/2024", "12/02/2024", "12/04/2024", "12/05/2024", "12/06/2024",
    ]
    assert len(frame) == 6


def test_filter_unknown_flag_column(sample_data_dir):
    frame = load_observations(["2024-12-20"], sample_data_dir)

    with pytest.raises(LoadError) as exc_info:
        filter_cheapest_alternative(frame, "cheapest_is_charter")

    assert "cheapest_is_charter" in exc_info.value.reason


def test_filter_on_non_boolean_column_raises(sample_data_dir):
    frame = load_observations(["2024-12-20"], sample_data_dir)

    with pytest.raises(LoadError) as exc_info:
        filter_cheapest_alternative(frame, "origin")

    assert "not boolean" in exc_info.value.reason


def test_loading_with_non_boolean_flag_column_raises(sample_data_dir):
    with pytest.raises(LoadError) as exc_info:
        build_cleaned_table(["2024-12-20"], sample_data_dir, flag_column="origin")

    assert "origin" in exc_info.value.reason


def test_other_flag_column_is_loaded_and_used(write_flight_file, tmp_path):
    write_flight_file("2024-12-20", [
        "2024-12-20,19,200,Friday,DEN,LGA,TRUE,12/01/2024,FALSE",
        "2024-12-20,18,210,Friday,DEN,LGA,FALSE,12/02/2024,TRUE",
        "2024-12-20,17,220,Friday,DEN,LGA,FALSE,12/03/2024,no",
    ], header=CHARTER_HEADER)

    frame = load_flight_file(tmp_path / "flights_2024-12-20.csv", flag_column="cheapest_is_charter")
    cleaned = build_cleaned_table(["2024-12-20"], tmp_path, flag_column="cheapest_is_charter")

    assert frame["cheapest_is_charter"].tolist() == [False, True, False]
    assert cleaned["lowest_price"].tolist() == [200.0, 220.0]


def test_missing_flag_column_raises_load_error(sample_data_dir):
    with pytest.raises(LoadError) as exc_info:
        load_observations(["2024-12-20"], sample_data_dir, flag_column="cheapest_is_charter")

    assert "flights_2024-12-20.csv" in exc_info.value.source
    assert "cheapest_is_charter" in exc_info.value.reason


def test_as_of_cutoff_is_inclusive(sample_data_dir):
    frame = load_normalized_observations(["2024-12-21"], sample_data_dir)

    cut = apply_as_of_cutoff(frame, date(2024, 12, 3))

    assert cut["date_recorded"].max() == date(2024, 12, 3)
    assert len(cut) == 3
    assert len(apply_as_of_cutoff(frame, None)) == 6


def test_build_cleaned_table(sample_data_dir):
    cleaned = build_cleaned_table(["2024-12-20", "2024-12-21"], sample_data_dir)

    assert len(cleaned) == 11
    assert not cleaned["cheapest_is_budget_carrier"].any()
    assert isinstance(cleaned.loc[0, "date_recorded"], date)


def test_build_cleaned_table_with_cutoff(sample_data_dir):
    cleaned = build_cleaned_table(["2024-12-20", "2024-12-21"], sample_data_dir, as_of=date(2024, 12, 2))

    assert len(cleaned) == 4
    assert all(d <= date(2024, 12, 2) for d in cleaned["date_recorded"])


def test_clean_observations_counts_exclusions_inside_cutoff(sample_data_dir):
    observations = load_normalized_observations(["2024-12-20", "2024-12-21"], sample_data_dir)

    everything, excluded_all = clean_observations(observations)
    early, excluded_early = clean_observations(observations, as_of=date(2024, 12, 2))

    assert (len(everything), excluded_all) == (11, 1)
    assert (len(early), excluded_early) == (4, 0)
    pd.testing.assert_frame_equal(
        everything, build_cleaned_table(["2024-12-20", "2024-12-21"], sample_data_dir)
    )


def test_days_before_rising_with_recorded_date_raises(write_flight_file, tmp_path):
    write_flight_file("2024-12-20", [
        "2024-12-20,5,200,Friday,DEN,LGA,FALSE,12/01/2024",
        "2024-12-20,19,210,Friday,DEN,LGA,FALSE,12/02/2024",
    ])

    with pytest.raises(OrderingViolation) as exc_info:
        build_cleaned_table(["2024-12-20"], tmp_path)

    assert exc_info.value.flight_date == "2024-12-20"
    assert exc_info.value.dates == [date(2024, 12, 2)]


def test_iter_observations(sample_data_dir):
    cleaned = build_cleaned_table(["2024-12-20"], sample_data_dir)

    observations = list(iter_observations(cleaned))

    assert len(observations) == 5
    assert observations[0].route == "DEN-LGA"
    assert observations[0].lowest_price == 200.0
    assert observations[3].lowest_price is None
    assert not observations[3].has_price
