from datetime import date
from pathlib import Path

import pytest

from config import EXPECTED_COLUMNS
from data_loader import build_cleaned_table
from errors import LoadError, OrderingViolation
from report import generate_report, output_path_for, render_report_html, write_report

FLIGHT_DATES = ["2024-12-20", "2024-12-21"]


def test_generate_report(sample_data_dir):
    result = generate_report(data_dir=sample_data_dir, flight_dates=FLIGHT_DATES)

    assert result.snapshot.observation_count == 11
    assert result.snapshot.excluded_count == 1
    assert [s.flight_date for s in result.snapshot.summaries] == FLIGHT_DATES
    assert len(result.snapshot.narrative) == 3
    assert set(result.figures) == {"price_history", "days_before", "lowest_price"}
    assert set(zip(result.reduced["flight_date"], result.reduced["date_recorded"])) <= set(
        zip(result.cleaned["flight_date"], result.cleaned["date_recorded"])
    )


def test_earlier_cutoff_gives_earlier_snapshot(sample_data_dir):
    latest = generate_report(data_dir=sample_data_dir, flight_dates=FLIGHT_DATES)
    earlier = generate_report(date(2024, 12, 2), data_dir=sample_data_dir, flight_dates=FLIGHT_DATES)

    assert earlier.snapshot.as_of == date(2024, 12, 2)
    assert earlier.snapshot.observation_count == 4
    assert earlier.snapshot.excluded_count == 0
    assert latest.snapshot.observation_count == 11


def test_cutoff_before_any_observation(sample_data_dir):
    result = generate_report(date(2024, 11, 1), data_dir=sample_data_dir, flight_dates=FLIGHT_DATES)

    assert result.cleaned.empty
    assert result.reduced.empty
    assert result.snapshot.narrative == ["As of November 1, 2024, no observations have been recorded."]


def test_missing_source_aborts_report(sample_data_dir):
    with pytest.raises(LoadError):
        generate_report(data_dir=sample_data_dir, flight_dates=FLIGHT_DATES + ["2024-12-22"])


def test_report_uses_the_configured_flag_column(write_flight_file, tmp_path):
    write_flight_file("2024-12-20", [
        "2024-12-20,19,200,Friday,DEN,LGA,FALSE,12/01/2024,FALSE",
        "2024-12-20,18,150,Friday,DEN,LGA,FALSE,12/02/2024,TRUE",
        "2024-12-20,17,210,Friday,DEN,LGA,TRUE,12/03/2024,FALSE",
    ], header=",".join(EXPECTED_COLUMNS + ["cheapest_is_charter"]))

    result = generate_report(data_dir=tmp_path, flight_dates=["2024-12-20"], flag_column="cheapest_is_charter")

    assert result.snapshot.excluded_count == 1
    assert result.cleaned["lowest_price"].tolist() == [200.0, 210.0]
    assert result.snapshot.summaries[0].lowest_price == 200.0


@pytest.mark.parametrize("as_of", [None, date(2024, 12, 2), date(2024, 12, 4)])
def test_report_and_cleaned_table_agree(sample_data_dir, as_of):
    result = generate_report(as_of, data_dir=sample_data_dir, flight_dates=FLIGHT_DATES)

    cleaned = build_cleaned_table(FLIGHT_DATES, sample_data_dir, as_of=as_of)

    assert result.cleaned.equals(cleaned)


def test_days_before_out_of_order_aborts_report(write_flight_file, tmp_path):
    write_flight_file("2024-12-20", [
        "2024-12-20,5,200,Friday,DEN,LGA,FALSE,12/01/2024",
        "2024-12-20,19,210,Friday,DEN,LGA,FALSE,12/02/2024",
    ])

    with pytest.raises(OrderingViolation):
        generate_report(data_dir=tmp_path, flight_dates=["2024-12-20"])


def test_render_report_html(sample_data_dir):
    result = generate_report(date(2024, 12, 4), data_dir=sample_data_dir, flight_dates=FLIGHT_DATES,
                             title="Holiday Fares")

    html = render_report_html(result)

    assert "<h1>Holiday Fares</h1>" in html
    assert "Data as of December 04, 2024" in html
    assert html.count('class="chart"') == 3
    assert "cdn.plot.ly" in html
    assert "Fri Dec 20" in html


def test_write_report_creates_directories(sample_data_dir, tmp_path):
    result = generate_report(data_dir=sample_data_dir, flight_dates=FLIGHT_DATES)

    path = write_report(result, tmp_path / "out" / "nested" / "report.html")

    assert path.exists()
    assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_output_path_for():
    base = Path("reports/airfare_report.html")

    assert output_path_for(base, date(2024, 11, 15), multiple=False) == base
    assert output_path_for(base, None, multiple=True) == base
    assert output_path_for(base, date(2024, 11, 15), multiple=True) == Path(
        "reports/airfare_report_2024-11-15.html"
    )
