"""
Report generation for Airfare Watch.

One call of generate_report() produces the whole report for a single as-of
cutoff; historical snapshots are made by calling it again with an earlier
date.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import pandas as pd
import plotly.graph_objects as go
from jinja2 import Environment, FileSystemLoader, select_autoescape

from analyzer import build_narrative, reduce_to_inflection_points, summarize_flight_dates
from config import (
    CURRENCY,
    EXCLUDED_CARRIER_FLAG,
    REPORT_TEMPLATE,
    REPORT_TITLE,
    TEMPLATES_DIR,
    TRACKED_FLIGHT_DATES,
)
from data_loader import clean_observations, load_normalized_observations
from models import ReportSnapshot
from visualizer import build_report_charts, figure_to_html

# Configure logging
logger = logging.getLogger(__name__)

CHART_CAPTIONS = {
    "price_history": "Each line is one departure. Dots mark the days the fare changed; "
                     "flat stretches only show their first and last day.",
    "days_before": "The same fares lined up by how many days were left before departure.",
    "lowest_price": "The cheapest fare seen for each departure next to the most recent check.",
}


@dataclass
class ReportResult:
    """Tables, summaries and charts produced for one as-of cutoff."""
    snapshot: ReportSnapshot
    cleaned: pd.DataFrame
    reduced: pd.DataFrame
    figures: Dict[str, go.Figure] = field(default_factory=dict)


def generate_report(
    as_of: Optional[date] = None,
    *,
    data_dir: Optional[Union[str, Path]] = None,
    flight_dates: Sequence[str] = TRACKED_FLIGHT_DATES,
    flag_column: str = EXCLUDED_CARRIER_FLAG,
    title: str = REPORT_TITLE,
    currency: str = CURRENCY,
) -> ReportResult:
    """
    Run the full pipeline for one as-of cutoff.

    Args:
        as_of: Latest date_recorded included (None = everything on file)
        data_dir: Directory holding the observation files
        flight_dates: Ordered flight date identifiers to load
        flag_column: Boolean column marking excluded observations
        title: Report title
        currency: Currency code used in prose and charts

    Returns:
        ReportResult with both tables, the snapshot and the figures

    Raises:
        LoadError, ParseError, OrderingViolation: The run is aborted
    """
    observations = load_normalized_observations(flight_dates, data_dir, flag_column)
    cleaned, excluded_count = clean_observations(observations, as_of, flag_column)
    reduced = reduce_to_inflection_points(cleaned)

    summaries = summarize_flight_dates(cleaned, reduced)
    snapshot = ReportSnapshot(
        title=title,
        as_of=as_of,
        summaries=summaries,
        narrative=build_narrative(summaries, as_of=as_of, currency=currency),
        observation_count=len(cleaned),
        excluded_count=excluded_count,
    )
    figures = build_report_charts(cleaned, reduced, summaries, as_of=as_of, currency=currency)

    logger.info(
        f"Report as of {as_of or 'latest'}: {len(cleaned)} observations, "
        f"{len(reduced)} inflection points, {snapshot.excluded_count} excluded"
    )
    return ReportResult(snapshot=snapshot, cleaned=cleaned, reduced=reduced, figures=figures)


def _template_environment(templates_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(['html', 'html.j2', 'xml']),
    )


def render_report_html(
    result: ReportResult,
    templates_dir: Path = TEMPLATES_DIR,
    template_name: str = REPORT_TEMPLATE,
) -> str:
    """Render a ReportResult to a standalone HTML page."""
    charts = []
    for i, (name, fig) in enumerate(result.figures.items()):
        charts.append({
            'name': name,
            'caption': CHART_CAPTIONS.get(name, ""),
            # plotly.js is loaded once, by the first chart
            'html': figure_to_html(fig, include_plotlyjs="cdn" if i == 0 else False),
        })

    env = _template_environment(templates_dir)
    tpl = env.get_template(template_name)
    return tpl.render(
        snapshot=result.snapshot,
        charts=charts,
        generated=datetime.now().strftime("%Y-%m-%d %H:%M"),
    )


def output_path_for(base_path: Union[str, Path], as_of: Optional[date], multiple: bool) -> Path:
    """
    Output file for one snapshot.

    With several cutoffs each report gets the as-of date appended to the
    file stem (reports/airfare_report_2024-11-15.html).
    """
    base_path = Path(base_path)
    if not multiple or as_of is None:
        return base_path
    return base_path.with_name(f"{base_path.stem}_{as_of.isoformat()}{base_path.suffix}")


def write_report(result: ReportResult, output_path: Union[str, Path]) -> Path:
    """
    Render and write the report, creating parent directories.

    Returns:
        The path written
    """
    output_path = Path(output_path)
    html = render_report_html(result)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")

    logger.info(f"Wrote report to {output_path}")
    return output_path
