"""
Chart generation for Airfare Watch.

Creates visualizations using plotly (interactive, embedded in the HTML
report) and matplotlib (static PNG export). Line traces come from the
cleaned table; markers come from the reduced table so flat stretches are
drawn without a dot on every day.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd
import plotly.graph_objects as go

from analyzer import sort_partitions
from config import CHART_HEIGHT, COLORS, CURRENCY, get_series_color
from models import FlightDateSummary
from utils import format_date_long, format_flight_date_label

# Configure logging
logger = logging.getLogger(__name__)

# Set matplotlib style (with fallback for older versions)
try:
    plt.style.use('seaborn-v0_8-whitegrid')
except OSError:
    try:
        plt.style.use('seaborn-whitegrid')
    except OSError:
        pass  # Use default style


def _empty_figure(message: str = "No data available") -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(text=message, xref="paper", yref="paper", x=0.5, y=0.5, showarrow=False)
    fig.update_layout(height=CHART_HEIGHT)
    return fig


def _currency_prefix(currency: str) -> str:
    return "$" if currency.upper() == "USD" else f"{currency.upper()} "


def _iter_series(cleaned: pd.DataFrame, reduced: Optional[pd.DataFrame]):
    """Yield (index, flight_date, label, full rows, marker rows) per flight date."""
    ordered = sort_partitions(cleaned)
    for i, (flight_date, group) in enumerate(ordered.groupby("flight_date", sort=False)):
        label = format_flight_date_label(str(flight_date), group["day_of_week"].iloc[0])
        if reduced is None or reduced.empty:
            markers = group.iloc[0:0]
        else:
            markers = reduced.loc[reduced["flight_date"] == flight_date]
        markers = markers.loc[markers["lowest_price"].notna()]
        yield i, flight_date, label, group, markers


# =============================================================================
# REPORT CHARTS
# =============================================================================

def plot_price_history(
    cleaned: pd.DataFrame,
    reduced: Optional[pd.DataFrame] = None,
    as_of: Optional[date] = None,
    currency: str = CURRENCY,
) -> go.Figure:
    """
    Lowest fare per departure over the dates it was checked.

    Args:
        cleaned: The cleaned table (one line per flight date)
        reduced: The reduced table (marker positions)
        as_of: Cutoff shown in the title
        currency: Currency code for the axis label

    Returns:
        Plotly Figure object
    """
    if cleaned.empty:
        return _empty_figure()

    prefix = _currency_prefix(currency)
    fig = go.Figure()

    for i, flight_date, label, group, markers in _iter_series(cleaned, reduced):
        color = get_series_color(i)

        fig.add_trace(go.Scatter(
            x=group['date_recorded'],
            y=group['lowest_price'],
            mode='lines',
            name=label,
            legendgroup=str(flight_date),
            connectgaps=False,
            line=dict(color=color, width=2),
            hovertemplate=f"{label}<br>%{{x|%b %d}}<br>{prefix}%{{y:.0f}}<extra></extra>",
        ))

        fig.add_trace(go.Scatter(
            x=markers['date_recorded'],
            y=markers['lowest_price'],
            mode='markers',
            name=f"{label} changes",
            legendgroup=str(flight_date),
            showlegend=False,
            marker=dict(color=color, size=8),
            customdata=markers['days_before'],
            hovertemplate=(
                f"{label}<br>%{{x|%b %d}}<br>{prefix}%{{y:.0f}}"
                "<br>%{customdata} days before<extra></extra>"
            ),
        ))

    title = "Lowest Fare by Date Checked"
    if as_of is not None:
        title += f" (as of {format_date_long(as_of)})"

    fig.update_layout(
        title=title,
        xaxis_title="Date Checked",
        yaxis_title=f"Lowest Fare ({prefix.strip()})",
        hovermode="closest",
        legend_title="Departure",
        height=CHART_HEIGHT,
    )

    return fig


def plot_days_before_curve(
    cleaned: pd.DataFrame,
    reduced: Optional[pd.DataFrame] = None,
    currency: str = CURRENCY,
) -> go.Figure:
    """
    Lowest fare against days remaining before departure.

    The x axis is reversed so the departure day sits on the right and every
    flight date's line can be compared at the same lead time.

    Returns:
        Plotly Figure object
    """
    if cleaned.empty:
        return _empty_figure()

    prefix = _currency_prefix(currency)
    fig = go.Figure()

    for i, flight_date, label, group, markers in _iter_series(cleaned, reduced):
        color = get_series_color(i)

        fig.add_trace(go.Scatter(
            x=group['days_before'],
            y=group['lowest_price'],
            mode='lines',
            name=label,
            legendgroup=str(flight_date),
            connectgaps=False,
            line=dict(color=color, width=2),
            hovertemplate=f"{label}<br>%{{x}} days before<br>{prefix}%{{y:.0f}}<extra></extra>",
        ))

        fig.add_trace(go.Scatter(
            x=markers['days_before'],
            y=markers['lowest_price'],
            mode='markers',
            name=f"{label} changes",
            legendgroup=str(flight_date),
            showlegend=False,
            marker=dict(color=color, size=8),
            hovertemplate=f"{label}<br>%{{x}} days before<br>{prefix}%{{y:.0f}}<extra></extra>",
        ))

    fig.update_layout(
        title="Lowest Fare by Days Before Departure",
        xaxis_title="Days Before Departure",
        yaxis_title=f"Lowest Fare ({prefix.strip()})",
        xaxis=dict(autorange="reversed"),
        legend_title="Departure",
        height=CHART_HEIGHT,
    )

    return fig


def plot_lowest_price_comparison(
    summaries: List[FlightDateSummary],
    currency: str = CURRENCY,
) -> go.Figure:
    """
    Grouped bars comparing the lowest fare seen with the latest fare.

    Returns:
        Plotly Figure object
    """
    priced = [s for s in summaries if s.lowest_price is not None]
    if not priced:
        return _empty_figure("No fares found yet")

    prefix = _currency_prefix(currency)
    labels = [s.label for s in priced]

    fig = go.Figure()

    fig.add_trace(go.Bar(
        x=labels,
        y=[s.lowest_price for s in priced],
        name="Lowest seen",
        marker_color=COLORS["cheap"],
        text=[f"{prefix}{s.lowest_price:.0f}" for s in priced],
        textposition='outside',
        customdata=[s.lowest_price_days_before for s in priced],
        hovertemplate=f"%{{x}}<br>Lowest: {prefix}%{{y:.0f}}<br>%{{customdata}} days before<extra></extra>",
    ))

    fig.add_trace(go.Bar(
        x=labels,
        y=[s.latest_price for s in priced],
        name="Latest check",
        marker_color=COLORS["primary"],
        text=[f"{prefix}{s.latest_price:.0f}" if s.latest_price is not None else "" for s in priced],
        textposition='outside',
        hovertemplate=f"%{{x}}<br>Latest: {prefix}%{{y:.0f}}<extra></extra>",
    ))

    fig.update_layout(
        title="Lowest vs. Latest Fare by Departure",
        xaxis_title="Departure",
        yaxis_title=f"Fare ({prefix.strip()})",
        barmode="group",
        height=CHART_HEIGHT,
    )

    return fig


def build_report_charts(
    cleaned: pd.DataFrame,
    reduced: pd.DataFrame,
    summaries: List[FlightDateSummary],
    as_of: Optional[date] = None,
    currency: str = CURRENCY,
) -> Dict[str, go.Figure]:
    """Create the three report charts, keyed by name in display order."""
    return {
        "price_history": plot_price_history(cleaned, reduced, as_of=as_of, currency=currency),
        "days_before": plot_days_before_curve(cleaned, reduced, currency=currency),
        "lowest_price": plot_lowest_price_comparison(summaries, currency=currency),
    }


# =============================================================================
# EXPORT UTILITIES
# =============================================================================

def figure_to_html(fig: go.Figure, include_plotlyjs: Union[bool, str] = False) -> str:
    """Render a plotly figure as an embeddable <div>."""
    return fig.to_html(full_html=False, include_plotlyjs=include_plotlyjs)


def save_static_price_history(
    cleaned: pd.DataFrame,
    reduced: Optional[pd.DataFrame],
    output_path: Union[str, Path],
    figsize: tuple = (12, 6),
) -> Path:
    """
    Save the price history chart as a PNG with matplotlib.

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=figsize)

    if cleaned.empty:
        ax.text(0.5, 0.5, 'No data available', ha='center', va='center', fontsize=14)
    else:
        for i, _, label, group, markers in _iter_series(cleaned, reduced):
            color = get_series_color(i)
            dates = pd.to_datetime(group['date_recorded'])
            ax.plot(dates, group['lowest_price'], color=color, linewidth=2, label=label)
            ax.scatter(pd.to_datetime(markers['date_recorded']), markers['lowest_price'],
                       color=color, s=30, zorder=3)

        ax.set_xlabel('Date Checked', fontsize=12)
        ax.set_ylabel('Lowest Fare', fontsize=12)
        ax.xaxis.set_major_formatter(mdates.DateFormatter('%b %d'))
        ax.legend(title='Departure')

    ax.set_title('Lowest Fare by Date Checked', fontsize=14, fontweight='bold')
    fig.autofmt_xdate()
    fig.tight_layout()

    fig.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Saved static chart to {output_path}")
    return output_path
