#!/usr/bin/env python3
"""
Airfare Watch CLI

Command-line interface for building the airfare report from the hand-kept
observation files.

Commands:
    python main.py report
    python main.py report --as-of 2024-11-15 --as-of 2024-12-01
    python main.py summary --as-of 2024-11-15
    python main.py inflections --flight-date 2024-12-20
    python main.py validate
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from logging_config import setup_logging

logger = logging.getLogger(__name__)

# Rich console for pretty output
console = Console()


def _parse_cutoff(value: str):
    from utils import parse_iso_date

    try:
        return parse_iso_date(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _flight_dates(args) -> list[str]:
    from config import TRACKED_FLIGHT_DATES

    if args.flight_dates:
        return [fd.strip() for fd in args.flight_dates.split(",") if fd.strip()]
    return list(TRACKED_FLIGHT_DATES)


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_report(args):
    """Write one HTML report per as-of cutoff."""
    from config import AS_OF_CUTOFF_DATE, REPORT_OUTPUT_PATH
    from report import generate_report, output_path_for, write_report
    from visualizer import save_static_price_history

    cutoffs = args.as_of or [AS_OF_CUTOFF_DATE]
    base_path = Path(args.output) if args.output else REPORT_OUTPUT_PATH
    multiple = len(cutoffs) > 1

    for as_of in cutoffs:
        result = generate_report(as_of, data_dir=args.data_dir, flight_dates=_flight_dates(args))
        written = write_report(result, output_path_for(base_path, as_of, multiple))
        console.print(f"[bold green]✓ Report written:[/bold green] {written}")

        if args.static:
            png = output_path_for(Path(args.static), as_of, multiple)
            save_static_price_history(result.cleaned, result.reduced, png)
            console.print(f"[green]✓ Static chart written:[/green] {png}")


def cmd_summary(args):
    """Show per-departure summaries."""
    from analyzer import build_narrative, reduce_to_inflection_points, summarize_flight_dates
    from data_loader import build_cleaned_table
    from utils import format_currency, format_date_long

    cleaned = build_cleaned_table(_flight_dates(args), args.data_dir, as_of=args.as_of)
    reduced = reduce_to_inflection_points(cleaned)
    summaries = summarize_flight_dates(cleaned, reduced)

    title = "Fare Summary" + (f" as of {format_date_long(args.as_of)}" if args.as_of else "")
    console.print(Panel.fit(f"[bold]{title}[/bold]", border_style="blue"))

    table = Table()
    table.add_column("Departure", style="cyan")
    table.add_column("Route")
    table.add_column("Checks", justify="right")
    table.add_column("No fare", justify="right")
    table.add_column("Lowest", style="green", justify="right")
    table.add_column("Days before", justify="right")
    table.add_column("Highest", style="red", justify="right")
    table.add_column("Latest", justify="right")
    table.add_column("Moves", justify="right")

    for s in summaries:
        table.add_row(
            s.label,
            s.route,
            str(s.observation_count),
            str(s.missing_count),
            format_currency(s.lowest_price),
            "" if s.lowest_price_days_before is None else str(s.lowest_price_days_before),
            format_currency(s.highest_price),
            format_currency(s.latest_price),
            str(s.price_changes),
        )
    console.print(table)

    for paragraph in build_narrative(summaries, as_of=args.as_of):
        console.print(f"\n{paragraph}")


def cmd_inflections(args):
    """Show the reduced table."""
    from analyzer import reduce_to_inflection_points
    from data_loader import build_cleaned_table, iter_observations
    from utils import format_currency, format_flight_date_label

    cleaned = build_cleaned_table(_flight_dates(args), args.data_dir, as_of=args.as_of)
    reduced = reduce_to_inflection_points(cleaned)
    if args.flight_date:
        reduced = reduced.loc[reduced["flight_date"] == args.flight_date].reset_index(drop=True)

    table = Table(title=f"Inflection Points ({len(reduced)} of {len(cleaned)} observations)")
    table.add_column("Departure", style="cyan")
    table.add_column("Checked")
    table.add_column("Days before", justify="right")
    table.add_column("Fare", style="green", justify="right")
    table.add_column("Changed from prev")
    table.add_column("Changes next")

    flags = reduced[["prev_differs", "next_differs"]].itertuples(index=False)
    for obs, (prev_differs, next_differs) in zip(iter_observations(reduced), flags):
        table.add_row(
            format_flight_date_label(obs.flight_date, obs.day_of_week),
            obs.date_recorded.isoformat(),
            str(obs.days_before),
            format_currency(obs.lowest_price),
            "yes" if prev_differs else "",
            "yes" if next_differs else "",
        )
    console.print(table)


def cmd_validate(args):
    """Load and clean every file, reporting row counts."""
    from config import EXCLUDED_CARRIER_FLAG, get_flight_file
    from data_loader import clean_observations, load_flight_file, normalize_dates

    table = Table(title="Observation Files")
    table.add_column("File", style="cyan")
    table.add_column("Rows", justify="right")
    table.add_column("Excluded", justify="right")
    table.add_column("Missing fares", justify="right")

    for flight_date in _flight_dates(args):
        path = get_flight_file(flight_date, args.data_dir)
        observations = normalize_dates(load_flight_file(path, flag_column=EXCLUDED_CARRIER_FLAG), source=path)
        cleaned, excluded = clean_observations(observations, flag_column=EXCLUDED_CARRIER_FLAG)
        table.add_row(
            str(path),
            str(len(observations)),
            str(excluded),
            str(int(cleaned["lowest_price"].isna().sum())),
        )

    console.print(table)
    console.print("[bold green]✓ All files valid[/bold green]")


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Airfare Watch - narrative report over manually tracked fares",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py report
  python main.py report --as-of 2024-11-15 --as-of 2024-12-01 --static reports/history.png
  python main.py summary
  python main.py inflections --flight-date 2024-12-20
  python main.py validate
        """
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--data-dir", help="Directory holding the observation CSV files")
    parser.add_argument("--flight-dates", help="Comma separated flight dates to load, in order")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # report
    report_parser = subparsers.add_parser("report", help="Write the HTML report")
    report_parser.add_argument("--as-of", type=_parse_cutoff, action="append",
                               help="Cutoff date (YYYY-MM-DD); repeat for several snapshots")
    report_parser.add_argument("--output", "-o", help="Output HTML path")
    report_parser.add_argument("--static", help="Also save a PNG of the price history chart")
    report_parser.set_defaults(func=cmd_report)

    # summary
    summary_parser = subparsers.add_parser("summary", help="Show per-departure summaries")
    summary_parser.add_argument("--as-of", type=_parse_cutoff, help="Cutoff date (YYYY-MM-DD)")
    summary_parser.set_defaults(func=cmd_summary)

    # inflections
    inflections_parser = subparsers.add_parser("inflections", help="Show the inflection points")
    inflections_parser.add_argument("--as-of", type=_parse_cutoff, help="Cutoff date (YYYY-MM-DD)")
    inflections_parser.add_argument("--flight-date", help="Only this flight date")
    inflections_parser.set_defaults(func=cmd_inflections)

    # validate
    validate_parser = subparsers.add_parser("validate", help="Check every observation file")
    validate_parser.set_defaults(func=cmd_validate)

    # Parse and run
    args = parser.parse_args()

    if args.verbose:
        setup_logging(logging.DEBUG)
    else:
        setup_logging()

    if hasattr(args, 'func'):
        try:
            args.func(args)
        except KeyboardInterrupt:
            console.print("\n[yellow]Cancelled[/yellow]")
            sys.exit(130)
        except Exception as e:
            if args.verbose:
                console.print_exception()
            else:
                console.print(f"[bold red]Error: {e}[/bold red]")
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
