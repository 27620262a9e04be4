"""
Command-line interface for the ledger reconciliation tool.
"""

from pathlib import Path
from typing import Any, Optional
import json
import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config
from .matching.engine import ReconciliationEngine
from .models.report import ReconciliationReport, ReconciliationSummary
from .models.transaction import Side
from .parsers.canonicalizer import Canonicalizer
from .parsers.loader import load_rows
from .utils.logging_config import setup_logging

console = Console()

PREVIEW_ROWS = 20


@click.group()
@click.version_option(version=__version__)
def main():
    """Two-sided transaction reconciliation tool."""
    pass


@main.command()
@click.argument("side_a_file", type=click.Path(exists=True, path_type=Path))
@click.argument("side_b_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("--date-format-a", default=None, help="Date format for side A, e.g. DD/MM/YYYY")
@click.option("--date-format-b", default=None, help="Date format for side B, e.g. %m/%d/%Y")
@click.option(
    "--hints",
    "hints_file",
    type=click.Path(exists=True, path_type=Path),
    help="Prior-period records used as historical hints",
)
@click.option("--min-confidence", type=float, default=None, help="Override fuzzy threshold")
@click.option(
    "--profile",
    type=click.Choice(["invoice", "ledger"]),
    default=None,
    help="Override scoring profile",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output JSON report path")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show summary without writing a report")
def reconcile(
    side_a_file: Path,
    side_b_file: Path,
    config: Optional[Path],
    date_format_a: Optional[str],
    date_format_b: Optional[str],
    hints_file: Optional[Path],
    min_confidence: Optional[float],
    profile: Optional[str],
    output: Optional[Path],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile two transaction exports against each other.

    SIDE_A_FILE: CSV or XLSX export for side A (e.g. receivables)
    SIDE_B_FILE: CSV or XLSX export for side B (e.g. the counterparty's payables)
    """
    setup_logging(logging.DEBUG if verbose else logging.INFO)

    try:
        recon_config = load_config(config, overrides=_matching_overrides(min_confidence, profile))
        if not verbose:
            setup_logging(recon_config.logging.level, log_format=recon_config.logging.format)
        input_config = recon_config.input

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Loading side A...", total=None)
            rows_a = load_rows(side_a_file, input_config.encoding, input_config.delimiter)
            progress.update(task, completed=True)

            task = progress.add_task("Loading side B...", total=None)
            rows_b = load_rows(side_b_file, input_config.encoding, input_config.delimiter)
            progress.update(task, completed=True)

            hint_rows: list[dict[str, Any]] = []
            if hints_file is not None:
                task = progress.add_task("Loading historical hints...", total=None)
                hint_rows = load_rows(hints_file, input_config.encoding, input_config.delimiter)
                progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            engine = ReconciliationEngine(recon_config)
            report = engine.reconcile_rows(
                rows_a,
                rows_b,
                date_format_a=date_format_a,
                date_format_b=date_format_b,
                hint_rows=hint_rows,
            )
            progress.update(task, completed=True)

        _display_summary(report.summary)
        _display_discrepancies(report)

        if dry_run:
            console.print("\n[yellow]Dry run - no report written[/yellow]")
            return

        if output is None:
            output = Path("reconciliation_report.json")

        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(report.to_dict(), f, indent=2)

        console.print(f"\n[green]Report written: {output}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--side", type=click.Choice(["A", "B"]), default="A", show_default=True)
@click.option("--date-format", default=None, help="Date format hint for this file")
def canonicalize(input_file: Path, config: Optional[Path], side: str, date_format: Optional[str]):
    """
    Preview how an export is turned into canonical records.

    INPUT_FILE: CSV or XLSX export
    """
    try:
        recon_config = load_config(config)
        rows = load_rows(input_file, recon_config.input.encoding, recon_config.input.delimiter)

        side_enum = Side(side)
        default_format = (
            recon_config.input.date_format_a if side_enum is Side.A else recon_config.input.date_format_b
        )
        batch = Canonicalizer(recon_config).canonicalize_rows(
            rows, side_enum, date_format or default_format
        )

        table = Table(title=f"Canonical records: {input_file.name}")
        table.add_column("Id")
        table.add_column("Number")
        table.add_column("Amount", justify="right")
        table.add_column("Issue Date")
        table.add_column("Due Date")
        table.add_column("Counterparty")

        for record in batch.records[:PREVIEW_ROWS]:
            table.add_row(
                record.id,
                record.transaction_number or "-",
                f"{record.amount:,.2f}",
                str(record.issue_date or "-"),
                str(record.due_date or "-"),
                record.counterparty_name or "-",
            )

        console.print(table)

        if len(batch.records) > PREVIEW_ROWS:
            console.print(f"\n... and {len(batch.records) - PREVIEW_ROWS} more records")

        console.print(f"\nCanonical records: {len(batch.records)}")
        if batch.rejected:
            console.print(f"[yellow]Rejected rows: {', '.join(map(str, batch.rejected))}[/yellow]")

    except Exception as e:
        console.print(f"[red]Error canonicalizing file: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _matching_overrides(min_confidence: Optional[float], profile: Optional[str]) -> dict[str, Any]:
    """Command-line overrides, validated together with the rest of the config."""
    matching: dict[str, Any] = {}
    if min_confidence is not None:
        matching["min_confidence"] = min_confidence
    if profile is not None:
        matching["profile"] = profile
    return {"matching": matching} if matching else {}


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Side A Records", str(summary.total_a))
    table.add_row("Side B Records", str(summary.total_b))
    table.add_row("Matched", str(summary.matched_count))
    table.add_row("With Discrepancies", str(summary.discrepancy_count))
    table.add_row(
        "Paired (Exact / Fuzzy)",
        f"{summary.paired_count} ({summary.exact_count} / {summary.fuzzy_count})",
    )
    table.add_row("Side A Only", str(summary.unmatched_a_count))
    table.add_row("Side B Only", str(summary.unmatched_b_count))
    table.add_row("Rejected Rows (A / B)", f"{summary.rejected_a} / {summary.rejected_b}")
    table.add_row("Match Rate", f"{summary.match_rate:.1%}")
    table.add_row("Amount Variance", f"{summary.amount_variance:,.2f}")

    console.print(table)


def _display_discrepancies(report: ReconciliationReport) -> None:
    flagged = report.discrepancies
    if not flagged:
        return

    table = Table(title="Discrepancies")
    table.add_column("Side A")
    table.add_column("Side B")
    table.add_column("Type")
    table.add_column("Field")
    table.add_column("Side A Value", justify="right")
    table.add_column("Side B Value", justify="right")

    for result in flagged[:PREVIEW_ROWS]:
        for discrepancy in result.discrepancies:
            table.add_row(
                result.record_a.transaction_number or result.record_a.id,
                result.record_b.transaction_number or result.record_b.id,
                result.pair.match_type.value,
                discrepancy.field,
                str(discrepancy.value_a),
                str(discrepancy.value_b),
            )

    console.print(table)


if __name__ == "__main__":
    main()
