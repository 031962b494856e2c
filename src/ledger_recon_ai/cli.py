"""
Command-line interface for the AI ledger reconciliation tool.
"""

from pathlib import Path
from typing import Optional
import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig, ReconContext
from .insights import PriceEstimator, RateTrendSummarizer
from .llm.backend import OpenAIBackend
from .models.events import ReconciliationRun, ResultEvent
from .models.ledger import ReconciliationResult
from .models.rates import RateRecord
from .parsers.ledger_pdf import LedgerPDFLoader
from .parsers.rate_history import RateHistoryParser, group_by_product, write_rates_csv
from .reports.excel_generator import ExcelReportGenerator
from .reports.rate_sheet import RateSheetExporter, RateSheetImporter
from .streaming.orchestrator import ReconciliationPipeline
from .utils.exceptions import NoResultCapturedError, RateHistoryParseError
from .utils.logging_config import level_from_name, setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """AI Ledger Reconciliation and Rate Insights Tool."""
    pass


@main.command()
@click.argument("party_a_pdf", type=click.Path(exists=True, path_type=Path))
@click.argument("party_b_pdf", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--sheets-token",
    envvar="GOOGLE_ACCESS_TOKEN",
    default=None,
    help="OAuth access token; exports the result to a new Google Sheet",
)
@click.option("--json", "as_json", is_flag=True, help="Print stream events as JSON lines")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def reconcile(
    party_a_pdf: Path,
    party_b_pdf: Path,
    config: Optional[Path],
    output: Optional[Path],
    sheets_token: Optional[str],
    as_json: bool,
    verbose: bool,
):
    """
    Reconcile two ledger PDFs with the hosted model.

    PARTY_A_PDF: Path to Party A's ledger
    PARTY_B_PDF: Path to Party B's ledger
    """
    recon_config = _setup(config, verbose)

    try:
        context = ReconContext.from_config(recon_config)
        party_a, party_b = LedgerPDFLoader(recon_config).load_pair(party_a_pdf, party_b_pdf)
        pipeline = ReconciliationPipeline(context)
        run = pipeline.new_run()

        result = asyncio.run(_stream_analysis(pipeline, party_a, party_b, run, as_json))
        if result is None:
            raise NoResultCapturedError(
                "The model finished without producing a valid reconciliation result"
            )

        if not as_json:
            _display_summary(result, recon_config, run)

        if output is not None:
            report_path = ExcelReportGenerator(recon_config).generate_report(result, output, run)
            console.print(f"\n[green]Report generated: {report_path}[/green]")

        if sheets_token:
            outcome = asyncio.run(pipeline.export(result, sheets_token))
            if as_json:
                click.echo(json.dumps(outcome.to_wire()))
            elif outcome.success:
                console.print(f"[green]Google Sheet created: {outcome.sheet_url}[/green]")
            else:
                console.print(f"[red]Export failed: {outcome.message}[/red]")
            if not outcome.success:
                sys.exit(1)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


async def _stream_analysis(
    pipeline: ReconciliationPipeline,
    party_a,
    party_b,
    run: ReconciliationRun,
    as_json: bool,
) -> Optional[ReconciliationResult]:
    """Consume the analyze stream, echoing each event as it arrives."""
    result: Optional[ReconciliationResult] = None

    if as_json:
        async for event in pipeline.analyze(party_a, party_b, run=run):
            click.echo(json.dumps(event.to_wire()))
            if isinstance(event, ResultEvent):
                result = event.result
        return result

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Reconciling ledgers...", total=None)
        async for event in pipeline.analyze(party_a, party_b, run=run):
            if isinstance(event, ResultEvent):
                result = event.result
            else:
                progress.console.print(f"[dim]>[/dim] {event.progress}")
        progress.update(task, completed=True)

    return result


@main.command("show-rates")
@click.argument("rates_csv", type=click.Path(exists=True, path_type=Path))
@click.option("-p", "--product", default=None, help="Only show this product")
def show_rates(rates_csv: Path, product: Optional[str]):
    """
    Parse a rate history CSV and display the recorded rates.

    RATES_CSV: Path to the rate history export
    """
    try:
        grouped = group_by_product(RateHistoryParser().parse_file(rates_csv))
    except RateHistoryParseError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    if product:
        grouped = {product: _lookup_product(grouped, product)}

    table = Table(title=f"Recorded Rates: {rates_csv.name}")
    table.add_column("Product")
    table.add_column("Party")
    table.add_column("Bill Date")
    table.add_column("Rate", justify="right")
    table.add_column("GST %", justify="right")
    table.add_column("Final Rate", justify="right")

    for name, records in grouped.items():
        for record in records:
            table.add_row(
                name,
                record.party or "-",
                record.bill_date.isoformat(),
                f"{record.rate:,.2f}",
                f"{record.gst}",
                f"{record.final_rate:,.2f}",
            )

    console.print(table)


@main.command("estimate-price")
@click.argument("rates_csv", type=click.Path(exists=True, path_type=Path))
@click.argument("product")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def estimate_price(rates_csv: Path, product: str, config: Optional[Path], verbose: bool):
    """
    Estimate the next final price of PRODUCT from its rate history.

    RATES_CSV: Path to the rate history export
    """
    recon_config = _setup(config, verbose)

    try:
        history = _lookup_product(
            group_by_product(RateHistoryParser().parse_file(rates_csv)), product
        )
        estimator = PriceEstimator(OpenAIBackend(ReconContext.from_config(recon_config)))
        estimate = asyncio.run(estimator.estimate(product, history))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)

    table = Table(title=f"Price Estimate: {product}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    if history:
        table.add_row("Latest Final Rate", f"{history[0].final_rate:,.2f}")
    table.add_row("Estimated Next Price", f"{estimate.estimated_price:,.2f}")
    table.add_row("Reasoning", estimate.reasoning)
    console.print(table)


@main.command("summarize-rates")
@click.argument("rates_csv", type=click.Path(exists=True, path_type=Path))
@click.argument("product")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def summarize_rates(rates_csv: Path, product: str, config: Optional[Path], verbose: bool):
    """
    Summarize rate trends and outliers for PRODUCT.

    RATES_CSV: Path to the rate history export
    """
    recon_config = _setup(config, verbose)

    try:
        history = _lookup_product(
            group_by_product(RateHistoryParser().parse_file(rates_csv)), product
        )
        summarizer = RateTrendSummarizer(OpenAIBackend(ReconContext.from_config(recon_config)))
        trends = asyncio.run(summarizer.summarize(product, history))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)

    console.print(f"[bold]Summary:[/bold] {trends.summary}")
    console.print(f"[bold]Prediction:[/bold] {trends.prediction}")

    if trends.outliers:
        table = Table(title="Outliers")
        table.add_column("Date")
        table.add_column("Rate", justify="right")
        table.add_column("Reason")
        for outlier in trends.outliers:
            table.add_row(outlier.date, f"{outlier.rate:,.2f}", outlier.reason)
        console.print(table)


@main.command("sync-rates")
@click.argument("rates_csv", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--sheets-token",
    envvar="GOOGLE_ACCESS_TOKEN",
    default=None,
    help="OAuth access token with the spreadsheets scope",
)
@click.option(
    "--spreadsheet", default=None, help="Existing spreadsheet id or URL to overwrite"
)
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def sync_rates(
    rates_csv: Path,
    sheets_token: Optional[str],
    spreadsheet: Optional[str],
    config: Optional[Path],
    verbose: bool,
):
    """
    Push every recorded rate to a Google Sheet.

    RATES_CSV: Path to the rate history export
    """
    recon_config = _setup(config, verbose)

    try:
        records = RateHistoryParser().parse_file(rates_csv)
    except RateHistoryParseError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    exporter = RateSheetExporter(ReconContext.from_config(recon_config))
    outcome = asyncio.run(exporter.export(records, sheets_token, spreadsheet_id=spreadsheet))
    if not outcome.success:
        console.print(f"[red]Sync failed: {outcome.message}[/red]")
        sys.exit(1)

    console.print(f"[green]Synced {len(records)} rate(s): {outcome.sheet_url}[/green]")


@main.command("import-rates")
@click.argument("spreadsheet")
@click.option(
    "--sheets-token",
    envvar="GOOGLE_ACCESS_TOKEN",
    default=None,
    help="OAuth access token with the spreadsheets scope",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Write the rates to a CSV file")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def import_rates(
    spreadsheet: str,
    sheets_token: Optional[str],
    output: Optional[Path],
    config: Optional[Path],
    verbose: bool,
):
    """
    Read recorded rates back from a synced Google Sheet.

    SPREADSHEET: Spreadsheet id or URL
    """
    recon_config = _setup(config, verbose)

    try:
        importer = RateSheetImporter(ReconContext.from_config(recon_config))
        records = asyncio.run(importer.import_rates(spreadsheet, sheets_token))
        if output is not None:
            write_rates_csv(records, output)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)

    console.print(f"Imported {len(records)} rate(s)")
    if output is not None:
        console.print(f"[green]Rates written: {output}[/green]")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _setup(config_path: Optional[Path], verbose: bool) -> ReconConfig:
    """Load configuration and configure logging for a command."""
    try:
        recon_config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    log_level = logging.DEBUG if verbose else level_from_name(recon_config.logging.level)
    log_file = Path(recon_config.logging.file) if recon_config.logging.file else None
    setup_logging(log_level, log_file=log_file, log_format=recon_config.logging.format)
    return recon_config


def _lookup_product(grouped: dict[str, list[RateRecord]], product: str) -> list[RateRecord]:
    """Find a product's records, ignoring case."""
    if product in grouped:
        return grouped[product]
    wanted = product.strip().lower()
    for name, records in grouped.items():
        if name.lower() == wanted:
            return records
    return []


def _display_summary(
    result: ReconciliationResult, config: ReconConfig, run: ReconciliationRun
) -> None:
    """Display reconciliation summary in console."""
    party_a = config.pipeline.party_a_label
    party_b = config.pipeline.party_b_label

    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Matched", str(result.match_count))
    table.add_row(f"{party_a} Only", str(len(result.party_a_discrepancies)))
    table.add_row(f"{party_b} Only", str(len(result.party_b_discrepancies)))
    table.add_row("Matched Total", f"{result.matched_total:,.2f}")
    table.add_row("Progress Messages", str(len(run.progress)))
    table.add_row("Processing Time", f"{run.processing_time_seconds:.2f}s")

    console.print(table)
    console.print(f"\n{result.summary}")


if __name__ == "__main__":
    main()
