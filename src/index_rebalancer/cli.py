"""
Command-line interface for the index rebalancer.

Provides commands for:
- run: Rebalance a portfolio across every date of a market data file
- select: Show the companies selected for a single date
"""

import logging
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click

from index_rebalancer import __version__
from index_rebalancer.config import apply_env_overrides, load_config, write_config
from index_rebalancer.data import list_data_files, load_market_data, save_holdings, save_orders
from index_rebalancer.exceptions import RebalanceError
from index_rebalancer.logging import get_logger
from index_rebalancer.models import RebalanceConfig, RebalanceStep
from index_rebalancer.selection import select_companies
from index_rebalancer.simulation import (
    RebalanceEngine,
    generate_markdown_report,
    reset_output_dir,
)
from index_rebalancer.trading.orders import calculate_order_summary


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _parse_amount(value: str) -> Decimal:
    """Parse a positive, finite allocation amount (in millions)."""
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise click.BadParameter(f"Must be a valid positive number, got {value!r}")

    if not amount.is_finite() or amount <= Decimal("0"):
        raise click.BadParameter(f"Must be a valid positive number, got {value!r}")

    return amount


def _load_run_config(config_path: Optional[str]) -> RebalanceConfig:
    config = load_config(config_path) if config_path else RebalanceConfig()
    return apply_env_overrides(config)


def _choose_data_file(data_dir: str) -> Path:
    """Pick a CSV from the data directory, prompting when there are several."""
    files = list_data_files(data_dir)
    if len(files) == 1:
        return files[0]

    names = [f.name for f in files]
    choice = click.prompt(
        "Select a market capitalisation data file to process",
        type=click.Choice(names),
        default=names[0],
    )
    return files[names.index(choice)]


@click.group()
@click.version_option(version=__version__, prog_name="index-rebalancer")
def main():
    """
    Market-cap weighted index rebalancer.

    Simulates periodic rebalancing of an index portfolio from daily
    market capitalisation snapshots. No live trading.
    """
    pass


@main.command()
@click.option(
    "--data", "-d",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Market data CSV. Prompts for a file in the data directory if omitted.",
)
@click.option(
    "--amount", "-a",
    type=str,
    default=None,
    help="Initial allocation amount in millions. Prompts if omitted.",
)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    default=None,
    help="Path to configuration YAML file",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default=None,
    help="Output directory. Defaults to config output_dir.",
)
@click.option(
    "--percentile", "-p",
    type=str,
    default=None,
    help="Cumulative weight threshold in (0, 1]. Defaults to config percentile.",
)
@click.option("--no-report", is_flag=True, help="Skip markdown report generation")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def run(
    data: Optional[str],
    amount: Optional[str],
    config: Optional[str],
    output_dir: Optional[str],
    percentile: Optional[str],
    no_report: bool,
    verbose: bool,
):
    """
    Rebalance a portfolio across every date in a market data file.

    Writes one markdown report per date, order and holding CSVs, and an
    append-only decision log to the output directory.
    """
    _configure_logging(verbose)

    try:
        run_config = _load_run_config(config)
        if percentile is not None:
            value = Decimal(percentile)
            if not Decimal("0") < value <= Decimal("1"):
                raise click.BadParameter(f"percentile must be in (0, 1], got {percentile}")
            run_config.percentile = value

        data_path = Path(data) if data else _choose_data_file(run_config.data_dir)

        if amount is not None:
            allocation = _parse_amount(amount)
        elif run_config.initial_allocation_amount is not None:
            allocation = run_config.initial_allocation_amount
        else:
            allocation = click.prompt(
                "Enter the initial allocation amount (in millions)",
                default="100",
                value_proc=_parse_amount,
            )

        click.echo(f"Loading market data from {data_path}...")
        market_data = load_market_data(data_path, run_config.date_format)

        out_dir = reset_output_dir(output_dir or run_config.output_dir, protect=data_path)
        write_config(run_config, out_dir / "config.yaml")
        decision_logger = get_logger(out_dir / "decision_log.jsonl")
        decision_logger.log_config_loaded(run_config, config)

        click.echo(f"  Dates: {len(market_data)}")
        click.echo(f"  Initial allocation: ${allocation:,.2f}M")
        click.echo(f"  Percentile: {run_config.percentile:.0%}")

        def on_step(step: RebalanceStep):
            summary = calculate_order_summary(step.orders, run_config.value_scale)
            click.echo(
                f"  {step.date}: {len(step.selected)} selected, "
                f"{summary['buy_count']} buys, {summary['sell_count']} sells, "
                f"value ${step.final_state.total_value_m:,.2f}M"
            )
            if not no_report:
                generate_markdown_report(step, run_config, out_dir)

        engine = RebalanceEngine(run_config, decision_logger)
        result = engine.run(market_data, allocation, progress_callback=on_step)
    except (RebalanceError, ValueError, InvalidOperation) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    orders_path = save_orders(result.steps, out_dir / "orders.csv", run_config.value_scale)
    holdings_path = save_holdings(result.steps, out_dir / "holdings.csv", run_config.value_scale)

    final = result.final_state
    click.echo()
    click.echo(f"Run {result.run_id} complete:")
    click.echo(f"  Dates processed: {len(result.steps)}")
    click.echo(f"  Total orders: {result.total_orders}")
    if final is not None:
        click.echo(f"  Final value: ${final.total_value_m:,.2f}M")
        click.echo(f"  Unallocated cash: ${final.cash_balance_m:,.2f}M")
    click.echo(f"  Orders saved: {orders_path}")
    click.echo(f"  Holdings saved: {holdings_path}")
    if not no_report:
        click.echo(f"  Reports saved: {out_dir}")


@main.command()
@click.option(
    "--data", "-d",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Market data CSV",
)
@click.option(
    "--date", "date_str",
    type=str,
    default=None,
    help="Date to select for (YYYY-MM-DD). Defaults to the first date in the file.",
)
@click.option(
    "--percentile", "-p",
    type=str,
    default="0.85",
    help="Cumulative weight threshold in (0, 1]",
)
@click.option(
    "--date-format",
    type=str,
    default="%d/%m/%Y",
    help="Date format of the CSV date column",
)
def select(data: str, date_str: Optional[str], percentile: str, date_format: str):
    """
    Show the companies selected for a single date.
    """
    try:
        market_data = load_market_data(data, date_format)

        if date_str:
            try:
                target = datetime.strptime(date_str, "%Y-%m-%d").date()
            except ValueError:
                click.echo(f"Invalid date format: {date_str}. Use YYYY-MM-DD.", err=True)
                sys.exit(1)
            matches = [records for d, records in market_data if d == target]
            if not matches:
                click.echo(f"No market data for {target}", err=True)
                sys.exit(1)
            selection_date, records = target, matches[0]
        else:
            selection_date, records = market_data[0]

        selected = select_companies(records, Decimal(percentile))
    except (RebalanceError, ValueError, InvalidOperation) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Selection for {selection_date} ({len(selected)}/{len(records)} companies):")
    click.echo()
    click.echo(f"  {'Company':<24} {'Weight':>10} {'Cumulative':>12}")
    click.echo(f"  {'-'*24} {'-'*10} {'-'*12}")
    for company in selected:
        click.echo(
            f"  {company.company:<24} {company.weight:>10.4%} {company.cumulative_weight:>12.4%}"
        )


if __name__ == "__main__":
    main()
