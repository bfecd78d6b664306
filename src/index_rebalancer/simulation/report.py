"""
Report generation for rebalancing runs.

Generates one human-readable markdown report per rebalancing date,
covering selection, allocation targets, holdings before and after, and
the orders executed.
"""

import shutil
from pathlib import Path
from typing import Optional

from index_rebalancer.exceptions import DataLoadError
from index_rebalancer.models import (
    VALUE_SCALE,
    Holding,
    OrderAction,
    RebalanceConfig,
    RebalanceStep,
)
from index_rebalancer.trading.orders import calculate_order_summary


def reset_output_dir(
    output_dir: str | Path,
    protect: Optional[str | Path] = None,
) -> Path:
    """
    Remove and recreate the output directory.

    Args:
        output_dir: Directory to reset
        protect: Input file that must survive the reset

    Returns:
        Path to the empty directory

    Raises:
        DataLoadError: If protect lies inside output_dir
    """
    output_dir = Path(output_dir)
    if protect is not None:
        resolved_dir = output_dir.resolve()
        resolved_file = Path(protect).resolve()
        if resolved_dir == resolved_file or resolved_dir in resolved_file.parents:
            raise DataLoadError(
                f"Output directory {output_dir} contains the input file {protect}; "
                f"choose a different output directory"
            )

    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)
    return output_dir


def report_filename(step: RebalanceStep) -> str:
    """File name of the report for a step."""
    return f"rebalancing-report-{step.date.isoformat()}.md"


def generate_markdown_report(
    step: RebalanceStep,
    config: RebalanceConfig,
    output_dir: str | Path,
) -> Path:
    """
    Write the markdown report for one rebalancing date.

    Args:
        step: Results for the date
        config: Engine configuration
        output_dir: Directory to save the report

    Returns:
        Path to the written report
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report_path = output_dir / report_filename(step)
    with open(report_path, "w") as f:
        f.write(render_markdown_report(step, config))

    return report_path


def render_markdown_report(step: RebalanceStep, config: RebalanceConfig) -> str:
    """Render the markdown report content for one rebalancing date."""
    scale = config.value_scale
    valued = step.valued_state
    final = step.final_state
    summary = calculate_order_summary(step.orders, scale)
    date_str = step.date.isoformat()

    lines = [
        f"# Portfolio Rebalancing Report - {date_str}",
        "",
        "## Portfolio Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Date | {date_str} |",
        f"| Portfolio Value to Date | ${valued.total_value_m:,.2f}M |",
        f"| Portfolio Value After Rebalancing | ${final.total_value_m:,.2f}M |",
        f"| Number of Selected Companies | {len(step.selected)} |",
        "",
        "---",
        "",
        "## Index Universe Selection",
        "",
        f"Companies selected for inclusion in the index fund based on market "
        f"capitalization ranking up to the {config.percentile:.0%} percentile threshold.",
        "",
        "| Company | Share Price | Market Cap (M) | Weight | Cumulative Weight |",
        "|---------|-------------|----------------|--------|-------------------|",
    ]
    for company in step.selected:
        lines.append(
            f"| {company.company} | ${company.share_price:,.2f} | "
            f"${company.market_cap_m:,.0f}M | {company.weight:.2%} | "
            f"{company.cumulative_weight:.2%} |"
        )

    lines.extend([
        "",
        "## Portfolio Allocation Targets",
        "",
        "Target amounts and percentage allocations for each company in the "
        "index fund based on their market cap weights.",
        "",
        "| Company | Target Allocation (M) | Target Allocation (%) |",
        "|---------|-----------------------|-----------------------|",
    ])
    for allocation in step.allocations:
        if valued.total_value_m:
            pct = f"{allocation.target_allocation_m / valued.total_value_m:.2%}"
        else:
            pct = "n/a"
        lines.append(
            f"| {allocation.company} | ${allocation.target_allocation_m:,.2f}M | {pct} |"
        )

    lines.extend([
        "",
        "---",
        "",
        "## Holdings Before Rebalancing",
        "",
    ])
    lines.extend(_holdings_table(valued.holdings, scale))

    lines.extend([
        "",
        "## Rebalancing Orders",
        "",
        "| Company | Action | Shares | Share Price | Order Value (M) |",
        "|---------|--------|--------|-------------|-----------------|",
    ])
    for order in step.orders:
        lines.append(
            f"| {order.company} | {order.action.value.upper()} | {order.num_shares:,} | "
            f"${order.share_price:,.2f} | ${order.value / scale:,.2f}M |"
        )

    lines.extend([
        "",
        "## Holdings After Rebalancing",
        "",
    ])
    lines.extend(_holdings_table(final.holdings, scale))

    lines.extend([
        "",
        "---",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Buy Orders | {summary['buy_count']} |",
        f"| Total Sell Orders | {summary['sell_count']} |",
        f"| Total Buy Value | ${summary['total_buy_value']:,.2f}M |",
        f"| Total Sell Value | ${summary['total_sell_value']:,.2f}M |",
        f"| Net Cash Flow | ${summary['net_cash_flow']:,.2f}M |",
        f"| Unallocated Cash | ${final.cash_balance_m:,.2f}M |",
        "",
    ])

    liquidated = []
    for order in step.orders:
        if order.action != OrderAction.SELL or order.num_shares == 0:
            continue
        holding = final.get_holding(order.company)
        if holding is not None and holding.num_shares == 0:
            liquidated.append(order.company)

    if liquidated:
        lines.append(f"**Fully liquidated:** {', '.join(liquidated)}")
        lines.append("")

    return "\n".join(lines)


def _holdings_table(holdings: tuple[Holding, ...], scale=VALUE_SCALE) -> list[str]:
    """Render holdings as markdown table lines."""
    if not holdings:
        return ["_No holdings._"]

    lines = [
        "| Company | Shares | Share Price | Current Value (M) |",
        "|---------|--------|-------------|-------------------|",
    ]
    for holding in holdings:
        lines.append(
            f"| {holding.company} | {holding.num_shares:,} | ${holding.share_price:,.2f} | "
            f"${holding.market_value / scale:,.2f}M |"
        )
    return lines
