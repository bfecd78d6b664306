"""
Simulation module for the index rebalancer.

Runs the rebalancing date loop and renders per-date reports.
"""

from index_rebalancer.simulation.engine import RebalanceEngine, RebalanceResult
from index_rebalancer.simulation.report import (
    generate_markdown_report,
    render_markdown_report,
    reset_output_dir,
)

__all__ = [
    "RebalanceEngine",
    "RebalanceResult",
    "generate_markdown_report",
    "render_markdown_report",
    "reset_output_dir",
]
