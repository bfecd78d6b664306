"""
Company selection module for the index rebalancer.

Selects the investable universe for a date by cumulative market-cap weight.
"""

from index_rebalancer.selection.selector import (
    compute_weights,
    select_companies,
    summarize_selection,
)

__all__ = [
    "compute_weights",
    "select_companies",
    "summarize_selection",
]
