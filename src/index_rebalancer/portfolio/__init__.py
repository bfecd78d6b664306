"""
Portfolio management module for the index rebalancer.

Provides target allocation across selected companies and the portfolio
state transitions (revaluation and order application).
"""

from index_rebalancer.portfolio.allocation import allocate, allocation_shortfall
from index_rebalancer.portfolio.state import (
    apply_orders,
    create_initial_state,
    holdings_value,
    revalue,
)

__all__ = [
    "allocate",
    "allocation_shortfall",
    "apply_orders",
    "create_initial_state",
    "holdings_value",
    "revalue",
]
