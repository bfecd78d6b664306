"""
Order generation module for the index rebalancer.

Generates whole-share buy and sell orders bridging holdings to targets.
No brokerage execution occurs.
"""

from index_rebalancer.trading.orders import (
    calculate_order_summary,
    generate_rebalance_orders,
    shares_for_value,
    validate_orders,
)

__all__ = [
    "calculate_order_summary",
    "generate_rebalance_orders",
    "shares_for_value",
    "validate_orders",
]
