"""
Decision logging module for the index rebalancer.

Provides append-only decision logging for audit and reproducibility.
"""

from index_rebalancer.logging.decision_log import (
    DecisionLogger,
    get_logger,
)

__all__ = [
    "DecisionLogger",
    "get_logger",
]
