"""
Data ingestion module for the index rebalancer.

Provides functionality for loading daily market capitalisation data
from CSV files and saving orders and holdings.
"""

from index_rebalancer.data.loaders import (
    list_data_files,
    load_market_data,
    save_holdings,
    save_orders,
)
from index_rebalancer.data.schemas import (
    HOLDINGS_SCHEMA,
    MARKET_DATA_SCHEMA,
    ORDERS_SCHEMA,
)

__all__ = [
    "list_data_files",
    "load_market_data",
    "save_holdings",
    "save_orders",
    "HOLDINGS_SCHEMA",
    "MARKET_DATA_SCHEMA",
    "ORDERS_SCHEMA",
]
