"""
Market-Cap Weighted Index Rebalancer (index-rebalancer)

A paper-only simulation of periodic index portfolio rebalancing. Given daily
market capitalisation snapshots, it selects the companies that make up a
target percentile of total market cap, allocates the portfolio value across
them by weight, generates whole-share buy/sell orders, and carries the
portfolio state from date to date.

No brokerage execution.
"""

__version__ = "0.1.0"
