"""
CSV layouts for market data input and the orders/holdings outputs.

Column order here is the column order written to output files.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ColumnSchema:
    name: str
    description: str
    required: bool = True


@dataclass(frozen=True)
class FileSchema:
    """Named, ordered set of CSV columns."""
    name: str
    columns: tuple[ColumnSchema, ...]

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def missing_columns(self, found: list[str]) -> list[str]:
        """Required columns absent from a file's header, in schema order."""
        present = set(found)
        return [c.name for c in self.columns if c.required and c.name not in present]


MARKET_DATA_SCHEMA = FileSchema(
    name="market_data",
    columns=(
        ColumnSchema("date", "Snapshot date, DD/MM/YYYY by default"),
        ColumnSchema("company", "Company name, unique within a date"),
        ColumnSchema("market_cap_m", "Market capitalisation in millions"),
        ColumnSchema("share_price", "Share price in dollars"),
    ),
)

ORDERS_SCHEMA = FileSchema(
    name="orders",
    columns=(
        ColumnSchema("date", "Rebalancing date (ISO)"),
        ColumnSchema("company", "Company name"),
        ColumnSchema("action", "buy or sell"),
        ColumnSchema("num_shares", "Whole shares transacted"),
        ColumnSchema("share_price", "Execution price in dollars"),
        ColumnSchema("order_value_m", "Order value in millions"),
    ),
)

HOLDINGS_SCHEMA = FileSchema(
    name="holdings",
    columns=(
        ColumnSchema("date", "Rebalancing date (ISO)"),
        ColumnSchema("company", "Company name"),
        ColumnSchema("num_shares", "Shares held after rebalancing"),
        ColumnSchema("share_price", "Last execution price in dollars"),
        ColumnSchema("market_value_m", "Position value in millions"),
    ),
)
