"""
Data loading and saving functions for CSV files.

Handles ingestion and validation of daily market capitalisation data,
as well as output of rebalancing orders and holdings.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

import pandas as pd

from index_rebalancer.exceptions import DataLoadError
from index_rebalancer.models import VALUE_SCALE, DailyRecord, RebalanceStep
from index_rebalancer.data.schemas import (
    HOLDINGS_SCHEMA,
    MARKET_DATA_SCHEMA,
    ORDERS_SCHEMA,
    FileSchema,
)


def list_data_files(data_dir: str | Path) -> list[Path]:
    """
    List market data CSV files in a directory.

    Args:
        data_dir: Directory to search

    Returns:
        Sorted list of CSV file paths

    Raises:
        DataLoadError: If the directory is missing or holds no CSV files
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise DataLoadError(f"Data directory not found: {data_dir}")

    csv_files = sorted(p for p in data_dir.iterdir() if p.suffix.lower() == ".csv")
    if not csv_files:
        raise DataLoadError(
            f"No CSV files found in {data_dir}. Place market capitalisation "
            f"CSV files in this directory."
        )

    return csv_files


def load_market_data(
    file_path: str | Path,
    date_format: str = "%d/%m/%Y",
) -> list[tuple[date, list[DailyRecord]]]:
    """
    Load daily market capitalisation data from a CSV file.

    Args:
        file_path: Path to CSV file with columns: date, company, market_cap_m, share_price
        date_format: strptime format of the date column (ISO dates also accepted)

    Returns:
        List of (date, records) pairs in ascending date order. Records
        keep their file order within each date.

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    file_path = Path(file_path)
    df = _load_csv(file_path, MARKET_DATA_SCHEMA)

    if df.empty:
        raise DataLoadError(f"File {file_path} contains no data rows")

    df["company"] = df["company"].str.strip()
    df["date"] = df["date"].map(lambda v: _parse_date(v, date_format))

    duplicates = df[df.duplicated(subset=["date", "company"], keep=False)]
    if not duplicates.empty:
        pairs = sorted({f"{d.isoformat()}:{c}" for d, c in zip(duplicates["date"], duplicates["company"])})
        raise DataLoadError(f"Duplicate companies within a date: {pairs[:10]}")

    records_by_date: dict[date, list[DailyRecord]] = defaultdict(list)
    invalid_rows = []

    for index, row in df.iterrows():
        market_cap = _parse_positive_decimal(row["market_cap_m"])
        share_price = _parse_positive_decimal(row["share_price"])
        if market_cap is None or share_price is None:
            invalid_rows.append(index + 2)  # 1-based, after header
            continue

        records_by_date[row["date"]].append(
            DailyRecord(
                date=row["date"],
                company=row["company"],
                market_cap_m=market_cap,
                share_price=share_price,
            )
        )

    if invalid_rows:
        raise DataLoadError(
            f"Non-positive or invalid market cap / share price on lines: {invalid_rows[:10]}"
        )

    return [(d, records_by_date[d]) for d in sorted(records_by_date)]


def save_orders(
    steps: list[RebalanceStep],
    output_path: str | Path,
    value_scale: Decimal = VALUE_SCALE,
) -> Path:
    """
    Save all rebalancing orders of a run to CSV.

    Args:
        steps: Per-date rebalancing results
        output_path: Path for output CSV file
        value_scale: Dollars per unit of portfolio value

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    records = []
    for step in steps:
        for order in step.orders:
            records.append({
                "date": step.date.isoformat(),
                "company": order.company,
                "action": order.action.value,
                "num_shares": order.num_shares,
                "share_price": float(order.share_price),
                "order_value_m": float(order.value / value_scale),
            })

    df = pd.DataFrame(records, columns=ORDERS_SCHEMA.column_names)
    df.to_csv(output_path, index=False)

    return output_path


def save_holdings(
    steps: list[RebalanceStep],
    output_path: str | Path,
    value_scale: Decimal = VALUE_SCALE,
) -> Path:
    """
    Save post-rebalance holdings for every date of a run to CSV.

    Args:
        steps: Per-date rebalancing results
        output_path: Path for output CSV file
        value_scale: Dollars per unit of portfolio value

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    records = []
    for step in steps:
        for holding in step.final_state.holdings:
            records.append({
                "date": step.date.isoformat(),
                "company": holding.company,
                "num_shares": holding.num_shares,
                "share_price": float(holding.share_price),
                "market_value_m": float(holding.market_value / value_scale),
            })

    df = pd.DataFrame(records, columns=HOLDINGS_SCHEMA.column_names)
    df.to_csv(output_path, index=False)

    return output_path


def _parse_date(value: str, date_format: str) -> date:
    """
    Parse a date in the configured format, falling back to ISO format.

    Raises:
        DataLoadError: If the value matches neither format
    """
    value = str(value).strip()
    try:
        return datetime.strptime(value, date_format).date()
    except ValueError:
        pass

    try:
        return date.fromisoformat(value)
    except ValueError:
        raise DataLoadError(
            f"Invalid date: {value}. Expected format {date_format} or YYYY-MM-DD"
        )


def _parse_positive_decimal(value) -> Decimal | None:
    """Parse a strictly positive, finite Decimal; None if invalid."""
    try:
        parsed = Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation:
        return None

    if not parsed.is_finite() or parsed <= Decimal("0"):
        return None

    return parsed


def _load_csv(file_path: Path, schema: FileSchema) -> pd.DataFrame:
    """
    Load a CSV file as strings and validate against schema.

    Args:
        file_path: Path to CSV file
        schema: Expected file schema

    Returns:
        Loaded DataFrame

    Raises:
        DataLoadError: If file cannot be loaded or has missing columns
    """
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Failed to load CSV file {file_path}: {e}")

    df.columns = [c.strip() for c in df.columns]

    missing = schema.missing_columns(df.columns.tolist())
    if missing:
        raise DataLoadError(
            f"File {file_path} is missing required columns: {missing}"
        )

    return df
