"""
Pytest fixtures for the index rebalancer tests.

Provides common test data and utilities used across test modules.
"""

from datetime import date
from decimal import Decimal

import pytest

from index_rebalancer.models import (
    AllocatedCompany,
    DailyRecord,
    Holding,
    RebalanceConfig,
)


@pytest.fixture
def make_records():
    """Factory building DailyRecords from (company, market_cap_m, share_price) rows."""
    def _make(rows, record_date=date(2025, 4, 8)):
        return [
            DailyRecord(
                date=record_date,
                company=company,
                market_cap_m=Decimal(str(market_cap)),
                share_price=Decimal(str(price)),
            )
            for company, market_cap, price in rows
        ]
    return _make


@pytest.fixture
def five_company_records(make_records) -> list[DailyRecord]:
    """Five companies with descending market caps (total 3000M)."""
    return make_records([
        ("A", 1000, 10),
        ("B", 800, 20),
        ("C", 600, 30),
        ("D", 400, 40),
        ("E", 200, 50),
    ])


@pytest.fixture
def make_allocation():
    """Factory building an AllocatedCompany with only the fields orders use."""
    def _make(company, target_allocation_m, share_price, weight="0.1"):
        return AllocatedCompany(
            date=date(2025, 4, 8),
            company=company,
            market_cap_m=Decimal("100"),
            share_price=Decimal(str(share_price)),
            weight=Decimal(weight),
            cumulative_weight=Decimal(weight),
            target_allocation_m=Decimal(str(target_allocation_m)),
        )
    return _make


@pytest.fixture
def sample_holdings() -> list[Holding]:
    """Create sample holdings for testing."""
    return [
        Holding(company="A", num_shares=1000, share_price=Decimal("10")),
        Holding(company="B", num_shares=500, share_price=Decimal("20")),
        Holding(company="C", num_shares=200, share_price=Decimal("30")),
    ]


@pytest.fixture
def sample_config() -> RebalanceConfig:
    """Default engine configuration."""
    return RebalanceConfig()


@pytest.fixture
def two_date_market_data(make_records):
    """
    Two dates of market data.

    On the second date E overtakes D, so D drops out of the selection.
    """
    day_one = date(2025, 4, 8)
    day_two = date(2025, 4, 9)
    return [
        (day_one, make_records([
            ("A", 1000, 10),
            ("B", 800, 20),
            ("C", 600, 30),
            ("D", 400, 40),
            ("E", 200, 50),
        ], day_one)),
        (day_two, make_records([
            ("A", 1000, 11),
            ("B", 800, 19),
            ("C", 600, 30),
            ("D", 100, 10),
            ("E", 500, 125),
        ], day_two)),
    ]


@pytest.fixture
def market_data_csv(tmp_path):
    """Write a small market data CSV with DD/MM/YYYY dates."""
    path = tmp_path / "market_caps.csv"
    path.write_text(
        "date,company,market_cap_m,share_price\n"
        "09/04/2025,A,1000,11\n"
        "09/04/2025,B,800,19\n"
        "09/04/2025,C,600,30\n"
        "09/04/2025,D,100,10\n"
        "09/04/2025,E,500,125\n"
        "08/04/2025,A,1000,10\n"
        "08/04/2025,B,800,20\n"
        "08/04/2025,C,600,30\n"
        "08/04/2025,D,400,40\n"
        "08/04/2025,E,200,50\n"
    )
    return path
