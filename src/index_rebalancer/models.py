"""
Core data models for the index rebalancing engine.

This module defines the fundamental data structures used throughout the system,
including daily market snapshots, weighted and allocated companies, holdings,
orders and the portfolio state threaded through the date loop.
All monetary quantities and weights use Decimal for precision.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from index_rebalancer.exceptions import MissingPriceError


# Number of decimal digits used at every rounding point
DECIMAL_PRECISION = 8

# Cumulative weight cut-off used to select the investable universe
PERCENTILE_OF_COMPANIES_TO_SELECT = Decimal("0.85")

# Portfolio values and market caps are expressed in millions of dollars
VALUE_SCALE = Decimal("1000000")


def round_to_precision(value: Decimal, precision: int = DECIMAL_PRECISION) -> Decimal:
    """
    Round a value to a fixed number of decimal digits (half-up).

    Args:
        value: Value to round
        precision: Number of decimal digits to keep

    Returns:
        Rounded Decimal
    """
    return Decimal(value).quantize(Decimal(10) ** -precision, rounding=ROUND_HALF_UP)


class OrderAction(Enum):
    """Order direction indicator."""
    BUY = "buy"
    SELL = "sell"


class PortfolioPhase(Enum):
    """Lifecycle of the portfolio state machine."""
    UNINITIALIZED = "UNINITIALIZED"  # Initial allocation not yet consumed
    VALUED = "VALUED"


class MissingPricePolicy(Enum):
    """How revaluation treats a held company absent from a date's records."""
    DROP = "drop"
    CARRY_FORWARD = "carry_forward"
    RAISE = "raise"


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    CONFIG_LOADED = "CONFIG_LOADED"
    RUN_STARTED = "RUN_STARTED"
    COMPANIES_SELECTED = "COMPANIES_SELECTED"
    PORTFOLIO_REVALUED = "PORTFOLIO_REVALUED"
    ORDERS_GENERATED = "ORDERS_GENERATED"
    ORDERS_APPLIED = "ORDERS_APPLIED"
    RUN_COMPLETED = "RUN_COMPLETED"
    RUN_FAILED = "RUN_FAILED"


@dataclass(frozen=True)
class DailyRecord:
    """
    One company's market snapshot for one date.

    Attributes:
        date: Snapshot date
        company: Company name, unique within the date
        market_cap_m: Market capitalization in millions of dollars
        share_price: Share price in dollars
    """
    date: date
    company: str
    market_cap_m: Decimal
    share_price: Decimal


@dataclass(frozen=True)
class WeightedCompany:
    """
    A daily record augmented with its market-cap weight.

    Attributes:
        date: Snapshot date
        company: Company name
        market_cap_m: Market capitalization in millions
        share_price: Share price in dollars
        weight: Market cap over total universe market cap (0-1], rounded
        cumulative_weight: Running sum of weights over the sorted selection
    """
    date: date
    company: str
    market_cap_m: Decimal
    share_price: Decimal
    weight: Decimal
    cumulative_weight: Decimal = Decimal("0")

    @classmethod
    def from_record(cls, record: DailyRecord, weight: Decimal) -> "WeightedCompany":
        """Create a WeightedCompany from a DailyRecord and its weight."""
        return cls(
            date=record.date,
            company=record.company,
            market_cap_m=record.market_cap_m,
            share_price=record.share_price,
            weight=weight,
        )


@dataclass(frozen=True)
class AllocatedCompany:
    """
    A weighted company augmented with its target allocation.

    Attributes:
        date: Snapshot date
        company: Company name
        market_cap_m: Market capitalization in millions
        share_price: Share price in dollars
        weight: Market-cap weight within the full universe
        cumulative_weight: Cumulative weight within the selection
        target_allocation_m: Target value for this company, in millions
    """
    date: date
    company: str
    market_cap_m: Decimal
    share_price: Decimal
    weight: Decimal
    cumulative_weight: Decimal
    target_allocation_m: Decimal

    @classmethod
    def from_weighted(
        cls,
        company: WeightedCompany,
        target_allocation_m: Decimal,
    ) -> "AllocatedCompany":
        """Create an AllocatedCompany from a WeightedCompany."""
        return cls(
            date=company.date,
            company=company.company,
            market_cap_m=company.market_cap_m,
            share_price=company.share_price,
            weight=company.weight,
            cumulative_weight=company.cumulative_weight,
            target_allocation_m=target_allocation_m,
        )


@dataclass(frozen=True)
class Holding:
    """
    A single portfolio position.

    Attributes:
        company: Company name
        num_shares: Whole shares held (never negative)
        share_price: Most recent known price used to value the position
    """
    company: str
    num_shares: int
    share_price: Decimal

    @property
    def market_value(self) -> Decimal:
        """Position value in dollars (num_shares * share_price)."""
        return self.num_shares * self.share_price


@dataclass(frozen=True)
class Order:
    """
    A buy or sell instruction bridging holdings to target allocations.

    Orders are transient: generated fresh each date and consumed
    immediately by the state machine.

    Attributes:
        company: Company name
        num_shares: Magnitude of shares to transact
        share_price: Price used to value the transaction
        action: BUY or SELL
    """
    company: str
    num_shares: int
    share_price: Optional[Decimal]
    action: OrderAction

    def __post_init__(self):
        if self.share_price is None:
            raise MissingPriceError(
                f"Order for {self.company} has no share price"
            )
        if self.num_shares < 0:
            raise ValueError(
                f"Order for {self.company} has negative share count: {self.num_shares}"
            )

    @property
    def value(self) -> Decimal:
        """Order value in dollars."""
        return self.num_shares * self.share_price


@dataclass(frozen=True)
class PortfolioState:
    """
    Immutable snapshot of the portfolio between transitions.

    Attributes:
        date: Date this state represents (None before the first date)
        holdings: Positions, unique by company
        initial_allocation_amount_m: Initial amount, None once consumed
        total_value_m: Portfolio value in millions
        phase: UNINITIALIZED until the initial amount is consumed
        cash_balance_m: Residual cash left by whole-share rounding, in millions.
            Reported only, never part of total_value_m.
    """
    date: Optional[date]
    holdings: tuple[Holding, ...] = ()
    initial_allocation_amount_m: Optional[Decimal] = None
    total_value_m: Decimal = Decimal("0")
    phase: PortfolioPhase = PortfolioPhase.UNINITIALIZED
    cash_balance_m: Decimal = Decimal("0")

    def get_holding(self, company: str) -> Optional[Holding]:
        """Get the holding for a company, if any."""
        for holding in self.holdings:
            if holding.company == company:
                return holding
        return None

    @property
    def companies(self) -> list[str]:
        """Held companies in holding order."""
        return [h.company for h in self.holdings]

    def evolve(self, **changes) -> "PortfolioState":
        """Return a copy of this state with the given fields replaced."""
        return replace(self, **changes)


@dataclass
class RebalanceConfig:
    """
    Engine configuration loaded from YAML.

    Attributes:
        precision: Decimal digits used at every rounding point
        percentile: Cumulative weight threshold for selection (0, 1]
        value_scale: Dollars per unit of portfolio value (1M = millions)
        initial_allocation_amount: Optional initial amount in millions
        missing_price_policy: Treatment of held companies absent from a date
        output_dir: Directory for reports and CSV outputs
        data_dir: Directory searched for market data CSV files
        date_format: strptime format of the CSV date column
    """
    precision: int = DECIMAL_PRECISION
    percentile: Decimal = PERCENTILE_OF_COMPANIES_TO_SELECT
    value_scale: Decimal = VALUE_SCALE
    initial_allocation_amount: Optional[Decimal] = None
    missing_price_policy: MissingPricePolicy = MissingPricePolicy.DROP
    output_dir: str = "output"
    data_dir: str = "data"
    date_format: str = "%d/%m/%Y"


@dataclass
class RebalanceStep:
    """
    Everything computed for one date, handed to the report renderer.

    Attributes:
        date: Rebalancing date
        selected: Companies selected by cumulative weight
        allocations: Target allocations over the selection
        orders: Orders generated to reach the targets
        previous_state: State carried in from the prior date
        valued_state: State after revaluation at this date's prices
        final_state: State after the orders are applied
    """
    date: date
    selected: list[WeightedCompany]
    allocations: list[AllocatedCompany]
    orders: list[Order]
    previous_state: PortfolioState
    valued_state: PortfolioState
    final_state: PortfolioState


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        run_id: Run the action belongs to (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    run_id: Optional[str]
    details: dict = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        run_id: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            run_id=run_id,
            details=details,
        )
