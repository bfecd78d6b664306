"""
Portfolio state machine.

The state moves from UNINITIALIZED to VALUED on the first revaluation,
which consumes the initial allocation amount exactly once. Every
transition returns a new PortfolioState; callers keep the previous value
for reporting.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from index_rebalancer.exceptions import (
    MissingPriceError,
    RebalanceError,
    UnknownAssetError,
)
from index_rebalancer.models import (
    DECIMAL_PRECISION,
    VALUE_SCALE,
    DailyRecord,
    Holding,
    MissingPricePolicy,
    Order,
    OrderAction,
    PortfolioPhase,
    PortfolioState,
    round_to_precision,
)

logger = logging.getLogger(__name__)


def create_initial_state(initial_allocation_amount_m: Decimal) -> PortfolioState:
    """
    Create the state that seeds the date loop.

    Args:
        initial_allocation_amount_m: Amount to deploy on the first date, in millions

    Returns:
        UNINITIALIZED PortfolioState with no holdings

    Raises:
        ValueError: If the amount is not a positive, finite number
    """
    amount = Decimal(str(initial_allocation_amount_m))
    if not amount.is_finite() or amount <= Decimal("0"):
        raise ValueError(
            f"Initial allocation amount must be positive and finite, got {amount}"
        )

    return PortfolioState(
        date=None,
        holdings=(),
        initial_allocation_amount_m=amount,
        total_value_m=Decimal("0"),
        phase=PortfolioPhase.UNINITIALIZED,
    )


def holdings_value(
    holdings: tuple[Holding, ...] | list[Holding],
    value_scale: Decimal = VALUE_SCALE,
    precision: int = DECIMAL_PRECISION,
) -> Decimal:
    """
    Value holdings at their own share prices.

    Args:
        holdings: Positions to value
        value_scale: Dollars per unit of portfolio value
        precision: Decimal digits to round the total to

    Returns:
        Total value in portfolio units
    """
    total = sum((h.market_value for h in holdings), Decimal("0"))
    return round_to_precision(total / value_scale, precision)


def revalue(
    state: PortfolioState,
    valuation_date: date,
    records: list[DailyRecord],
    precision: int = DECIMAL_PRECISION,
    value_scale: Decimal = VALUE_SCALE,
    missing_price_policy: MissingPricePolicy = MissingPricePolicy.DROP,
) -> PortfolioState:
    """
    Revalue the portfolio at a new date's prices.

    The first call on an UNINITIALIZED state with an initial amount
    consumes that amount as the total value. Later calls value each
    holding at the date's share price and refresh the holding's price.

    Args:
        state: Current portfolio state
        valuation_date: Date being processed
        records: Market records for the date
        precision: Decimal digits to round the total value to
        value_scale: Dollars per unit of portfolio value
        missing_price_policy: Treatment of held companies absent from records

    Returns:
        New VALUED PortfolioState

    Raises:
        MissingPriceError: If a holding has no price and the policy is RAISE
    """
    if (
        state.phase == PortfolioPhase.UNINITIALIZED
        and state.initial_allocation_amount_m is not None
    ):
        amount = state.initial_allocation_amount_m
        return state.evolve(
            date=valuation_date,
            initial_allocation_amount_m=None,
            total_value_m=amount,
            phase=PortfolioPhase.VALUED,
            cash_balance_m=state.cash_balance_m + amount,
        )

    prices = {r.company: r.share_price for r in records}

    revalued = []
    valued_holdings = []
    missing = []
    for holding in state.holdings:
        price = prices.get(holding.company)
        if price is None:
            if missing_price_policy == MissingPricePolicy.RAISE:
                raise MissingPriceError(
                    f"No price for held company {holding.company} on {valuation_date}"
                )
            missing.append(holding.company)
            revalued.append(holding)
            if missing_price_policy == MissingPricePolicy.CARRY_FORWARD:
                valued_holdings.append(holding)
            continue

        current = Holding(
            company=holding.company,
            num_shares=holding.num_shares,
            share_price=price,
        )
        revalued.append(current)
        valued_holdings.append(current)

    if missing:
        if missing_price_policy == MissingPricePolicy.DROP:
            logger.warning(
                f"{valuation_date}: held companies missing from records excluded "
                f"from total value: {missing}"
            )
        else:
            logger.info(
                f"{valuation_date}: carrying forward last known price for {missing}"
            )

    return state.evolve(
        date=valuation_date,
        holdings=tuple(revalued),
        total_value_m=holdings_value(valued_holdings, value_scale, precision),
        phase=PortfolioPhase.VALUED,
    )


def apply_orders(
    state: PortfolioState,
    orders: list[Order],
    precision: int = DECIMAL_PRECISION,
    value_scale: Decimal = VALUE_SCALE,
) -> PortfolioState:
    """
    Apply orders to the holdings and recompute the total value.

    Buys of unheld companies open a new holding. Every order overwrites the
    holding's share price with the order price. Holdings sold down to zero
    shares are kept as zero-share positions.

    Args:
        state: VALUED portfolio state
        orders: Orders to apply, in order
        precision: Decimal digits to round values to
        value_scale: Dollars per unit of portfolio value

    Returns:
        New PortfolioState after the orders

    Raises:
        UnknownAssetError: If a sell targets a company that is not held
        MissingPriceError: If an order has no share price
        RebalanceError: If a sell exceeds the shares held
    """
    holdings: dict[str, Holding] = {h.company: h for h in state.holdings}
    cash_flow = Decimal("0")

    for order in orders:
        if order.share_price is None:
            raise MissingPriceError(f"Order for {order.company} has no share price")

        holding: Optional[Holding] = holdings.get(order.company)

        if holding is None:
            if order.action != OrderAction.BUY:
                raise UnknownAssetError(
                    f"Asset {order.company} not found in portfolio. Unable to sell shares."
                )
            holdings[order.company] = Holding(
                company=order.company,
                num_shares=order.num_shares,
                share_price=order.share_price,
            )
            cash_flow -= order.value
            continue

        if order.action == OrderAction.BUY:
            num_shares = holding.num_shares + order.num_shares
            cash_flow -= order.value
        else:
            num_shares = holding.num_shares - order.num_shares
            if num_shares < 0:
                raise RebalanceError(
                    f"Cannot sell {order.num_shares} shares of {order.company}, "
                    f"only {holding.num_shares} held"
                )
            cash_flow += order.value

        holdings[order.company] = Holding(
            company=order.company,
            num_shares=num_shares,
            share_price=order.share_price,
        )

    new_holdings = tuple(holdings.values())

    return state.evolve(
        holdings=new_holdings,
        total_value_m=holdings_value(new_holdings, value_scale, precision),
        cash_balance_m=round_to_precision(
            state.cash_balance_m + cash_flow / value_scale, precision
        ),
    )
