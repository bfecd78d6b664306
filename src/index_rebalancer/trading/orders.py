"""
Rebalance order generation for the index rebalancer.

This module diffs current holdings against target allocations:
- Held but no longer targeted: sell the whole position
- Held and targeted: buy or sell the difference
- Targeted but not held: buy the full allocation

Share counts are always rounded down, so orders never overspend and
never oversell. The unspent remainder stays as residual cash.
"""

from decimal import Decimal, ROUND_DOWN

from index_rebalancer.models import (
    VALUE_SCALE,
    AllocatedCompany,
    Holding,
    Order,
    OrderAction,
)


def shares_for_value(value: Decimal, share_price: Decimal) -> int:
    """
    Whole shares purchasable with a dollar value, rounded down.

    Args:
        value: Dollar amount (non-negative)
        share_price: Price per share

    Returns:
        Number of whole shares
    """
    return int((value / share_price).to_integral_value(rounding=ROUND_DOWN))


def generate_rebalance_orders(
    current_holdings: tuple[Holding, ...] | list[Holding],
    target_allocations: list[AllocatedCompany],
    value_scale: Decimal = VALUE_SCALE,
) -> list[Order]:
    """
    Generate the orders that move current holdings toward target allocations.

    Holdings are visited first in their existing order, then allocations
    in theirs, so output is deterministic. An order is emitted for every
    held-and-targeted company even when the delta rounds to zero shares.

    Args:
        current_holdings: Current positions
        target_allocations: Target allocations for the date
        value_scale: Dollars per unit of allocation amount

    Returns:
        List of orders to execute
    """
    orders = []
    targets = {a.company: a for a in target_allocations}
    held = {h.company for h in current_holdings}

    for holding in current_holdings:
        target = targets.get(holding.company)

        if target is None:
            # No target price exists, so liquidate at the last known price
            orders.append(
                Order(
                    company=holding.company,
                    num_shares=holding.num_shares,
                    share_price=holding.share_price,
                    action=OrderAction.SELL,
                )
            )
            continue

        price = target.share_price
        current_value = holding.num_shares * price
        target_value = target.target_allocation_m * value_scale
        delta = target_value - current_value

        orders.append(
            Order(
                company=holding.company,
                num_shares=shares_for_value(abs(delta), price),
                share_price=price,
                action=OrderAction.BUY if delta > 0 else OrderAction.SELL,
            )
        )

    for target in target_allocations:
        if target.company in held:
            continue

        orders.append(
            Order(
                company=target.company,
                num_shares=shares_for_value(
                    target.target_allocation_m * value_scale, target.share_price
                ),
                share_price=target.share_price,
                action=OrderAction.BUY,
            )
        )

    return orders


def calculate_order_summary(
    orders: list[Order],
    value_scale: Decimal = VALUE_SCALE,
) -> dict:
    """
    Calculate summary statistics for a set of orders.

    Values are expressed in portfolio units (value_scale dollars).

    Args:
        orders: List of orders
        value_scale: Dollars per unit of portfolio value

    Returns:
        Dictionary with summary statistics
    """
    buys = [o for o in orders if o.action == OrderAction.BUY]
    sells = [o for o in orders if o.action == OrderAction.SELL]

    total_buy_value = sum((o.value for o in buys), Decimal("0")) / value_scale
    total_sell_value = sum((o.value for o in sells), Decimal("0")) / value_scale

    return {
        "total_orders": len(orders),
        "buy_count": len(buys),
        "sell_count": len(sells),
        "zero_share_count": len([o for o in orders if o.num_shares == 0]),
        "total_buy_value": total_buy_value,
        "total_sell_value": total_sell_value,
        "net_cash_flow": total_sell_value - total_buy_value,
    }


def validate_orders(
    orders: list[Order],
    holdings: tuple[Holding, ...] | list[Holding],
) -> list[str]:
    """
    Validate orders against current holdings.

    Args:
        orders: Orders to check
        holdings: Holdings the orders will be applied to

    Returns:
        List of validation warning messages
    """
    warnings = []
    shares_by_company = {h.company: h.num_shares for h in holdings}

    for order in orders:
        if order.action != OrderAction.SELL:
            continue

        if order.company not in shares_by_company:
            warnings.append(f"Sell order for {order.company} which is not held")
            continue

        if order.num_shares > shares_by_company[order.company]:
            warnings.append(
                f"Sell order for {order.company} ({order.num_shares} shares) "
                f"exceeds current holdings ({shares_by_company[order.company]} shares)"
            )

    companies = [o.company for o in orders]
    duplicates = sorted({c for c in companies if companies.count(c) > 1})
    for company in duplicates:
        warnings.append(f"Multiple orders for same company: {company}")

    return warnings
