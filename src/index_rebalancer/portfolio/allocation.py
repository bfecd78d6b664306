"""
Target allocation of portfolio value across selected companies.

The selected weights only sum to roughly the selection percentile, so they
are renormalized over the selection before the portfolio value is split.
"""

from decimal import Decimal

from index_rebalancer.exceptions import EmptyUniverseError
from index_rebalancer.models import (
    DECIMAL_PRECISION,
    AllocatedCompany,
    WeightedCompany,
    round_to_precision,
)


def allocate(
    selected: list[WeightedCompany],
    total_value_m: Decimal,
    precision: int = DECIMAL_PRECISION,
) -> list[AllocatedCompany]:
    """
    Compute each selected company's target allocation.

    Args:
        selected: Companies selected for the portfolio
        total_value_m: Total portfolio value to deploy, in millions
        precision: Decimal digits to round each allocation to

    Returns:
        List of AllocatedCompany in selection order

    Raises:
        EmptyUniverseError: If selection is empty or its total weight is zero
    """
    if not selected:
        raise EmptyUniverseError("No selected companies to allocate to")

    total_selected_weight = sum(c.weight for c in selected)
    if total_selected_weight == Decimal("0"):
        raise EmptyUniverseError("Total weight of selected companies is zero")

    return [
        AllocatedCompany.from_weighted(
            company,
            target_allocation_m=round_to_precision(
                (company.weight / total_selected_weight) * total_value_m,
                precision,
            ),
        )
        for company in selected
    ]


def allocation_shortfall(
    allocations: list[AllocatedCompany],
    total_value_m: Decimal,
) -> Decimal:
    """
    Difference between the portfolio value and the sum of allocations.

    Bounded by one unit at the rounding precision per company.

    Args:
        allocations: Computed allocations
        total_value_m: Portfolio value that was allocated

    Returns:
        total_value_m minus the allocated total
    """
    return total_value_m - sum(a.target_allocation_m for a in allocations)
