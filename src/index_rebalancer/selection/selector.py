"""
Market-cap weighted company selection.

Computes each company's weight within a date's universe and selects the
heaviest companies until their cumulative weight reaches the percentile
threshold.
"""

from decimal import Decimal

from index_rebalancer.exceptions import EmptyUniverseError
from index_rebalancer.models import (
    DECIMAL_PRECISION,
    PERCENTILE_OF_COMPANIES_TO_SELECT,
    DailyRecord,
    WeightedCompany,
    round_to_precision,
)


def compute_weights(
    records: list[DailyRecord],
    precision: int = DECIMAL_PRECISION,
) -> list[WeightedCompany]:
    """
    Compute market-cap weights for every record of one date.

    Weights are rounded individually, so their sum is only 1.0 within
    one unit at the given precision per company.

    Args:
        records: Company records for a single date
        precision: Decimal digits to round each weight to

    Returns:
        List of WeightedCompany in input order (cumulative_weight unset)

    Raises:
        EmptyUniverseError: If there are no records or total market cap is zero
    """
    if not records:
        raise EmptyUniverseError("No company records provided")

    total_market_cap = sum(r.market_cap_m for r in records)
    if total_market_cap == Decimal("0"):
        raise EmptyUniverseError("Total market cap of the universe is zero")

    return [
        WeightedCompany.from_record(
            record,
            weight=round_to_precision(record.market_cap_m / total_market_cap, precision),
        )
        for record in records
    ]


def select_companies(
    records: list[DailyRecord],
    percentile: Decimal = PERCENTILE_OF_COMPANIES_TO_SELECT,
    precision: int = DECIMAL_PRECISION,
) -> list[WeightedCompany]:
    """
    Select companies by market cap weight up to a percentile threshold.

    Companies are sorted by weight descending (ties keep input order) and
    accumulated until the cumulative weight first reaches the percentile.
    The company that crosses the threshold is included. If rounding keeps
    the cumulative weight below the percentile, the whole universe is
    returned.

    Args:
        records: Company records for a single date
        percentile: Cumulative weight threshold in (0, 1]
        precision: Decimal digits used for weights and cumulative weights

    Returns:
        Selected WeightedCompany list, heaviest first

    Raises:
        EmptyUniverseError: If there are no records or total market cap is zero
        ValueError: If percentile is outside (0, 1]
    """
    percentile = Decimal(str(percentile))
    if not Decimal("0") < percentile <= Decimal("1"):
        raise ValueError(f"percentile must be in (0, 1], got {percentile}")

    weighted = compute_weights(records, precision)

    # sorted() is stable, so equal weights keep their input order
    ranked = sorted(weighted, key=lambda c: c.weight, reverse=True)

    selected = []
    cumulative = Decimal("0")
    for company in ranked:
        cumulative = round_to_precision(cumulative + company.weight, precision)
        selected.append(
            WeightedCompany(
                date=company.date,
                company=company.company,
                market_cap_m=company.market_cap_m,
                share_price=company.share_price,
                weight=company.weight,
                cumulative_weight=cumulative,
            )
        )
        if cumulative >= percentile:
            break

    return selected


def summarize_selection(
    selected: list[WeightedCompany],
    universe_size: int,
) -> dict:
    """
    Summarize a selection for logging and reporting.

    Args:
        selected: Selected companies
        universe_size: Number of companies in the full universe

    Returns:
        Dictionary with selection statistics
    """
    return {
        "universe_size": universe_size,
        "selected_count": len(selected),
        "excluded_count": universe_size - len(selected),
        "cumulative_weight": selected[-1].cumulative_weight if selected else Decimal("0"),
        "companies": [c.company for c in selected],
    }
