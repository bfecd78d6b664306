"""
Tests for market-cap weighted company selection.
"""

from decimal import Decimal

import pytest

from index_rebalancer.exceptions import EmptyUniverseError
from index_rebalancer.selection.selector import (
    compute_weights,
    select_companies,
    summarize_selection,
)


class TestComputeWeights:
    """Tests for the compute_weights function."""

    def test_weights_rounded_to_precision(self, five_company_records):
        """Test each weight is market cap over total, rounded to 8 digits."""
        weights = {c.company: c.weight for c in compute_weights(five_company_records)}

        assert weights["A"] == Decimal("0.33333333")
        assert weights["B"] == Decimal("0.26666667")
        assert weights["C"] == Decimal("0.2")
        assert weights["D"] == Decimal("0.13333333")
        assert weights["E"] == Decimal("0.06666667")

    def test_weights_sum_to_one_within_tolerance(self, make_records):
        """Test rounded weights sum to 1 within one unit per company."""
        records = make_records([
            ("A", 123.45, 1),
            ("B", 678.9, 1),
            ("C", 0.77, 1),
            ("D", 3, 1),
            ("E", 1999.99, 1),
            ("F", 41, 1),
            ("G", 7.5, 1),
        ])
        weights = compute_weights(records)

        tolerance = Decimal("1E-8") * len(records)
        assert abs(sum(c.weight for c in weights) - Decimal("1")) <= tolerance

    def test_input_order_preserved(self, five_company_records):
        """Test weights are returned in input order."""
        weights = compute_weights(list(reversed(five_company_records)))
        assert [c.company for c in weights] == ["E", "D", "C", "B", "A"]

    def test_empty_universe_raises_error(self):
        """Test that no records raises EmptyUniverseError."""
        with pytest.raises(EmptyUniverseError):
            compute_weights([])

    def test_custom_precision(self, five_company_records):
        """Test weights respect a smaller precision."""
        weights = compute_weights(five_company_records, precision=2)
        assert weights[0].weight == Decimal("0.33")
        assert weights[1].weight == Decimal("0.27")


class TestSelectCompanies:
    """Tests for the select_companies function."""

    def test_selects_up_to_percentile(self, five_company_records):
        """Test 85th percentile selects A-D and excludes E."""
        selected = select_companies(five_company_records, Decimal("0.85"))

        assert [c.company for c in selected] == ["A", "B", "C", "D"]
        assert [c.cumulative_weight for c in selected] == [
            Decimal("0.33333333"),
            Decimal("0.6"),
            Decimal("0.8"),
            Decimal("0.93333333"),
        ]

    def test_last_cumulative_is_first_to_reach_percentile(self, five_company_records):
        """Test only the final company reaches the threshold."""
        percentile = Decimal("0.85")
        selected = select_companies(five_company_records, percentile)

        assert selected[-1].cumulative_weight >= percentile
        assert all(c.cumulative_weight < percentile for c in selected[:-1])

    def test_cumulative_strictly_increasing(self, make_records):
        """Test cumulative weight increases at every step."""
        records = make_records([(f"C{i}", i + 1, 10) for i in range(20)])
        selected = select_companies(records, Decimal("0.95"))

        cumulative = [c.cumulative_weight for c in selected]
        assert all(b > a for a, b in zip(cumulative, cumulative[1:]))

    def test_sorted_by_weight_descending(self, five_company_records):
        """Test selection is heaviest first regardless of input order."""
        selected = select_companies(list(reversed(five_company_records)), Decimal("0.85"))
        assert [c.company for c in selected] == ["A", "B", "C", "D"]

    def test_threshold_crossing_company_included(self, five_company_records):
        """Test a percentile hit exactly stops on that company."""
        selected = select_companies(five_company_records, Decimal("0.6"))
        assert [c.company for c in selected] == ["A", "B"]

    def test_single_dominant_company(self, make_records):
        """Test a company above the percentile on its own is returned alone."""
        records = make_records([("BIG", 900, 10), ("S1", 50, 10), ("S2", 50, 10)])
        selected = select_companies(records, Decimal("0.85"))

        assert len(selected) == 1
        assert selected[0].company == "BIG"
        assert selected[0].weight == Decimal("0.9")

    def test_ties_keep_input_order(self, make_records):
        """Test equal weights are selected in input order."""
        records = make_records([("W", 100, 1), ("X", 100, 1), ("Y", 100, 1), ("Z", 100, 1)])
        selected = select_companies(records, Decimal("0.5"))
        assert [c.company for c in selected] == ["W", "X"]

    def test_full_percentile_returns_whole_universe(self, make_records):
        """Test rounding shortfall below 1.0 returns every company."""
        records = make_records([("A", 1, 1), ("B", 1, 1), ("C", 1, 1)])
        selected = select_companies(records, Decimal("1"))

        assert len(selected) == 3
        assert selected[-1].cumulative_weight == Decimal("0.99999999")

    def test_non_empty_for_non_empty_input(self, make_records):
        """Test a tiny percentile still returns one company."""
        records = make_records([("A", 5, 1), ("B", 5, 1)])
        assert len(select_companies(records, Decimal("0.0001"))) == 1

    def test_float_percentile_accepted(self, five_company_records):
        """Test a float percentile is converted without binary noise."""
        selected = select_companies(five_company_records, 0.85)
        assert len(selected) == 4

    def test_empty_universe_raises_error(self):
        """Test that no records raises EmptyUniverseError."""
        with pytest.raises(EmptyUniverseError):
            select_companies([], Decimal("0.85"))

    @pytest.mark.parametrize("percentile", ["0", "-0.1", "1.5"])
    def test_invalid_percentile_raises_error(self, five_company_records, percentile):
        """Test percentiles outside (0, 1] are rejected."""
        with pytest.raises(ValueError):
            select_companies(five_company_records, Decimal(percentile))


class TestSummarizeSelection:
    """Tests for the summarize_selection function."""

    def test_summary_counts(self, five_company_records):
        """Test selection summary statistics."""
        selected = select_companies(five_company_records, Decimal("0.85"))
        summary = summarize_selection(selected, len(five_company_records))

        assert summary["selected_count"] == 4
        assert summary["excluded_count"] == 1
        assert summary["cumulative_weight"] == Decimal("0.93333333")
        assert summary["companies"] == ["A", "B", "C", "D"]
