"""
Rebalancing engine for the index rebalancer.

Drives the date loop: for each date, select companies, revalue the
portfolio at the date's prices, allocate the portfolio value, generate
orders and apply them. The resulting state seeds the next date.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

import pandas as pd

from index_rebalancer.exceptions import RebalanceError
from index_rebalancer.logging.decision_log import DecisionLogger
from index_rebalancer.models import (
    DailyRecord,
    PortfolioState,
    RebalanceConfig,
    RebalanceStep,
)
from index_rebalancer.portfolio.allocation import allocate, allocation_shortfall
from index_rebalancer.portfolio.state import apply_orders, create_initial_state, revalue
from index_rebalancer.selection.selector import select_companies
from index_rebalancer.trading.orders import (
    calculate_order_summary,
    generate_rebalance_orders,
    validate_orders,
)

logger = logging.getLogger(__name__)


class RebalanceResult:
    """Container for the results of a rebalancing run."""

    def __init__(
        self,
        run_id: str,
        config: RebalanceConfig,
        initial_allocation_amount_m: Decimal,
        steps: list[RebalanceStep],
    ):
        self.run_id = run_id
        self.config = config
        self.initial_allocation_amount_m = initial_allocation_amount_m
        self.steps = steps

    @property
    def final_state(self) -> Optional[PortfolioState]:
        return self.steps[-1].final_state if self.steps else None

    @property
    def final_value(self) -> Decimal:
        if self.steps:
            return self.steps[-1].final_state.total_value_m
        return self.initial_allocation_amount_m

    @property
    def total_orders(self) -> int:
        return sum(len(step.orders) for step in self.steps)

    def steps_to_dataframe(self) -> pd.DataFrame:
        """Convert per-date results to a DataFrame."""
        records = []
        for step in self.steps:
            summary = calculate_order_summary(step.orders, self.config.value_scale)
            records.append({
                "date": step.date,
                "selected_count": len(step.selected),
                "valued_total_m": float(step.valued_state.total_value_m),
                "final_total_m": float(step.final_state.total_value_m),
                "cash_balance_m": float(step.final_state.cash_balance_m),
                "buy_count": summary["buy_count"],
                "sell_count": summary["sell_count"],
                "net_cash_flow_m": float(summary["net_cash_flow"]),
            })
        return pd.DataFrame(records)


class RebalanceEngine:
    """
    Core rebalancing engine.

    Single-threaded and synchronous: one date is fully processed before
    the next begins, since each date depends on the previous holdings.
    """

    def __init__(
        self,
        config: Optional[RebalanceConfig] = None,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        """
        Initialize rebalancing engine.

        Args:
            config: Engine configuration (uses defaults if None)
            decision_logger: Optional audit logger
        """
        self.config = config or RebalanceConfig()
        self.decision_logger = decision_logger

    def process_date(
        self,
        state: PortfolioState,
        rebalance_date: date,
        records: list[DailyRecord],
        run_id: Optional[str] = None,
    ) -> RebalanceStep:
        """
        Run one full rebalance for a single date.

        Args:
            state: State carried in from the previous date
            rebalance_date: Date being processed
            records: Validated market records for the date
            run_id: Run identifier for the decision log

        Returns:
            RebalanceStep with selection, allocations, orders and states
        """
        config = self.config

        # Selection does not depend on portfolio state
        selected = select_companies(records, config.percentile, config.precision)

        valued = revalue(
            state,
            rebalance_date,
            records,
            precision=config.precision,
            value_scale=config.value_scale,
            missing_price_policy=config.missing_price_policy,
        )

        allocations = allocate(selected, valued.total_value_m, config.precision)
        logger.debug(
            f"{rebalance_date}: allocation shortfall "
            f"{allocation_shortfall(allocations, valued.total_value_m)}M"
        )

        orders = generate_rebalance_orders(
            valued.holdings, allocations, config.value_scale
        )
        for warning in validate_orders(orders, valued.holdings):
            logger.warning(f"{rebalance_date}: {warning}")

        final = apply_orders(
            valued, orders, precision=config.precision, value_scale=config.value_scale
        )

        logger.debug(
            f"{rebalance_date}: selected {len(selected)}/{len(records)} companies, "
            f"{len(orders)} orders, value {valued.total_value_m}M -> {final.total_value_m}M"
        )

        if self.decision_logger:
            summary = calculate_order_summary(orders, config.value_scale)
            self.decision_logger.log_companies_selected(
                run_id, rebalance_date, selected, len(records), config.percentile
            )
            self.decision_logger.log_portfolio_revalued(run_id, state, valued)
            self.decision_logger.log_orders_generated(run_id, rebalance_date, orders, summary)
            self.decision_logger.log_orders_applied(run_id, final)

        return RebalanceStep(
            date=rebalance_date,
            selected=selected,
            allocations=allocations,
            orders=orders,
            previous_state=state,
            valued_state=valued,
            final_state=final,
        )

    def run(
        self,
        market_data: list[tuple[date, list[DailyRecord]]],
        initial_allocation_amount_m: Decimal,
        progress_callback: Optional[Callable[[RebalanceStep], None]] = None,
    ) -> RebalanceResult:
        """
        Run the rebalancing loop over an ordered sequence of dates.

        Args:
            market_data: (date, records) pairs, strictly increasing by date
            initial_allocation_amount_m: Amount deployed on the first date, in millions
            progress_callback: Optional callback invoked with each completed step

        Returns:
            RebalanceResult with one step per date

        Raises:
            ValueError: If dates are not strictly increasing
            RebalanceError: On the first unrecoverable error; no date is skipped
        """
        dates = [d for d, _ in market_data]
        if any(later <= earlier for earlier, later in zip(dates, dates[1:])):
            raise ValueError("Market data dates must be strictly increasing")

        run_id = f"rebalance_{uuid.uuid4().hex[:8]}"
        state = create_initial_state(initial_allocation_amount_m)

        logger.info(
            f"Starting run {run_id}: {len(market_data)} dates, "
            f"initial allocation {initial_allocation_amount_m}M"
        )
        if self.decision_logger:
            self.decision_logger.log_run_started(
                run_id, state.initial_allocation_amount_m, len(market_data)
            )

        steps = []
        current_date = None
        try:
            for current_date, records in market_data:
                step = self.process_date(state, current_date, records, run_id)
                steps.append(step)
                state = step.final_state
                if progress_callback:
                    progress_callback(step)
        except RebalanceError as e:
            logger.error(f"Run {run_id} halted on {current_date}: {e}")
            if self.decision_logger:
                self.decision_logger.log_run_failed(run_id, current_date, e)
            raise

        if self.decision_logger:
            self.decision_logger.log_run_completed(run_id, state, len(steps))
        logger.info(f"Run {run_id} complete: final value {state.total_value_m}M")

        return RebalanceResult(
            run_id=run_id,
            config=self.config,
            initial_allocation_amount_m=Decimal(str(initial_allocation_amount_m)),
            steps=steps,
        )
