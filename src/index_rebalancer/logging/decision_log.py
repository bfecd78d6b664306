"""
Append-only decision logging for the index rebalancer.

Every step of a rebalancing run is logged with a timestamp so a run's
selections, valuations and orders can be audited and reproduced.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from index_rebalancer.models import (
    ActionType,
    DecisionLogEntry,
    Order,
    OrderAction,
    PortfolioState,
    RebalanceConfig,
    WeightedCompany,
)
from index_rebalancer.selection.selector import summarize_selection


class DecisionLogger:
    """
    Audit trail of a rebalancing run, one JSON object per line.

    Lines are only ever appended; a run can be replayed from its
    RUN_STARTED entry through RUN_COMPLETED or RUN_FAILED.
    """

    def __init__(self, log_path: str | Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: DecisionLogEntry) -> None:
        """Append one entry to the log file."""
        line = json.dumps(
            {
                "timestamp": entry.timestamp,
                "action_type": entry.action_type.value,
                "run_id": entry.run_id,
                "details": entry.details,
            },
            cls=DecimalEncoder,
        )
        with open(self.log_path, "a") as log_file:
            log_file.write(line + "\n")

    def log_config_loaded(
        self,
        config: RebalanceConfig,
        config_path: Optional[str],
    ) -> None:
        """Log configuration loading."""
        details = {
            "config_path": config_path,
            "precision": config.precision,
            "percentile": str(config.percentile),
            "value_scale": str(config.value_scale),
            "missing_price_policy": config.missing_price_policy.value,
            "output_dir": config.output_dir,
        }
        self.log(DecisionLogEntry.create(ActionType.CONFIG_LOADED, None, details))

    def log_run_started(
        self,
        run_id: str,
        initial_allocation_amount_m: Decimal,
        num_dates: int,
    ) -> None:
        """Log the start of a rebalancing run."""
        details = {
            "initial_allocation_amount_m": str(initial_allocation_amount_m),
            "num_dates": num_dates,
        }
        self.log(DecisionLogEntry.create(ActionType.RUN_STARTED, run_id, details))

    def log_companies_selected(
        self,
        run_id: str,
        rebalance_date: date,
        selected: list[WeightedCompany],
        universe_size: int,
        percentile: Decimal,
    ) -> None:
        """
        Log the selection for one date.

        Args:
            run_id: Run identifier
            rebalance_date: Date processed
            selected: Selected companies
            universe_size: Number of companies available on the date
            percentile: Threshold used
        """
        summary = summarize_selection(selected, universe_size)
        details = {
            "date": rebalance_date.isoformat(),
            "percentile": str(percentile),
            "universe_size": summary["universe_size"],
            "selected_count": summary["selected_count"],
            "excluded_count": summary["excluded_count"],
            "cumulative_weight": str(summary["cumulative_weight"]),
            "companies": summary["companies"][:10],
        }
        self.log(DecisionLogEntry.create(ActionType.COMPANIES_SELECTED, run_id, details))

    def log_portfolio_revalued(
        self,
        run_id: str,
        previous: PortfolioState,
        valued: PortfolioState,
    ) -> None:
        """Log a revaluation transition."""
        details = {
            "date": valued.date.isoformat() if valued.date else None,
            "previous_total_value_m": str(previous.total_value_m),
            "total_value_m": str(valued.total_value_m),
            "bootstrap": previous.initial_allocation_amount_m is not None
            and valued.initial_allocation_amount_m is None,
            "num_holdings": len(valued.holdings),
        }
        self.log(DecisionLogEntry.create(ActionType.PORTFOLIO_REVALUED, run_id, details))

    def log_orders_generated(
        self,
        run_id: str,
        rebalance_date: date,
        orders: list[Order],
        summary: dict,
    ) -> None:
        """
        Log order generation.

        Args:
            run_id: Run identifier
            rebalance_date: Date processed
            orders: Generated orders
            summary: Output of calculate_order_summary
        """
        details = {
            "date": rebalance_date.isoformat(),
            "total_orders": summary["total_orders"],
            "buy_count": summary["buy_count"],
            "sell_count": summary["sell_count"],
            "total_buy_value": str(summary["total_buy_value"]),
            "total_sell_value": str(summary["total_sell_value"]),
            "net_cash_flow": str(summary["net_cash_flow"]),
            "sells": [
                o.company for o in orders
                if o.action == OrderAction.SELL and o.num_shares > 0
            ][:10],
        }
        self.log(DecisionLogEntry.create(ActionType.ORDERS_GENERATED, run_id, details))

    def log_orders_applied(
        self,
        run_id: str,
        state: PortfolioState,
    ) -> None:
        """Log the state after order application."""
        details = {
            "date": state.date.isoformat() if state.date else None,
            "total_value_m": str(state.total_value_m),
            "cash_balance_m": str(state.cash_balance_m),
            "num_holdings": len(state.holdings),
            "zero_share_holdings": [h.company for h in state.holdings if h.num_shares == 0],
        }
        self.log(DecisionLogEntry.create(ActionType.ORDERS_APPLIED, run_id, details))

    def log_run_completed(
        self,
        run_id: str,
        state: PortfolioState,
        num_dates: int,
    ) -> None:
        """Log the end of a successful run."""
        details = {
            "num_dates": num_dates,
            "final_date": state.date.isoformat() if state.date else None,
            "final_total_value_m": str(state.total_value_m),
            "final_cash_balance_m": str(state.cash_balance_m),
        }
        self.log(DecisionLogEntry.create(ActionType.RUN_COMPLETED, run_id, details))

    def log_run_failed(
        self,
        run_id: str,
        failed_date: Optional[date],
        error: Exception,
    ) -> None:
        """Log a run that halted on an error."""
        details = {
            "date": failed_date.isoformat() if failed_date else None,
            "error_type": type(error).__name__,
            "error": str(error),
        }
        self.log(DecisionLogEntry.create(ActionType.RUN_FAILED, run_id, details))

    def read_log(self) -> list[DecisionLogEntry]:
        """Read every entry back, oldest first. A missing file reads as empty."""
        if not self.log_path.exists():
            return []

        with open(self.log_path, "r") as log_file:
            return [_entry_from_record(json.loads(line)) for line in log_file if line.strip()]

    def filter_entries(
        self,
        run_id: Optional[str] = None,
        action_type: Optional[ActionType] = None,
    ) -> list[DecisionLogEntry]:
        """
        Select entries by run and/or action type.

        Args:
            run_id: Keep only entries of this run
            action_type: Keep only entries of this type

        Returns:
            Matching entries in log order
        """
        return [
            e for e in self.read_log()
            if (run_id is None or e.run_id == run_id)
            and (action_type is None or e.action_type == action_type)
        ]

    def filter_by_run(self, run_id: str) -> list[DecisionLogEntry]:
        return self.filter_entries(run_id=run_id)

    def filter_by_action_type(self, action_type: ActionType) -> list[DecisionLogEntry]:
        return self.filter_entries(action_type=action_type)


def _entry_from_record(record: dict) -> DecisionLogEntry:
    return DecisionLogEntry(
        timestamp=datetime.fromisoformat(record["timestamp"]),
        action_type=ActionType(record["action_type"]),
        run_id=record.get("run_id"),
        details=record.get("details", {}),
    )


class DecimalEncoder(json.JSONEncoder):
    """Serializes Decimals as exact strings and dates as ISO 8601."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


_decision_logger: Optional[DecisionLogger] = None

DEFAULT_LOG_PATH = Path("output") / "decision_log.jsonl"


def get_logger(log_path: Optional[str | Path] = None) -> DecisionLogger:
    """
    Return the process-wide decision logger.

    Passing a path (re)binds the logger to that file; the CLI does this
    once per run so the log lands in the run's output directory.

    Args:
        log_path: Log file to bind to

    Returns:
        DecisionLogger instance
    """
    global _decision_logger

    if log_path is not None:
        _decision_logger = DecisionLogger(log_path)
    elif _decision_logger is None:
        _decision_logger = DecisionLogger(DEFAULT_LOG_PATH)

    return _decision_logger
