"""
Exception hierarchy for the index rebalancing engine.

Core errors are unrecoverable for the current run: the computation is
deterministic, so the date loop halts rather than skipping a date.
"""


class RebalanceError(Exception):
    """Base exception for all index rebalancer errors."""
    pass


class EmptyUniverseError(RebalanceError):
    """
    Raised when selection or allocation has nothing to work with.

    Examples:
        - No records for a date
        - Total market cap of the universe is zero
        - Total weight of the selected companies is zero
    """
    pass


class UnknownAssetError(RebalanceError):
    """Raised when a sell order targets a company that is not held."""
    pass


class MissingPriceError(RebalanceError):
    """Raised when an order or a held position has no resolvable share price."""
    pass


class ConfigurationError(RebalanceError):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


class DataLoadError(RebalanceError):
    """Raised when market data cannot be loaded or is invalid."""
    pass
