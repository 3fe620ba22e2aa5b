"""
Rebalancer Errors
Exception taxonomy shared by the loader, validator, optimizers and extractor.
"""

from typing import Any, Optional


class RebalanceError(Exception):
    """Base class for every failure that aborts a rebalance run."""


class ConfigError(RebalanceError, ValueError):
    """Configuration file is missing, unreadable or structurally wrong."""


class ValidationError(RebalanceError, ValueError):
    """
    A portfolio invariant does not hold.

    Args:
        message: Human readable description
        field: Name of the violated field ('target_proportion', 'price', 'symbol')
        value: Offending value (the actual sum, or the offending symbol)
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class NoSolutionError(RebalanceError):
    """The optimizer returned no solved model (infeasible, timeout or solver error)."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class EvaluationError(RebalanceError):
    """A solved model exists but a quantity could not be read from it."""

    def __init__(self, symbol: Optional[str], quantity: str = 'optimal_shares'):
        self.symbol = symbol
        self.quantity = quantity
        if symbol is None:
            message = f"failed to evaluate {quantity}"
        else:
            message = f"failed to evaluate {quantity} for {symbol}"
        super().__init__(message)


class PriceLookupError(RebalanceError):
    """No current price could be retrieved for a symbol."""

    def __init__(self, symbol: str, reason: str):
        super().__init__(f"price lookup for {symbol} failed: {reason}")
        self.symbol = symbol
        self.reason = reason
