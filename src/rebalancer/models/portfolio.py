"""
Fund Ledger
Per-fund holdings state and the structural checks run before any modeling.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Mapping

from rebalancer.errors import ConfigError, ValidationError

logger = logging.getLogger(__name__)

PROPORTION_TOLERANCE = 0.01


@dataclass
class Fund:
    """One asset in the portfolio. `price` is refreshed in place when live prices are requested."""

    symbol: str
    existing_shares: float
    price: float
    target_proportion: float

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> 'Fund':
        """
        Build a fund from a config record.

        Args:
            record: Mapping with 'symbol', 'shares' (or 'existing_shares'),
                optional 'price' and 'target_proportion'

        Returns:
            Fund instance
        """
        if 'symbol' not in record:
            raise ConfigError(f"Fund record missing required key `symbol`: {dict(record)!r}")
        symbol = str(record['symbol'])

        shares = record.get('shares', record.get('existing_shares'))
        if shares is None:
            raise ConfigError(f"Fund {symbol} missing required key `shares`")
        if 'target_proportion' not in record:
            raise ConfigError(f"Fund {symbol} missing required key `target_proportion`")

        return cls(
            symbol=symbol,
            existing_shares=_as_float(shares, f"{symbol}.shares"),
            price=_as_float(record.get('price', 0.0), f"{symbol}.price"),
            target_proportion=_as_float(record['target_proportion'], f"{symbol}.target_proportion"),
        )


@dataclass
class PortfolioConfig:
    """Budget ceiling plus the ordered fund collection."""

    target_buy: float
    funds: List[Fund] = field(default_factory=list)

    @property
    def proportion_sum(self) -> float:
        return sum(f.target_proportion for f in self.funds)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'PortfolioConfig':
        """Build a portfolio from a loaded config mapping."""
        if 'target_buy' not in config:
            raise ConfigError("Missing required config key `target_buy`")
        records = config.get('funds')
        if not isinstance(records, list):
            raise ConfigError("Config key `funds` must be a list of fund records")

        funds = []
        for record in records:
            if not isinstance(record, Mapping):
                raise ConfigError(f"Fund record must be a mapping, got {record!r}")
            funds.append(Fund.from_dict(record))

        return cls(target_buy=_as_float(config['target_buy'], 'target_buy'), funds=funds)


def validate_portfolio(config: PortfolioConfig) -> None:
    """
    Check structural invariants on the ledger.

    Checks run in order: proportions sum to 1.0 within 0.01, every price is
    strictly positive, symbols are unique.

    Raises:
        ValidationError: naming the violated invariant and offending value
    """
    proportion_sum = config.proportion_sum
    # NaN sums fail this comparison too
    if not abs(proportion_sum - 1.0) <= PROPORTION_TOLERANCE:
        raise ValidationError(
            f"expected target proportions to sum to 1.00, got {proportion_sum:g}",
            field='target_proportion',
            value=proportion_sum,
        )

    for f in config.funds:
        # NaN fails this comparison too
        if not f.price > 0:
            raise ValidationError(f"price for {f.symbol} is not positive", field='price', value=f.symbol)

    seen = set()
    for f in config.funds:
        if f.symbol in seen:
            raise ValidationError(f"duplicate fund symbol {f.symbol}", field='symbol', value=f.symbol)
        seen.add(f.symbol)

    logger.debug("Validated %d funds (proportion sum %.4f)", len(config.funds), proportion_sum)


def _as_float(value: Any, key: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config value `{key}` must be numeric, got {value!r}") from e
    if not math.isfinite(result):
        raise ConfigError(f"Config value `{key}` must be finite, got {value!r}")
    return result
