"""
Result Extractor
Reads purchase recommendations out of a solved model.
"""

from dataclasses import asdict, dataclass, field
from fractions import Fraction
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from rebalancer.errors import EvaluationError
from rebalancer.models.optimizers.base_optimizer import Number, SolvedModel
from rebalancer.models.portfolio import Fund
from rebalancer.models.purchase_model import NEW_TOTAL, shares_variable_name


@dataclass(frozen=True)
class FundPurchase:
    symbol: str
    optimal_shares: int
    purchase_amount: float
    new_proportion: float
    price: float
    existing_shares: float
    target_proportion: float

    @property
    def deviation(self) -> float:
        """Signed distance of the new proportion from the target."""
        return self.new_proportion - self.target_proportion


@dataclass(frozen=True)
class RebalancePlan:
    purchases: List[FundPurchase]
    total_purchase: float
    new_portfolio_total: float
    target_buy: Optional[float] = None
    objective_value: Optional[float] = None
    solver: Optional[str] = None
    solver_time: float = 0.0
    prices: Dict[str, float] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [asdict(p) for p in self.purchases],
            columns=['symbol', 'optimal_shares', 'purchase_amount', 'new_proportion',
                     'price', 'existing_shares', 'target_proportion'],
        )

    def max_abs_deviation(self) -> float:
        if not self.purchases:
            return 0.0
        return float(np.max(np.abs([p.deviation for p in self.purchases])))

    def summary(self) -> Dict[str, Any]:
        return {
            'total_purchase': self.total_purchase,
            'new_portfolio_total': self.new_portfolio_total,
            'target_buy': self.target_buy,
            'unspent': None if self.target_buy is None else self.target_buy - self.total_purchase,
            'objective_value': self.objective_value,
            'max_abs_deviation': self.max_abs_deviation(),
            'solver': self.solver,
            'solver_time': self.solver_time,
        }


def optimal_shares(solved: SolvedModel, fund: Fund) -> int:
    """Integer shares to buy for `fund`; raises EvaluationError when the model has no value."""
    value = solved.evaluate(shares_variable_name(fund.symbol))
    if value is None:
        raise EvaluationError(fund.symbol)
    if isinstance(value, float):
        # floating point backends land within tolerance of the integer
        return int(round(value))
    value = Fraction(value)
    if value.denominator != 1:
        raise EvaluationError(fund.symbol)
    return int(value)


def new_portfolio_total(solved: SolvedModel) -> Optional[float]:
    value = solved.evaluate(NEW_TOTAL)
    if value is None:
        return None
    return _to_float(value)


def extract_plan(solved: SolvedModel, funds: Sequence[Fund],
                 target_buy: Optional[float] = None) -> RebalancePlan:
    """
    Compute per-fund recommendations from a solved model.

    Args:
        solved: Snapshot returned by the optimizer
        funds: Funds in the order they were modeled
        target_buy: Budget, recorded on the plan

    Returns:
        RebalancePlan in fund order
    """
    purchases = []
    total = None
    for fund in funds:
        shares = optimal_shares(solved, fund)
        if total is None:
            total = new_portfolio_total(solved)
            if total is None:
                raise EvaluationError(fund.symbol, 'new_portfolio_total')
        new_value = (shares + fund.existing_shares) * fund.price
        purchases.append(FundPurchase(
            symbol=fund.symbol,
            optimal_shares=shares,
            purchase_amount=fund.price * shares,
            # empty portfolio (nothing held, nothing affordable)
            new_proportion=new_value / total if total else 0.0,
            price=fund.price,
            existing_shares=fund.existing_shares,
            target_proportion=fund.target_proportion,
        ))

    if total is None:
        total = new_portfolio_total(solved) or 0.0

    objective = solved.objective_value
    return RebalancePlan(
        purchases=purchases,
        total_purchase=sum(p.purchase_amount for p in purchases),
        new_portfolio_total=total,
        target_buy=target_buy,
        objective_value=None if objective is None else _to_float(objective),
        solver=solved.solver,
        solver_time=solved.solver_time,
        prices={f.symbol: f.price for f in funds},
    )


def _to_float(value: Number) -> float:
    if isinstance(value, Fraction):
        return value.numerator / value.denominator
    return float(value)
