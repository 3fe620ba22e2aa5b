"""
Purchase Model Builder
Encodes a validated portfolio and a budget as decision variables, constraints
and a minimization objective over any BaseOptimizer backend.

Objective: sum over funds of |new value - new_total * target_proportion|,
plus the unspent budget (target_buy - total_bought) at equal weight.
Hard constraints: shares_to_buy >= 0 (integer), total_bought < target_buy.
"""

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Dict, Sequence

from rebalancer.models.optimizers.base_optimizer import BaseOptimizer
from rebalancer.models.portfolio import Fund

logger = logging.getLogger(__name__)

TOTAL_BOUGHT = 'total_bought'
TOTAL_EXISTING = 'total_existing'
NEW_TOTAL = 'new_total'
OBJECTIVE = 'objective'
BUDGET_CONSTRAINT = 'budget'

UNDERSPEND_WEIGHT = 1.0


def quantize(value: float) -> Fraction:
    """
    Exact rational for `value` formatted to 3 decimal places.

    Lossy on purpose: 19.4567 and 19.457 both become 19457/1000.
    """
    return Fraction(f"{value:.3f}")


def shares_variable_name(symbol: str) -> str:
    return f"shares_to_buy[{symbol}]"


def deviation_name(symbol: str) -> str:
    return f"deviation[{symbol}]"


@dataclass
class PurchaseModel:
    """Handles to everything the builder put into one optimizer."""

    optimizer: BaseOptimizer
    target_buy: Fraction
    shares_to_buy: Dict[str, Any] = field(default_factory=dict)
    deviations: Dict[str, Any] = field(default_factory=dict)
    total_bought: Any = None
    total_existing: Any = None
    new_total: Any = None
    objective: Any = None


def build_purchase_model(optimizer: BaseOptimizer, funds: Sequence[Fund], target_buy: float) -> PurchaseModel:
    """
    Build the rebalancing problem into `optimizer`.

    Args:
        optimizer: Fresh optimizer instance, owned by this solve
        funds: Validated funds, in output order
        target_buy: Budget ceiling (strict)

    Returns:
        PurchaseModel with the decision variables and derived expressions
    """
    zero = optimizer.constant(Fraction(0))
    budget = quantize(target_buy)
    model = PurchaseModel(optimizer=optimizer, target_buy=budget)

    prices = {f.symbol: quantize(f.price) for f in funds}
    existing = {f.symbol: quantize(f.existing_shares) for f in funds}
    proportions = {f.symbol: quantize(f.target_proportion) for f in funds}

    total_bought = zero
    total_existing = zero
    for f in funds:
        var_name = shares_variable_name(f.symbol)
        var = optimizer.add_variable(var_name, var_type='integer', lb=0)
        optimizer.add_constraint(f"{var_name} >= 0", var, 'ge', Fraction(0))

        price = optimizer.constant(prices[f.symbol])
        total_bought = total_bought + var * price
        total_existing = total_existing + optimizer.constant(existing[f.symbol] * prices[f.symbol])
        model.shares_to_buy[f.symbol] = var
        logger.debug("%s: price=%s shares=%s target=%s",
                     f.symbol, prices[f.symbol], existing[f.symbol], proportions[f.symbol])

    new_total = total_bought + total_existing

    objective = zero
    for f in funds:
        var = model.shares_to_buy[f.symbol]
        new_value = optimizer.constant(prices[f.symbol]) * (var + optimizer.constant(existing[f.symbol]))
        delta_from_ideal = new_value - new_total * optimizer.constant(proportions[f.symbol])
        deviation = optimizer.if_negative(delta_from_ideal, -delta_from_ideal, delta_from_ideal)
        model.deviations[f.symbol] = optimizer.add_expression(deviation_name(f.symbol), deviation)
        objective = objective + deviation

    target = optimizer.constant(budget)
    optimizer.add_constraint(BUDGET_CONSTRAINT, total_bought, 'lt', target)

    # penalty for staying below the budget
    objective = objective + (target - total_bought) * optimizer.constant(quantize(UNDERSPEND_WEIGHT))
    optimizer.set_objective(objective, sense='minimize')

    model.total_bought = optimizer.add_expression(TOTAL_BOUGHT, total_bought)
    model.total_existing = optimizer.add_expression(TOTAL_EXISTING, total_existing)
    model.new_total = optimizer.add_expression(NEW_TOTAL, new_total)
    model.objective = optimizer.add_expression(OBJECTIVE, objective)

    logger.info("Built purchase model: %d funds, budget %s", len(funds), budget)
    return model
