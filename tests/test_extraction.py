from __future__ import annotations

from fractions import Fraction

import pytest
from rebalancer.errors import EvaluationError
from rebalancer.models.extraction import extract_plan, new_portfolio_total, optimal_shares
from rebalancer.models.optimizers.base_optimizer import SolvedModel
from rebalancer.models.portfolio import Fund
from rebalancer.models.purchase_model import NEW_TOTAL, shares_variable_name

FUNDS = [Fund("A", 5.0, 10.0, 0.6), Fund("B", 2.0, 25.5, 0.4)]


def _solved(**overrides) -> SolvedModel:
    values = {
        shares_variable_name("A"): 3,
        shares_variable_name("B"): 0,
        NEW_TOTAL: Fraction(131),
    }
    values.update(overrides)
    return SolvedModel(values=values, objective_value=Fraction(7, 2), solver="z3", solver_time=0.25)


def test_extract_plan_computes_per_fund_purchases() -> None:
    plan = extract_plan(_solved(), FUNDS, target_buy=40.0)

    a, b = plan.purchases
    assert (a.symbol, a.optimal_shares, a.purchase_amount) == ("A", 3, 30.0)
    assert (b.symbol, b.optimal_shares, b.purchase_amount) == ("B", 0, 0.0)
    assert a.new_proportion == pytest.approx(80 / 131)
    assert b.new_proportion == pytest.approx(51 / 131)
    assert plan.total_purchase == 30.0
    assert plan.new_portfolio_total == 131.0
    assert plan.objective_value == 3.5
    assert plan.solver == "z3"
    assert plan.prices == {"A": 10.0, "B": 25.5}


def test_plan_summary_and_frame() -> None:
    plan = extract_plan(_solved(), FUNDS, target_buy=40.0)

    summary = plan.summary()
    assert summary["unspent"] == 10.0
    assert summary["max_abs_deviation"] == pytest.approx(abs(80 / 131 - 0.6))

    frame = plan.to_frame()
    assert list(frame["symbol"]) == ["A", "B"]
    assert list(frame["optimal_shares"]) == [3, 0]


def test_missing_share_value_names_the_fund() -> None:
    solved = SolvedModel(values={shares_variable_name("A"): 3, NEW_TOTAL: Fraction(131)})

    with pytest.raises(EvaluationError) as excinfo:
        extract_plan(solved, FUNDS)

    assert excinfo.value.symbol == "B"
    assert excinfo.value.quantity == "optimal_shares"


def test_missing_portfolio_total_fails_new_proportion() -> None:
    solved = SolvedModel(values={shares_variable_name("A"): 3, shares_variable_name("B"): 0})

    with pytest.raises(EvaluationError) as excinfo:
        extract_plan(solved, FUNDS)

    assert excinfo.value.symbol == "A"
    assert excinfo.value.quantity == "new_portfolio_total"
    assert new_portfolio_total(solved) is None


def test_share_values_must_be_whole() -> None:
    with pytest.raises(EvaluationError):
        optimal_shares(_solved(**{shares_variable_name("A"): Fraction(5, 2)}), FUNDS[0])


def test_floating_point_backends_round_to_nearest_share() -> None:
    assert optimal_shares(_solved(**{shares_variable_name("A"): 8.9999997}), FUNDS[0]) == 9


def test_rational_total_is_divided_exactly() -> None:
    assert new_portfolio_total(_solved(**{NEW_TOTAL: Fraction(97285, 1000)})) == 97.285


def test_empty_portfolio_has_zero_proportion() -> None:
    solved = SolvedModel(values={shares_variable_name("Z"): 0, NEW_TOTAL: Fraction(0)})
    plan = extract_plan(solved, [Fund("Z", 0.0, 200.0, 1.0)])

    assert plan.purchases[0].new_proportion == 0.0
    assert plan.new_portfolio_total == 0.0
