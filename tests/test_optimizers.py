from __future__ import annotations

import dataclasses
from fractions import Fraction

import pytest
from rebalancer.errors import NoSolutionError
from rebalancer.models.optimizers.base_optimizer import SolvedModel
from rebalancer.models.optimizers.milp import MILPOptimizer
from rebalancer.models.optimizers.smt import Z3Optimizer
from rebalancer.models.portfolio import Fund
from rebalancer.models.purchase_model import build_purchase_model, shares_variable_name


def test_z3_keeps_strict_inequalities_exact() -> None:
    optimizer = Z3Optimizer()
    x = optimizer.add_variable("x", var_type="integer", lb=0)
    optimizer.add_constraint("cap", x * optimizer.constant(Fraction(2)), "lt", Fraction(8))
    optimizer.set_objective(x, sense="maximize")

    result = optimizer.solve()

    assert result["status"] == "optimal"
    assert optimizer.get_variable_value("x") == 3
    assert result["objective_value"] == 3


def test_z3_real_variables_evaluate_to_fractions() -> None:
    optimizer = Z3Optimizer()
    y = optimizer.add_variable("y", lb=0)
    optimizer.add_constraint("third", y * optimizer.constant(Fraction(3)), "eq", Fraction(1))
    optimizer.add_expression("double", y + y)
    optimizer.set_objective(y)

    optimizer.solve()
    solved = optimizer.solved_model()

    assert solved.evaluate("y") == Fraction(1, 3)
    assert solved.evaluate("double") == Fraction(2, 3)
    assert solved.solver == "z3"


def test_z3_conditional_picks_branch_by_sign() -> None:
    optimizer = Z3Optimizer()
    x = optimizer.add_variable("x", var_type="integer", lb=-5, ub=5)
    optimizer.add_constraint("fix", x, "eq", -4)
    optimizer.add_expression("abs", optimizer.if_negative(x, -x, x))
    optimizer.set_objective(x)

    optimizer.solve()

    assert optimizer.get_variable_value("abs") == 4


def test_z3_rejects_duplicate_variable_and_bad_arguments() -> None:
    optimizer = Z3Optimizer()
    x = optimizer.add_variable("x", var_type="integer")
    with pytest.raises(ValueError):
        optimizer.add_variable("x")
    with pytest.raises(ValueError):
        optimizer.add_constraint("bad", x, "ne", 0)
    with pytest.raises(ValueError):
        optimizer.set_objective(x, sense="sideways")


@pytest.mark.parametrize("optimizer_cls", [Z3Optimizer, MILPOptimizer])
def test_solve_without_variables_is_an_error(optimizer_cls: type) -> None:
    optimizer = optimizer_cls()
    result = optimizer.solve()

    assert result["status"] == "error"
    assert optimizer.result is result
    with pytest.raises(NoSolutionError) as excinfo:
        optimizer.solved_model()
    assert excinfo.value.status == "error"
    assert "No variables defined" in str(excinfo.value)


def test_reset_gives_fresh_variables() -> None:
    optimizer = Z3Optimizer()
    optimizer.add_variable("x", var_type="integer", lb=0, ub=1)
    optimizer.reset()

    x = optimizer.add_variable("x", var_type="integer", lb=0, ub=3)
    optimizer.set_objective(x, sense="maximize")
    optimizer.solve()

    assert optimizer.get_variable_value("x") == 3


def test_solved_model_is_read_only() -> None:
    solved = SolvedModel(values={"x": 1})

    with pytest.raises(TypeError):
        solved.values["x"] = 2  # type: ignore[index]
    with pytest.raises(dataclasses.FrozenInstanceError):
        solved.status = "changed"  # type: ignore[misc]
    assert solved.evaluate("y") is None


@pytest.mark.gekko
def test_gekko_backend_solves_single_fund_purchase() -> None:
    optimizer = MILPOptimizer(remote=False)
    build_purchase_model(optimizer, [Fund("ONLY", 0.0, 10.0, 1.0)], 100.0)

    result = optimizer.solve()
    solved = optimizer.solved_model()

    assert result["status"] == "optimal"
    assert round(solved.evaluate(shares_variable_name("ONLY"))) == 9
