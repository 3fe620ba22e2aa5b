"""
Exact rational optimizer using the Z3 SMT solver.
"""

import logging
import operator
import time
from datetime import datetime
from fractions import Fraction
from typing import Any, Dict, Optional

import z3

from rebalancer.models.optimizers.base_optimizer import BaseOptimizer, Number, check_constraint_type

logger = logging.getLogger(__name__)

_COMPARATORS = {
    'eq': operator.eq,
    'ge': operator.ge,
    'le': operator.le,
    'gt': operator.gt,
    'lt': operator.lt,
}


class Z3Optimizer(BaseOptimizer):
    """Optimizer over z3's Optimize context. Integer and real variables, exact rational arithmetic."""

    def __init__(self, name: str = "SMT", solver: str = 'z3', time_limit: Optional[float] = None):
        super().__init__(name, solver)
        self.time_limit = time_limit
        self._vars: Dict[str, Any] = {}
        self._expressions: Dict[str, Any] = {}
        self._model = self._new_context()

    def _new_context(self) -> z3.Optimize:
        # each optimizer owns its own context so repeated solves never share state
        self._ctx = z3.Context()
        opt = z3.Optimize(ctx=self._ctx)
        if self.time_limit:
            opt.set('timeout', int(self.time_limit * 1000))
        return opt

    def add_variable(self, name: str, var_type: str = 'continuous',
                     lb: Optional[float] = None, ub: Optional[float] = None,
                     initial: Optional[float] = None) -> Any:
        """
        Add a decision variable to the model.

        Args:
            name: Variable name
            var_type: 'continuous', 'binary', or 'integer'
            lb: Lower bound
            ub: Upper bound
            initial: Ignored; z3 has no warm start

        Returns:
            z3 arithmetic constant
        """
        if name in self._vars:
            raise ValueError(f"Variable {name!r} already defined")

        if var_type == 'binary':
            var = z3.Int(name, ctx=self._ctx)
            lb, ub = 0, 1
        elif var_type == 'integer':
            var = z3.Int(name, ctx=self._ctx)
        else:
            var = z3.Real(name, ctx=self._ctx)

        if lb is not None:
            self._model.add(var >= self._coerce(lb))
        if ub is not None:
            self._model.add(var <= self._coerce(ub))

        self._vars[name] = var
        return var

    def constant(self, value: Fraction) -> Any:
        return z3.RealVal(str(Fraction(value)), ctx=self._ctx)

    def if_negative(self, condition: Any, negative_value: Any, otherwise: Any) -> Any:
        return z3.If(condition < self.constant(Fraction(0)), negative_value, otherwise)

    def add_constraint(self, name: str, expression: Any,
                       constraint_type: str = 'eq', rhs: Any = 0) -> None:
        """
        Add constraint `expression <constraint_type> rhs`.

        Strict inequalities are kept strict; z3 reasons over exact rationals.
        """
        compare = _COMPARATORS[check_constraint_type(constraint_type)]
        self._model.add(compare(expression, self._coerce(rhs)))

    def add_expression(self, name: str, expression: Any) -> Any:
        self._expressions[name] = expression
        return expression

    def set_objective(self, expression: Any, sense: str = 'minimize') -> None:
        """
        Set the objective function.

        Args:
            expression: z3 arithmetic expression to optimize
            sense: 'minimize' or 'maximize'
        """
        self.optimization_sense = sense.lower()
        if self.optimization_sense == 'minimize':
            self._model.minimize(expression)
        elif self.optimization_sense == 'maximize':
            self._model.maximize(expression)
        else:
            raise ValueError(f"Invalid sense: {sense}. Must be 'minimize' or 'maximize'")
        self.objective = expression

    def solve(self, **kwargs) -> Dict[str, Any]:
        """
        Solve the optimization problem.

        Args:
            **kwargs: Additional z3 Optimize parameters (e.g. timeout=5000)

        Returns:
            Dictionary with keys: status, objective_value, variables, solver_time, message
        """
        if not self._vars:
            self.result = {
                'status': 'error',
                'message': 'No variables defined',
                'objective_value': None,
                'variables': None,
                'solver_time': 0.0
            }
            return self.result

        for key, value in kwargs.items():
            self._model.set(key, value)

        start = time.time()
        outcome = self._model.check()
        solve_time = time.time() - start

        if outcome == z3.sat:
            model = self._model.model()
            named = dict(self._vars)
            named.update(self._expressions)
            variables = {}
            for name, expr in named.items():
                value = _to_number(model.eval(expr))
                if value is not None:
                    variables[name] = value
            objective = _to_number(model.eval(self.objective)) if self.objective is not None else None
            status, message = 'optimal', 'sat'
        else:
            variables, objective = None, None
            if outcome == z3.unsat:
                status, message = 'infeasible', 'unsat'
            else:
                status, message = 'unknown', f"unknown: {self._model.reason_unknown()}"

        logger.debug("z3 check finished in %.3fs: %s", solve_time, message)

        self.result = {
            'status': status,
            'objective_value': objective,
            'variables': variables,
            'solver_time': solve_time,
            'message': message
        }
        self.solved_at = datetime.now()
        return self.result

    def get_variable_value(self, var_name: str) -> Optional[Number]:
        """
        Get the optimized value of a variable or registered expression.

        Args:
            var_name: Name of the variable

        Returns:
            int for integer variables, Fraction for rationals, None if unsolved or unknown
        """
        if not self.result or not self.result.get('variables'):
            return None
        return self.result['variables'].get(var_name)

    def reset(self) -> None:
        super().reset()
        self._vars = {}
        self._expressions = {}
        self._model = self._new_context()

    def _coerce(self, value: Any) -> Any:
        if isinstance(value, (int, Fraction)):
            return self.constant(Fraction(value))
        return value


def _to_number(value: Any) -> Optional[Number]:
    if z3.is_int_value(value):
        return value.as_long()
    if z3.is_rational_value(value):
        return Fraction(value.numerator_as_long(), value.denominator_as_long())
    return None
