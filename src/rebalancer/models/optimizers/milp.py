"""
Mixed Integer (Non)Linear Programming Optimizer using GEKKO.
"""

import logging
import time
from datetime import datetime
from fractions import Fraction
from typing import Any, Dict, Optional

from gekko import GEKKO

from rebalancer.models.optimizers.base_optimizer import BaseOptimizer, Number, check_constraint_type

logger = logging.getLogger(__name__)


class MILPOptimizer(BaseOptimizer):
    """MILP optimizer using GEKKO. Supports continuous, binary, and integer variables."""

    def __init__(self, name: str = "MILP", solver: str = 'APOPT',
                 remote: bool = False, time_limit: Optional[float] = None,
                 mip_gap: Optional[float] = None, max_iter: Optional[int] = None,
                 strict_margin: float = 0.001):
        super().__init__(name, solver)
        self.remote = remote
        self.time_limit = time_limit
        self.mip_gap = mip_gap
        self.max_iter = max_iter
        # floating point solver: `a < b` is modeled as `a <= b - strict_margin`
        self.strict_margin = strict_margin

        self._vars: Dict[str, Any] = {}
        self._expressions: Dict[str, Any] = {}
        self._model = self._new_model()

    def _new_model(self) -> GEKKO:
        model = GEKKO(remote=self.remote)
        model.options.SOLVER = {'APOPT': 1, 'BPOPT': 2, 'IPOPT': 3}.get(self.solver.upper(), 1)

        if self.time_limit:
            model.options.MAX_TIME = self.time_limit
        if self.max_iter:
            model.options.MAX_ITER = self.max_iter
        if self.mip_gap and self.solver.upper() == 'APOPT':
            model.solver_options = [f'minlp_gap_tol {self.mip_gap}']
        return model

    def add_variable(self, name: str, var_type: str = 'continuous',
                     lb: Optional[float] = None, ub: Optional[float] = None,
                     initial: Optional[float] = None) -> Any:
        """
        Add a decision variable to the model.

        GEKKO restricts variable names, so `name` is only used as the lookup key here.

        Args:
            name: Variable name
            var_type: 'continuous', 'binary', or 'integer'
            lb: Lower bound
            ub: Upper bound
            initial: Initial value

        Returns:
            GEKKO variable object
        """
        init = initial if initial is not None else 0

        if var_type == 'binary':
            var = self._model.Var(value=init, lb=0, ub=1, integer=True)
        elif var_type == 'integer':
            var = self._model.Var(value=init, lb=lb or 0, ub=ub, integer=True)
        else:
            var = self._model.Var(value=init, lb=lb, ub=ub, integer=False)

        self._vars[name] = var
        return var

    def constant(self, value: Fraction) -> Any:
        return float(value)

    def if_negative(self, condition: Any, negative_value: Any, otherwise: Any) -> Any:
        # if3 switches on the sign of `condition` with a binary variable
        return self._model.if3(condition, negative_value, otherwise)

    def add_constraint(self, name: str, expression: Any,
                       constraint_type: str = 'eq', rhs: Any = 0) -> None:
        """
        Add constraint `expression <constraint_type> rhs`.

        Args:
            name: Constraint label (for logging)
            expression: GEKKO expression
            constraint_type: 'eq', 'ge', 'le', 'gt' or 'lt'
            rhs: Number or GEKKO expression
        """
        constraint_type = check_constraint_type(constraint_type)
        if isinstance(rhs, Fraction):
            rhs = float(rhs)

        if constraint_type == 'eq':
            self._model.Equation(expression == rhs)
        elif constraint_type == 'ge':
            self._model.Equation(expression >= rhs)
        elif constraint_type == 'le':
            self._model.Equation(expression <= rhs)
        elif constraint_type == 'gt':
            self._model.Equation(expression >= rhs + self.strict_margin)
        else:
            self._model.Equation(expression <= rhs - self.strict_margin)
        logger.debug("Added constraint %s (%s)", name, constraint_type)

    def add_expression(self, name: str, expression: Any) -> Any:
        if isinstance(expression, (int, float)):
            self._expressions[name] = float(expression)
            return expression
        intermediate = self._model.Intermediate(expression)
        self._expressions[name] = intermediate
        return intermediate

    def set_objective(self, expression: Any, sense: str = 'minimize') -> None:
        """
        Set the objective function.

        Args:
            expression: GEKKO expression to optimize
            sense: 'minimize' or 'maximize'
        """
        self.optimization_sense = sense.lower()
        if self.optimization_sense == 'minimize':
            self._model.Minimize(expression)
        elif self.optimization_sense == 'maximize':
            self._model.Maximize(expression)
        else:
            raise ValueError(f"Invalid sense: {sense}. Must be 'minimize' or 'maximize'")
        self.objective = expression

    def solve(self, disp: bool = False, **kwargs) -> Dict[str, Any]:
        """
        Solve the optimization problem.

        Args:
            disp: Display solver output
            **kwargs: Additional solver options

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

        # Set additional solver options
        for key, value in kwargs.items():
            try:
                setattr(self._model.options, key.upper(), value)
            except AttributeError:
                pass

        start = time.time()
        try:
            self._model.solve(disp=disp)
        except Exception as e:
            # GEKKO signals "Solution Not Found" by raising a bare Exception
            logger.debug("GEKKO solve failed: %s", e)
            self.result = {
                'status': 'error',
                'objective_value': None,
                'variables': None,
                'solver_time': time.time() - start,
                'message': str(e)
            }
            return self.result

        solve_time = time.time() - start
        status = 'optimal' if self._model.options.APPSTATUS == 1 else \
            'infeasible' if self._model.options.APPSTATUS == 0 else 'feasible'

        variables = None
        if status == 'optimal':
            variables = {name: _first(var.value) for name, var in self._vars.items()}
            variables.update({name: _expression_value(expr) for name, expr in self._expressions.items()})

        # GEKKO returns negative for maximization
        raw_objective = self._model.options.OBJFCNVAL if status == 'optimal' else None
        if raw_objective is not None and self.optimization_sense == 'maximize':
            objective = -raw_objective
        else:
            objective = raw_objective

        self.result = {
            'status': status,
            'objective_value': objective,
            'variables': variables,
            'solver_time': solve_time,
            'message': f"APPSTATUS: {self._model.options.APPSTATUS}"
        }
        self.solved_at = datetime.now()
        return self.result

    def get_variable_value(self, var_name: str) -> Optional[Number]:
        """
        Get the optimized value of a variable or registered expression.

        Args:
            var_name: Name of the variable

        Returns:
            Variable value or None if not found
        """
        if var_name in self._vars:
            return _first(self._vars[var_name].value)
        if var_name in self._expressions:
            return _expression_value(self._expressions[var_name])
        return None

    def reset(self) -> None:
        super().reset()
        self._vars = {}
        self._expressions = {}
        self._model = self._new_model()


def _expression_value(expr: Any) -> float:
    if isinstance(expr, float):
        return expr
    return _first(expr.value)


def _first(value: Any) -> float:
    return float(value[0] if hasattr(value, '__iter__') else value)
