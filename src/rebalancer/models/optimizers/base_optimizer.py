"""
Base Optimizer Class
Abstract interface for mixed-integer solver backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from fractions import Fraction
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from rebalancer.errors import NoSolutionError

Number = Union[int, float, Fraction]

CONSTRAINT_TYPES = ('eq', 'ge', 'le', 'gt', 'lt')


@dataclass(frozen=True)
class SolvedModel:
    """Immutable snapshot of one solve: every registered variable and expression mapped to a value."""

    values: Mapping[str, Number]
    status: str = 'optimal'
    objective_value: Optional[Number] = None
    solver: Optional[str] = None
    solver_time: float = 0.0
    solved_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        object.__setattr__(self, 'values', MappingProxyType(dict(self.values)))

    def evaluate(self, name: str) -> Optional[Number]:
        """Value of a variable or registered expression, or None if the model has none."""
        return self.values.get(name)


class BaseOptimizer(ABC):
    """Abstract base class for all optimizers."""

    def __init__(self, name: str = "optimizer", solver: Optional[str] = None):
        self.name = name
        self.solver = solver
        self.objective = None
        self.optimization_sense = 'minimize'
        self.result: Optional[Dict[str, Any]] = None
        self._model = None
        self.created_at = datetime.now()
        self.solved_at: Optional[datetime] = None

    @abstractmethod
    def add_variable(self, name: str, var_type: str = 'continuous',
                     lb: Optional[float] = None, ub: Optional[float] = None,
                     initial: Optional[float] = None) -> Any:
        """Add decision variable to the model."""
        pass

    @abstractmethod
    def constant(self, value: Fraction) -> Any:
        """Lift an exact rational into a backend expression."""
        pass

    @abstractmethod
    def if_negative(self, condition: Any, negative_value: Any, otherwise: Any) -> Any:
        """Conditional expression: `negative_value` when `condition < 0`, else `otherwise`."""
        pass

    @abstractmethod
    def add_constraint(self, name: str, expression: Any,
                       constraint_type: str = 'eq', rhs: Any = 0) -> None:
        """Add constraint `expression <constraint_type> rhs` to the model."""
        pass

    @abstractmethod
    def add_expression(self, name: str, expression: Any) -> Any:
        """Register a derived expression so its value is readable after solving."""
        pass

    @abstractmethod
    def set_objective(self, expression: Any, sense: str = 'minimize') -> None:
        """Set objective function."""
        pass

    @abstractmethod
    def solve(self, **kwargs) -> Dict[str, Any]:
        """Solve the optimization problem. Returns dict with status, objective_value, variables, solver_time."""
        pass

    @abstractmethod
    def get_variable_value(self, var_name: str) -> Optional[Number]:
        """Get optimized value of a variable or registered expression."""
        pass

    def solved_model(self) -> SolvedModel:
        """
        Snapshot the last solve.

        Raises:
            NoSolutionError: if the problem was not solved to optimality
        """
        if self.result is None:
            raise NoSolutionError("optimizer has not been solved", status=None)

        status = self.result['status']
        if status != 'optimal' or self.result.get('variables') is None:
            raise NoSolutionError(
                f"no solution found ({status}): {self.result.get('message', 'no model')}",
                status=status,
            )

        return SolvedModel(
            values=self.result['variables'],
            status=status,
            objective_value=self.result.get('objective_value'),
            solver=self.solver,
            solver_time=self.result.get('solver_time', 0.0),
        )

    def reset(self) -> None:
        """Reset the optimizer to initial state."""
        self.objective = None
        self.result = None
        self._model = None
        self.solved_at = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', solver={self.solver})"


def check_constraint_type(constraint_type: str) -> str:
    constraint_type = constraint_type.lower()
    if constraint_type not in CONSTRAINT_TYPES:
        valid = ", ".join(CONSTRAINT_TYPES)
        raise ValueError(f"Invalid constraint type: {constraint_type}. Must be one of {valid}")
    return constraint_type
