"""
Base Playbook for Optimization Workflows
Abstract interface for creating reusable optimization playbooks.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from rebalancer.errors import ConfigError
from rebalancer.models.optimizers.base_optimizer import BaseOptimizer, SolvedModel
from rebalancer.utils.typings import DEFAULT_OPTIMIZER, OPTIMIZER_TYPES

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    UNVALIDATED = 'unvalidated'
    VALIDATED = 'validated'
    MODELED = 'modeled'
    SOLVED = 'solved'
    EXTRACTED = 'extracted'
    FAILED = 'failed'


class BasePlaybook(ABC):
    """
    Abstract base class for optimization playbooks.

    `execute` moves strictly forward through PipelineState. Any stage failure
    sets FAILED and re-raises; there is no retry and no partial result.
    """

    def __init__(self, config: Dict[str, Any], optimizer: Optional[BaseOptimizer] = None):
        """
        Initialize playbook.

        Args:
            config: Configuration dictionary
            optimizer: Pre-configured optimizer instance (optional)
        """
        self.config = config
        self.optimizer = optimizer
        self.result: Optional[Dict[str, Any]] = None
        self.state = PipelineState.UNVALIDATED

    @abstractmethod
    def load_data(self) -> Dict[str, Any]:
        """Load input data based on config. Each playbook implements its own data loading."""
        pass

    @abstractmethod
    def validate_input(self, input_data: Dict[str, Any]) -> None:
        """Validate input data. Raises ValidationError on the first violated invariant."""
        pass

    @abstractmethod
    def preprocess_data(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        """Preprocess and transform input data."""
        pass

    @abstractmethod
    def build_optimization_model(self, processed_data: Dict[str, Any]) -> None:
        """Build the optimization model."""
        pass

    @abstractmethod
    def extract_solution(self, solved: SolvedModel) -> Dict[str, Any]:
        """Extract and format the optimization solution."""
        pass

    @abstractmethod
    def generate_output(self, solution: Dict[str, Any]) -> Dict[str, Any]:
        """Generate final output from solution."""
        pass

    def execute(self) -> Dict[str, Any]:
        """Execute the complete playbook workflow."""
        start_time = time.time()
        self.state = PipelineState.UNVALIDATED
        try:
            # Load data (playbook-specific)
            input_data = self.load_data()

            # Validate input
            self.validate_input(input_data)
            self.state = PipelineState.VALIDATED

            # Preprocess data
            processed_data = self.preprocess_data(input_data)

            # Initialize optimizer if not provided
            if self.optimizer is None:
                self.optimizer = self._create_optimizer()
            else:
                # every solve starts from fresh decision variables
                self.optimizer.reset()
            logger.info("Optimizer: %r", self.optimizer)

            # Build model
            self.build_optimization_model(processed_data)
            self.state = PipelineState.MODELED

            # Solve
            opt_result = self.optimizer.solve()
            logger.info("Solver status: %s (%.2fs)", opt_result['status'], opt_result.get('solver_time', 0.0))
            solved = self.optimizer.solved_model()
            self.state = PipelineState.SOLVED

            # Extract solution
            solution = self.extract_solution(solved)
            self.state = PipelineState.EXTRACTED

            # Generate output
            output = self.generate_output(solution)

        except Exception:
            self.state = PipelineState.FAILED
            raise

        self.result = {
            'status': 'success',
            'optimization_result': opt_result,
            'output': output,
            'execution_time': time.time() - start_time,
            'timestamp': datetime.now().isoformat()
        }
        return self.result

    def _create_optimizer(self) -> BaseOptimizer:
        """Create optimizer instance based on config."""
        solver_config = dict(self.config.get('solver') or {})
        model_type = str(solver_config.pop('type', DEFAULT_OPTIMIZER)).lower()

        optimizer_cls = OPTIMIZER_TYPES.get(model_type)
        if optimizer_cls is None:
            valid = ", ".join(OPTIMIZER_TYPES.keys())
            raise ConfigError(f"Unknown optimizer type: {model_type!r}. Valid options: {valid}")

        # Remove None values
        optimizer_params = {k: v for k, v in solver_config.items() if v is not None}
        try:
            return optimizer_cls(**optimizer_params)
        except TypeError as e:
            raise ConfigError(f"Invalid solver options for {model_type!r}: {e}") from e

    def reset(self) -> None:
        """Reset playbook to initial state."""
        self.result = None
        self.state = PipelineState.UNVALIDATED
        if self.optimizer:
            self.optimizer.reset()
