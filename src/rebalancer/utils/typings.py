from rebalancer.models.optimizers.base_optimizer import BaseOptimizer
from rebalancer.models.optimizers.milp import MILPOptimizer
from rebalancer.models.optimizers.smt import Z3Optimizer


DEFAULT_OPTIMIZER = 'smt'

OPTIMIZER_TYPES = {
    'smt': Z3Optimizer,
    'milp': MILPOptimizer
}
