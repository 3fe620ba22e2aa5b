"""
Purchase Rebalance Playbook
Integer share purchases that move a portfolio toward its target proportions
without spending the full budget.
"""

import logging
from typing import Any, Dict, Optional

from rebalancer.models.extraction import RebalancePlan, extract_plan
from rebalancer.models.optimizers.base_optimizer import BaseOptimizer, SolvedModel
from rebalancer.models.portfolio import PortfolioConfig, validate_portfolio
from rebalancer.models.purchase_model import PurchaseModel, build_purchase_model
from rebalancer.optimization_playbooks.base_playbook import BasePlaybook
from rebalancer.reporting import format_report, save_outputs
from rebalancer.services.pricing import YahooPriceClient, refresh_prices

logger = logging.getLogger(__name__)


class PurchaseRebalancePlaybook(BasePlaybook):
    """
    Purchase Rebalance Playbook.

    Config keys:
        target_buy: budget ceiling (strict)
        funds: list of {symbol, shares, price, target_proportion}
        download_current_prices: refresh every price before validation
        solver: {type: smt|milp, ...optimizer options}
        output: {directory: ...} to write CSV/JSON results
    """

    def __init__(self, config: Dict[str, Any], optimizer: Optional[BaseOptimizer] = None,
                 price_client: Optional[YahooPriceClient] = None):
        super().__init__(config, optimizer)
        self.price_client = price_client
        self.portfolio: Optional[PortfolioConfig] = None
        self.model: Optional[PurchaseModel] = None
        self.prices: Dict[str, float] = {}

    def load_data(self) -> Dict[str, Any]:
        """Build the fund ledger, refreshing prices first when requested."""
        portfolio = PortfolioConfig.from_dict(self.config)

        if self.config.get('download_current_prices'):
            if self.price_client is None:
                self.price_client = YahooPriceClient(**(self.config.get('pricing') or {}))
            logger.info("Downloading current fund prices...")
            self.prices = refresh_prices(portfolio.funds, self.price_client)

        self.portfolio = portfolio
        return {'portfolio': portfolio}

    def validate_input(self, input_data: Dict[str, Any]) -> None:
        validate_portfolio(input_data['portfolio'])

    def preprocess_data(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        portfolio = input_data['portfolio']
        return {'funds': list(portfolio.funds), 'target_buy': portfolio.target_buy}

    def build_optimization_model(self, processed_data: Dict[str, Any]) -> None:
        self.model = build_purchase_model(self.optimizer, processed_data['funds'], processed_data['target_buy'])

    def extract_solution(self, solved: SolvedModel) -> Dict[str, Any]:
        plan = extract_plan(solved, self.portfolio.funds, target_buy=self.portfolio.target_buy)
        logger.info("Total purchase $%.2f, new portfolio total $%.2f",
                    plan.total_purchase, plan.new_portfolio_total)
        return {'plan': plan}

    def generate_output(self, solution: Dict[str, Any]) -> Dict[str, Any]:
        plan: RebalancePlan = solution['plan']
        files = []
        output_dir = (self.config.get('output') or {}).get('directory')
        if output_dir:
            files = [str(p) for p in save_outputs(plan, output_dir)]

        return {
            'plan': plan,
            'report': format_report(plan),
            'prices': dict(self.prices),
            'files': files,
        }
