"""
Report rendering and result export for rebalance plans.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Union

import pandas as pd

from rebalancer.models.extraction import RebalancePlan

logger = logging.getLogger(__name__)


def plan_table(plan: RebalancePlan) -> pd.DataFrame:
    """Display table: one row per fund with formatted amounts."""
    frame = plan.to_frame()
    return pd.DataFrame({
        'Fund': frame['symbol'],
        'Shares to Buy': frame['optimal_shares'],
        'Buy Amt': frame['purchase_amount'].map(lambda v: f"${v:.2f}"),
        'New Proportion': frame['new_proportion'].map(lambda v: f"{v * 100.0:.2f}%"),
    })


def format_report(plan: RebalancePlan) -> str:
    lines = ["Optimal purchasing strategy:"]
    lines.append(plan_table(plan).to_string(index=False))
    lines.append("")
    lines.append(f"Total purchase:\t\t${plan.total_purchase:.2f}")
    lines.append(f"New portfolio total: \t${plan.new_portfolio_total:.2f}")
    return "\n".join(lines)


def format_prices(prices: Mapping[str, float]) -> str:
    lines = ["Current prices:"]
    lines.extend(f"{symbol}:\t${price:.2f}" for symbol, price in prices.items())
    return "\n".join(lines)


def save_outputs(plan: RebalancePlan, directory: Union[str, Path]) -> List[Path]:
    """
    Write purchase_plan.csv and a timestamped rebalance_result JSON.

    Returns:
        Paths written
    """
    output_dir = Path(directory)
    output_dir.mkdir(parents=True, exist_ok=True)

    plan_path = output_dir / 'purchase_plan.csv'
    plan.to_frame().to_csv(plan_path, index=False)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    result_path = output_dir / f'rebalance_result_{timestamp}.json'
    result_data: Dict[str, object] = {
        'purchases': plan.to_frame().to_dict(orient='records'),
        'summary': plan.summary(),
    }
    with open(result_path, 'w') as f:
        json.dump(result_data, f, indent=2, default=str)

    logger.info("Saved %s and %s", plan_path.name, result_path.name)
    return [plan_path, result_path]
