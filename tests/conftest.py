from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

SAMPLE_DATA = Path(__file__).parent / "test_data" / "sample_data" / "portfolio_rebalance"


def fund(symbol: str, shares: float, price: float, proportion: float) -> dict[str, Any]:
    return {"symbol": symbol, "shares": shares, "price": price, "target_proportion": proportion}


@pytest.fixture
def sample_config_path() -> Path:
    return SAMPLE_DATA / "config_simple.yaml"


@pytest.fixture
def three_fund_config_path() -> Path:
    return SAMPLE_DATA / "config_three_fund.yaml"


@pytest.fixture
def two_fund_config() -> dict[str, Any]:
    return {
        "target_buy": 55.0,
        "funds": [fund("AAA", 5, 10.0, 0.5), fund("BBB", 0, 10.0, 0.5)],
    }


@pytest.fixture
def single_fund_config() -> dict[str, Any]:
    return {"target_buy": 100.0, "funds": [fund("ONLY", 0, 10.0, 1.0)]}
