from __future__ import annotations

import math

import pytest
from conftest import fund
from rebalancer.errors import ConfigError, ValidationError
from rebalancer.models.portfolio import Fund, PortfolioConfig, validate_portfolio


def _portfolio(*funds: dict, target_buy: float = 100.0) -> PortfolioConfig:
    return PortfolioConfig.from_dict({"target_buy": target_buy, "funds": list(funds)})


def test_from_dict_keeps_fund_order_and_values() -> None:
    portfolio = _portfolio(fund("VTI", 12, 221.47, 0.6), fund("BND", 3.5, 72.35, 0.4), target_buy=500)

    assert [f.symbol for f in portfolio.funds] == ["VTI", "BND"]
    assert portfolio.target_buy == 500.0
    assert portfolio.funds[1] == Fund("BND", 3.5, 72.35, 0.4)
    assert portfolio.proportion_sum == pytest.approx(1.0)


def test_from_dict_price_defaults_to_zero_and_accepts_existing_shares_alias() -> None:
    portfolio = PortfolioConfig.from_dict(
        {"target_buy": 10, "funds": [{"symbol": "X", "existing_shares": 2, "target_proportion": 1.0}]}
    )

    assert portfolio.funds[0].price == 0.0
    assert portfolio.funds[0].existing_shares == 2.0


@pytest.mark.parametrize(
    "config",
    [
        {"funds": []},
        {"target_buy": 10},
        {"target_buy": 10, "funds": [{"shares": 1, "target_proportion": 1.0}]},
        {"target_buy": 10, "funds": [{"symbol": "X", "target_proportion": 1.0}]},
        {"target_buy": 10, "funds": [{"symbol": "X", "shares": 1}]},
        {"target_buy": "lots", "funds": []},
        {"target_buy": 10, "funds": ["X"]},
    ],
)
def test_from_dict_rejects_malformed_config(config: dict) -> None:
    with pytest.raises(ConfigError):
        PortfolioConfig.from_dict(config)


def test_validation_accepts_sum_within_tolerance() -> None:
    validate_portfolio(_portfolio(fund("A", 0, 10.0, 0.505), fund("B", 0, 10.0, 0.5)))


def test_validation_rejects_sum_outside_tolerance_with_actual_sum() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(_portfolio(fund("A", 0, 10.0, 0.52), fund("B", 0, 10.0, 0.5)))

    assert excinfo.value.field == "target_proportion"
    assert excinfo.value.value == pytest.approx(1.02)
    assert "1.02" in str(excinfo.value)


def test_validation_reports_sum_of_under_allocated_proportions() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(_portfolio(fund("A", 0, 10.0, 0.5), fund("B", 0, 10.0, 0.4)))

    assert excinfo.value.value == pytest.approx(0.90)
    assert "got 0.9" in str(excinfo.value)


def test_validation_rejects_empty_portfolio() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(_portfolio())
    assert excinfo.value.value == 0


@pytest.mark.parametrize("price", [0.0, -3.0, math.nan])
def test_validation_names_fund_with_non_positive_price(price: float) -> None:
    portfolio = PortfolioConfig(100.0, [Fund("GOOD", 0, 10.0, 0.5), Fund("BAD", 0, price, 0.5)])
    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(portfolio)

    assert excinfo.value.field == "price"
    assert excinfo.value.value == "BAD"
    assert str(excinfo.value) == "price for BAD is not positive"


def test_validation_checks_proportions_before_prices() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(_portfolio(fund("BAD", 0, 0.0, 0.3)))
    assert excinfo.value.field == "target_proportion"


def test_validation_rejects_duplicate_symbols() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(_portfolio(fund("DUP", 0, 10.0, 0.5), fund("DUP", 1, 11.0, 0.5)))

    assert excinfo.value.field == "symbol"
    assert excinfo.value.value == "DUP"


@pytest.mark.parametrize("key", ["target_proportion", "shares", "price"])
@pytest.mark.parametrize("value", [math.nan, math.inf, "nan"])
def test_from_dict_rejects_non_finite_numbers(key: str, value: object) -> None:
    record = fund("X", 1, 10.0, 1.0)
    record[key] = value

    with pytest.raises(ConfigError, match=f"X.{key}` must be finite"):
        _portfolio(record)


def test_validation_rejects_nan_proportion_sum() -> None:
    portfolio = PortfolioConfig(100.0, [Fund("A", 0, 10.0, 1.0), Fund("B", 0, 10.0, math.nan)])

    with pytest.raises(ValidationError) as excinfo:
        validate_portfolio(portfolio)

    assert excinfo.value.field == "target_proportion"
    assert math.isnan(excinfo.value.value)
