"""
Optimization Processor
Main entry point for running rebalance playbooks from YAML configuration files.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from rebalancer.errors import ConfigError
from rebalancer.optimization_playbooks.purchase_rebalance_playbook import PurchaseRebalancePlaybook


DEFAULT_PLAYBOOK = 'purchase_rebalance'

PLAYBOOK_TYPES = {
    'purchase_rebalance': PurchaseRebalancePlaybook
}


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")
    return config


def build_playbook(config: Dict[str, Any], **kwargs):
    """Instantiate the playbook named by `playbook_type`."""
    playbook_type = config.get('playbook_type', DEFAULT_PLAYBOOK)

    playbook_cls = PLAYBOOK_TYPES.get(playbook_type)
    if playbook_cls is None:
        valid = ", ".join(PLAYBOOK_TYPES.keys())
        raise ConfigError(f"Unknown playbook_type {playbook_type!r}. Valid options: {valid}")

    return playbook_cls(config, **kwargs)


def rebalance_runner(config_path: Union[str, Path], target_buy: Optional[float] = None,
                     download_current_prices: bool = False, **kwargs) -> Dict[str, Any]:
    """
    Main runner for rebalance playbooks.

    Args:
        config_path: YAML config file
        target_buy: Overrides the config's budget when given
        download_current_prices: Refresh prices before validation
        **kwargs: Passed to the playbook (optimizer, price_client)

    Returns:
        Playbook result dict; errors propagate
    """
    config = load_config(config_path)
    if target_buy is not None:
        config['target_buy'] = target_buy
    if download_current_prices:
        config['download_current_prices'] = True

    playbook = build_playbook(config, **kwargs)
    return playbook.execute()
