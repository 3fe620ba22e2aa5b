import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / 'src'))

from rebalancer.cli import main

sys.exit(main(sys.argv[1:] or ['--config', 'tests/test_data/sample_data/portfolio_rebalance/config_simple.yaml']))
