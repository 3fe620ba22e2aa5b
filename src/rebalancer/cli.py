"""Command-line front end for the purchase rebalancer."""

import argparse
import logging
from typing import List, Optional

from rebalancer.errors import RebalanceError
from rebalancer.optimization_processor import rebalance_runner
from rebalancer.reporting import format_prices


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        prog="fund-rebalancer",
        description="Compute the integer share purchases that best rebalance a portfolio.",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the portfolio YAML config",
    )
    parser.add_argument(
        "-d", "--download-current-prices",
        action="store_true",
        help="Replace configured prices with the latest close before solving",
    )
    parser.add_argument(
        "-t", "--target-buy",
        type=float,
        default=None,
        help="Budget ceiling; overrides target_buy from the config",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = rebalance_runner(
            args.config,
            target_buy=args.target_buy,
            download_current_prices=args.download_current_prices,
        )
    except RebalanceError as error:
        parser.exit(status=1, message=f"error: {error}\n")

    output = result['output']
    if output['prices']:
        print(format_prices(output['prices']))
        print()
    print(output['report'])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
