"""
Training Script
===============

Command-line script to run the churn pipeline.

Usage:
    python scripts/train.py
    python scripts/train.py --cached
    python scripts/train.py --cached --outdated
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from config import load_config
from churn_keras.pipeline import ChurnPipeline
from churn_keras.utils import setup_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Train the Telco churn network")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to an alternative config.yaml"
    )
    parser.add_argument(
        "--cached",
        action="store_true",
        help="Run as a cached plan, rebuilding only outdated targets"
    )
    parser.add_argument(
        "--outdated",
        action="store_true",
        help="List outdated plan targets and exit"
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help="Clear the plan cache before running"
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help="Export a SavedModel for serving"
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip rendering figures"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args()


def main():
    """Main training function."""
    args = parse_args()

    setup_logging(level=args.log_level, log_file="training.log")
    config = load_config(args.config)
    pipeline = ChurnPipeline(config)

    if args.cached or args.outdated or args.clean:
        plan = pipeline.build_plan()

        if args.clean:
            plan.clean()

        if args.outdated:
            logger.info(f"\nPlan status:\n{plan.summary().to_string(index=False)}")
            return

        results = pipeline.run_cached(plan)
        logger.info(f"Built: {results['report']['built'] or 'nothing'}")
        return

    results = pipeline.run_pipeline(export=args.export, plots=not args.no_plots)

    logger.info(f"\nTop correlations:\n{results['correlations'].head(10).to_string(index=False)}")
    logger.info(f"\nExplanations:\n{results['explanations'].to_string(index=False)}")
    logger.info(f"Cleaned data saved to: {results['artifacts']['cleaned_data']}")
    logger.info(f"Model saved to: {results['artifacts']['model']}")


if __name__ == "__main__":
    main()
