"""
Query a Deployed Model
======================

Bakes a few held-out customers with the saved recipe and sends them to a
prediction endpoint.

Usage:
    python scripts/query_endpoint.py --url http://localhost:8000 --rows 5
    python scripts/query_endpoint.py --url http://localhost:8501 --path /v1/models/keras_mlp:predict
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from config import get_config
from churn_keras.api import ServingClient
from churn_keras.data import DataLoader, DataPreprocessor
from churn_keras.utils import setup_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Send baked instances to a serving endpoint")

    parser.add_argument("--url", type=str, default=None, help="Server base URL")
    parser.add_argument("--path", type=str, default="/predict", help="Prediction route")
    parser.add_argument("--rows", type=int, default=5, help="Number of customers to send")

    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging()

    config = get_config()
    loader = DataLoader(config)
    recipe = DataPreprocessor.load()

    cleaned = recipe.clean_data(loader.load_raw_data())
    _, test_df = loader.get_train_test_split(cleaned)
    X_test, y_test = recipe.split_features_target(test_df.head(args.rows))

    with ServingClient(base_url=args.url, path=args.path, config=config) as client:
        probabilities = client.predict(recipe.transform(X_test))

    for truth, prob in zip(y_test, probabilities):
        logger.info(f"truth={truth} churn_probability={prob:.4f}")


if __name__ == "__main__":
    main()
