"""
Run FastAPI Server
==================

Serve the saved churn network over HTTP.

Usage:
    python scripts/run_api.py
    python scripts/run_api.py --port 8000 --reload
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import uvicorn
from loguru import logger

from config import get_config
from churn_keras.utils import setup_logging


def parse_args(api_config: dict):
    """Parse command line arguments, defaulting to the ``api`` config section."""
    parser = argparse.ArgumentParser(description="Serve the Telco churn network")

    parser.add_argument("--host", type=str, default=api_config.get("host", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=api_config.get("port", 8000))
    parser.add_argument(
        "--reload",
        action="store_true",
        default=api_config.get("reload", False),
        help="Restart the server on code changes"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )

    return parser.parse_args()


def main():
    args = parse_args(get_config().get("api", {}))
    setup_logging(level=args.log_level, log_file="api.log")

    logger.info(f"Serving churn_keras.api.main:app on http://{args.host}:{args.port} (docs at /docs)")

    uvicorn.run(
        "churn_keras.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower()
    )


if __name__ == "__main__":
    main()
