"""Run the DogeMiner deposit API under uvicorn."""

import argparse
import logging
from typing import Optional, Sequence

import uvicorn

from dogeminer.app import create_app
from dogeminer.config import Config

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DogeMiner deposit API server")
    parser.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Bind port (default: PORT or 8000)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root log level (default: INFO)",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Environment config with command line overrides applied."""
    config = Config.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    return config


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config(args)
    logger.info(f"Serving on {config.host}:{config.port}, deposit address {config.deposit_address}")

    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
