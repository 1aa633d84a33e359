"""Runs the review API under uvicorn."""

import argparse
import os
from pathlib import Path

import uvicorn

from legalflow.utils.config import CONFIG_ENV_VAR, load_config
from legalflow.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Legal document review API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    args = parser.parse_args(argv)

    if args.config is not None:
        os.environ[CONFIG_ENV_VAR] = str(args.config)
    config = load_config(args.config)
    setup_logging(config.log_level)
    logger.info("Serving review API on %s:%d", args.host, args.port)
    uvicorn.run("legalflow.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
