#!/usr/bin/env python3
"""Fuse every input directory of an experiment with one technique."""

import argparse
import sys

from trecfuse.config import load_config
from trecfuse.errors import FusionError
from trecfuse.experiment import run_fusion
from trecfuse.fusion.factory import available_techniques
from trecfuse.logging import configure_logging, get_logger

logger = get_logger("fuse")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("technique", help=f"one of: {', '.join(available_techniques())}")
    parser.add_argument("--config", default=None, help="experiment config file (default: $TRECFUSE_CONFIG or etc/fusion.conf)")
    parser.add_argument("--log-format", choices=["console", "json"], default="console")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        configure_logging(config.log_level, args.log_format)
        written = run_fusion(config, args.technique)
    except FusionError as e:
        logger.error("fusion failed", error=str(e))
        return 1

    logger.info("fusion complete", outputs=len(written))
    return 0


if __name__ == "__main__":
    sys.exit(main())
