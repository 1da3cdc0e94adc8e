#!/usr/bin/env python3
"""Randomly distribute ranking files from a source directory into the experiment's run directories."""

import argparse
import sys

from trecfuse.config import load_config
from trecfuse.errors import FusionError
from trecfuse.experiment import init_inputs
from trecfuse.logging import configure_logging, get_logger

logger = get_logger("init_experiment")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source_dir")
    parser.add_argument("--config", default=None)
    parser.add_argument("--seed", type=int, default=None, help="shuffle seed, for reproducible layouts")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        configure_logging(config.log_level)
        init_inputs(config, args.source_dir, seed=args.seed)
    except FusionError as e:
        logger.error("initialisation failed", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
