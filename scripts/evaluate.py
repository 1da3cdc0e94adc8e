#!/usr/bin/env python3
"""Run trec_eval over every fused output in the experiment's result directory."""

import argparse
import sys

from trecfuse.config import load_config
from trecfuse.errors import FusionError
from trecfuse.experiment import evaluate_results
from trecfuse.logging import configure_logging, get_logger

logger = get_logger("evaluate")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", default=None)
    parser.add_argument("--all", action="store_true", help="also report trec_eval's minor measures (-a)")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        configure_logging(config.log_level)
        written = evaluate_results(config, all_measures=args.all)
    except FusionError as e:
        logger.error("evaluation failed", error=str(e))
        return 1

    logger.info("evaluation complete", reports=len(written))
    return 0


if __name__ == "__main__":
    sys.exit(main())
