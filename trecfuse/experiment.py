"""Experiment driver: lay out inputs, run k-fold fusion over them, evaluate the outputs.

Directory layout under ``base_dir``::

    var/input/run1/input.<system>   ranking files, one directory per fusion run
    var/result/run1-<run_id><k>_fold.out
    var/eval/run1-<run_id><k>_fold.eval
"""

import random
import shutil
from contextlib import ExitStack
from pathlib import Path

import numpy as np
import structlog

from trecfuse.config import FusionConfig
from trecfuse.errors import ConfigError
from trecfuse.fusion.base import Fuser
from trecfuse.fusion.factory import create_fuser
from trecfuse.retrieval.evaluation import run_trec_eval
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet
from trecfuse.retrieval.topfile import TopFile

logger = structlog.get_logger(__name__)

INPUT_GLOB = "input.*"


def init_inputs(config: FusionConfig, source_dir: str | Path, seed: int | None = None) -> list[Path]:
    """Shuffle the ranking files in ``source_dir`` and copy ``inputs_per_run`` of them into each run directory."""
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise ConfigError(f"Source directory '{source_dir}' not found")
    if config.runs is None or config.inputs_per_run is None:
        raise ConfigError("Required configuration options 'runs' and 'inputs_per_run' not set")

    files = sorted(p for p in source_dir.iterdir() if p.is_file())
    random.Random(seed).shuffle(files)
    logger.info("found input files", count=len(files), source_dir=str(source_dir))

    needed = config.runs * config.inputs_per_run
    if len(files) < needed:
        raise ConfigError(f"Insufficient input files found for experiment: need {needed}, found {len(files)}")

    input_dir = config.input_dir
    if input_dir.is_dir() and any(input_dir.iterdir()):
        raise ConfigError(f"Input dir '{input_dir}' not empty")

    created = []
    for run in range(1, config.runs + 1):
        run_dir = input_dir / f"run{run}"
        run_dir.mkdir(parents=True, exist_ok=True)
        chosen, files = files[: config.inputs_per_run], files[config.inputs_per_run :]
        for src in chosen:
            shutil.copy(src, run_dir / src.name)
        logger.info("created run directory", run=run, path=str(run_dir), inputs=len(chosen))
        created.append(run_dir)
    return created


def find_input_dirs(input_dir: str | Path) -> list[Path]:
    """Leaf directories under ``input_dir`` (those without subdirectories), sorted."""
    input_dir = Path(input_dir)
    leaves = []
    for path in sorted(p for p in input_dir.rglob("*") if p.is_dir()):
        if not any(child.is_dir() for child in path.iterdir()):
            leaves.append(path)
    return leaves


def fold_indices(queries: int, k_folds: int) -> list[list[int]]:
    """Split query indices 0..queries-1 into ``k_folds`` contiguous, near-equal folds."""
    if k_folds < 1:
        raise ValueError("k_folds must be >= 1")
    return [fold.tolist() for fold in np.array_split(np.arange(queries), k_folds)]


def output_name(input_dir: Path, directory: Path, description: str, fold: int | None = None) -> str:
    prefix = "-".join(directory.relative_to(input_dir).parts)
    suffix = f"{fold}_fold.out" if fold is not None else ".out"
    return f"{prefix}-{description}{suffix}".lstrip("-")


def read_query_rows(inputs: list[Path], limit: int | None = None) -> list[list[ResultSet]]:
    """Read one ResultSet per input file per query, stopping when any file runs out."""
    rows: list[list[ResultSet]] = []
    with ExitStack() as stack:
        topfiles = [stack.enter_context(TopFile(path)) for path in inputs]
        while limit is None or len(rows) < limit:
            row = [top.next_result_set() for top in topfiles]
            if any(rs is None for rs in row):
                break
            rows.append(row)

    if limit is not None and len(rows) < limit:
        logger.warning("input files ran out before expected query count", expected=limit, read=len(rows))
    return rows


def _fuse_rows(fuser: Fuser, rows: list[list[ResultSet]], indices, out_path: Path) -> None:
    with open(out_path, "w") as out:
        for i in indices:
            fuser.fuse(*rows[i]).save(out)


def run_fusion(
    config: FusionConfig,
    technique: str,
    qrels: RelevanceTable | None = None,
) -> list[Path]:
    """Fuse every input directory with ``technique`` and write the fused rankings.

    With ``k_folds`` set, the queries judged in the qrels are split into
    folds; for each fold the fuser trains on that fold, fuses every other
    query, and is then cleared. Without it, every query is fused untrained.
    """
    input_dir = config.input_dir
    if not input_dir.is_dir():
        raise ConfigError(f"Directory [{input_dir}] not found")

    if qrels is None and config.qrel_file is not None:
        qrels = RelevanceTable.from_file(config.qrel_file)
    if config.k_folds and qrels is None:
        raise ConfigError("k_folds was set but no qrel_file was specified")

    config.result_dir.mkdir(parents=True, exist_ok=True)
    written = []

    logger.info("using technique for fusion", technique=technique, input_dir=str(input_dir))
    for directory in find_input_dirs(input_dir):
        inputs = sorted(directory.glob(INPUT_GLOB))
        if not inputs:
            continue
        logger.info("fusing inputs from directory", directory=str(directory), inputs=[p.name for p in inputs])

        fuser = create_fuser(technique, qrels, config, directory=directory)

        if not config.k_folds:
            rows = read_query_rows(inputs)
            out_path = config.result_dir / output_name(input_dir, directory, fuser.description())
            _fuse_rows(fuser, rows, range(len(rows)), out_path)
            written.append(out_path)
            continue

        fuser.run_id = f"{fuser.run_id}_f{config.k_folds}"
        rows = read_query_rows(inputs, limit=qrels.query_count())

        for k, fold in enumerate(fold_indices(len(rows), config.k_folds), start=1):
            logger.info("fusing fold", fold=k, directory=str(directory), training_queries=len(fold))
            for i in fold:
                fuser.train(*rows[i])

            training = set(fold)
            out_path = config.result_dir / output_name(input_dir, directory, fuser.description(), fold=k)
            _fuse_rows(fuser, rows, [i for i in range(len(rows)) if i not in training], out_path)
            written.append(out_path)
            fuser.clear()

    return written


def evaluate_results(config: FusionConfig, all_measures: bool = False) -> list[Path]:
    """Run trec_eval over every fused output and store its report in the eval directory."""
    if config.qrel_file is None:
        raise ConfigError("No qrel file specified")
    logger.info("using qrel file", qrel_file=str(config.qrel_file))

    config.eval_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for result in sorted(config.result_dir.rglob("*.out")):
        name = "_".join(result.relative_to(config.result_dir).parts)
        eval_path = config.eval_dir / (name[: -len(".out")] + ".eval")

        logger.info("evaluating", path=str(result))
        report = run_trec_eval(config.qrel_file, result, all_measures=all_measures)

        eval_path.write_text(report)
        logger.info("saved evaluation", path=str(eval_path))
        written.append(eval_path)
    return written
