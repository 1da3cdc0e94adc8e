import os
import shutil
import subprocess
import tempfile
from pathlib import Path

import structlog

from trecfuse.errors import EvaluationError
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet

logger = structlog.get_logger(__name__)

TREC_EVAL_BINARY = os.getenv("TREC_EVAL", "trec_eval")


def run_trec_eval(qrel_file: str | Path, result_file: str | Path, all_measures: bool = False) -> str:
    """Run trec_eval and return its raw stdout."""
    binary = shutil.which(TREC_EVAL_BINARY)
    if binary is None:
        raise EvaluationError(f"{TREC_EVAL_BINARY} not found. Is it in your PATH?")

    command = [binary]
    if all_measures:
        command.append("-a")
    command += [str(qrel_file), str(result_file)]

    try:
        completed = subprocess.run(command, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as e:
        raise EvaluationError(f"trec_eval failed with exit code {e.returncode}: {e.stderr.strip()}") from e

    if not completed.stdout.strip():
        raise EvaluationError(f"No eval output for [{result_file}]")
    return completed.stdout


def parse_trec_eval(output: str) -> dict[str, float | str]:
    """Map each measure name to its value (the third column); non-numeric values stay strings."""
    measures: dict[str, float | str] = {}
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        try:
            measures[fields[0]] = float(fields[2])
        except ValueError:
            measures[fields[0]] = fields[2]
    return measures


class TrecEval:
    """Summary measures (map, P10, num_rel_ret, ...) for one result set."""

    def __init__(self, result_set: ResultSet, qrels: RelevanceTable | str | Path, all_measures: bool = False):
        if isinstance(qrels, RelevanceTable):
            if qrels.path is None:
                raise EvaluationError("Relevance table was not loaded from a file")
            qrels = qrels.path

        fd, temp_path = tempfile.mkstemp(prefix="result_set.", suffix=".temp")
        try:
            with os.fdopen(fd, "w") as f:
                result_set.save(f)
            output = run_trec_eval(qrels, temp_path, all_measures=all_measures)
        finally:
            os.unlink(temp_path)

        self.measures = parse_trec_eval(output)
        logger.debug("evaluated result set", qid=result_set.qid, measures=len(self.measures))

    def get(self, measure: str) -> float | str | None:
        return self.measures.get(measure)
