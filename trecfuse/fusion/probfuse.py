"""ProbFuse (Lillis et al., AICS 2005).

Each result set is split into ``x`` equal segments (by its own length).
Training keeps, per system and segment, a running average of the fraction
of relevant documents in that segment. A document's fused score is the sum
over systems of ``probability[segment] / segment``.
"""

import math
from typing import Literal

import numpy as np
import structlog

from trecfuse.errors import ConfigError
from trecfuse.fusion.base import Fuser
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet
from trecfuse.schemas import Relevance

logger = structlog.get_logger(__name__)

Denominator = Literal["all", "judged"]
DENOMINATORS = ("all", "judged")


class ProbFuse(Fuser):
    """``denominator`` selects what a segment's relevant count is divided by:
    every document in the segment (``all``) or only the judged ones (``judged``).
    """

    name = "ProbFuse"
    requires_qrels = True

    def __init__(
        self,
        qrels: RelevanceTable | None = None,
        x: int | None = None,
        denominator: Denominator = "all",
        run_id: str | None = None,
    ):
        if x is None:
            raise ConfigError("Cannot run ProbFuse as the 'probfuse.x' parameter was not set", algorithm=self.name)
        if x < 1:
            raise ConfigError(f"'probfuse.x' must be a positive integer, got {x}", algorithm=self.name)
        if denominator not in DENOMINATORS:
            raise ConfigError(f"Invalid denominator option chosen: {denominator!r}", algorithm=self.name)
        self.x = x
        self.denominator = denominator
        super().__init__(qrels, run_id)
        self._reset()

    def default_run_id(self) -> str:
        return f"ProbFuse_x{self.x}"

    def _reset(self) -> None:
        # Column k holds segment k; column 0 is unused
        self._probabilities: np.ndarray | None = None
        self._instances: np.ndarray | None = None

    def _allocate(self, systems: int) -> None:
        if self._probabilities is None:
            self._probabilities = np.zeros((systems, self.x + 1), dtype=np.float64)
            self._instances = np.zeros((systems, self.x + 1), dtype=np.int64)

    def segment(self, rs: ResultSet) -> dict[str, int]:
        """Map each document to its segment (1..x); each segment holds ceil(size / x) positions."""
        size = len(rs)
        if size == 0:
            return {}

        k = math.ceil(size / self.x)
        segmented = {docno: position // k + 1 for position, docno in enumerate(rs.get_docnos())}

        found = len(set(segmented.values()))
        if found != self.x:
            logger.warning(
                "segment count differs from x",
                algorithm=self.name,
                qid=rs.qid,
                x=self.x,
                segments=found,
                documents=size,
            )
        return segmented

    def _train(self, qid: str, result_sets: tuple[ResultSet, ...]) -> None:
        self._allocate(len(result_sets))

        for i, rs in enumerate(result_sets):
            relevant = np.zeros(self.x + 1, dtype=np.int64)
            nonrelevant = np.zeros(self.x + 1, dtype=np.int64)
            unjudged = np.zeros(self.x + 1, dtype=np.int64)

            for docno, seg in self.segment(rs).items():
                judgment = self._qrels.is_relevant(qid, docno)
                if judgment is Relevance.RELEVANT:
                    relevant[seg] += 1
                elif judgment is Relevance.NONRELEVANT:
                    nonrelevant[seg] += 1
                else:
                    unjudged[seg] += 1

            self._update(i, relevant[1:], nonrelevant[1:], unjudged[1:])

    def _update(self, system: int, relevant: np.ndarray, nonrelevant: np.ndarray, unjudged: np.ndarray) -> None:
        """Fold one training query into the running averages for segments 1..x.

        The instance counter advances for every segment, including those with
        no judged documents, whose average is left unchanged.
        """
        judged = relevant + nonrelevant
        has_judged = judged > 0
        denominator = judged + unjudged if self.denominator == "all" else judged
        instance = np.divide(relevant, denominator, out=np.zeros(self.x), where=has_judged)

        seen = self._instances[system, 1:]
        old = self._probabilities[system, 1:]
        self._probabilities[system, 1:] = np.where(has_judged, (old * seen + instance) / (seen + 1), old)
        self._instances[system, 1:] += 1

    def _finalize(self) -> None:
        pass  # averages are kept up to date by every training call

    @property
    def probabilities(self) -> np.ndarray:
        """Per-system, per-segment probability; column k is segment k."""
        if self._probabilities is None:
            return np.zeros((self.expected_inputs or 0, self.x + 1))
        return self._probabilities.copy()

    def _score(self, qid: str, result_sets: tuple[ResultSet, ...]) -> dict[str, float]:
        scores: dict[str, float] = {}

        for i, rs in enumerate(result_sets):
            for docno, seg in self.segment(rs).items():
                probability = 0.0
                if self._probabilities is not None:
                    probability = float(self._probabilities[i, seg])
                scores[docno] = scores.get(docno, 0.0) + probability / seg

        return scores
