"""PosFuse: probability of relevance at each rank position, learned per system.

Training counts, per system and per position, how often a document occupied
the position and how often that document was judged relevant. A fused score
is the sum over systems of the probability at the document's position.
"""

import numpy as np

from trecfuse.fusion.base import Fuser
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet
from trecfuse.schemas import Relevance


class PosFuse(Fuser):
    name = "PosFuse"
    requires_qrels = True

    def __init__(self, qrels: RelevanceTable | None = None, run_id: str | None = None):
        super().__init__(qrels, run_id)
        self._reset()

    def _reset(self) -> None:
        # Rows are systems, columns rank positions; columns grow with the longest set seen
        self._totals: np.ndarray | None = None
        self._relevant: np.ndarray | None = None
        self._lengths: np.ndarray | None = None
        self._probabilities: np.ndarray | None = None

    def _allocate(self, systems: int) -> None:
        if self._totals is None:
            self._totals = np.zeros((systems, 0), dtype=np.int64)
            self._relevant = np.zeros((systems, 0), dtype=np.int64)
            self._lengths = np.zeros(systems, dtype=np.int64)

    def _grow(self, width: int) -> None:
        extra = width - self._totals.shape[1]
        if extra > 0:
            self._totals = np.pad(self._totals, ((0, 0), (0, extra)))
            self._relevant = np.pad(self._relevant, ((0, 0), (0, extra)))

    def _train(self, qid: str, result_sets: tuple[ResultSet, ...]) -> None:
        self._allocate(len(result_sets))
        self._grow(max(len(rs) for rs in result_sets))

        for i, rs in enumerate(result_sets):
            size = len(rs)
            self._totals[i, :size] += 1
            for position, line in enumerate(rs):
                if self._qrels.is_relevant(qid, line.docno) is Relevance.RELEVANT:
                    self._relevant[i, position] += 1
            self._lengths[i] = max(self._lengths[i], size)

    def _finalize(self) -> None:
        if self._totals is None:
            return
        self._probabilities = np.divide(
            self._relevant,
            self._totals,
            out=np.zeros(self._totals.shape, dtype=np.float64),
            where=self._totals > 0,
        )

    @property
    def probabilities(self) -> np.ndarray:
        """Per-system, per-position probability of relevance (available after finalize)."""
        if self._probabilities is None:
            return np.zeros((self.expected_inputs or 0, 0))
        return self._probabilities.copy()

    def _table(self) -> np.ndarray | None:
        return self._probabilities

    def _score(self, qid: str, result_sets: tuple[ResultSet, ...]) -> dict[str, float]:
        table = self._table()
        scores: dict[str, float] = {}

        for i, rs in enumerate(result_sets):
            trained = int(self._lengths[i]) if table is not None else 0
            for position, docno in enumerate(rs.get_docnos()):
                value = float(table[i, position]) if position < trained else 0.0
                scores[docno] = scores.get(docno, 0.0) + value

        return scores
