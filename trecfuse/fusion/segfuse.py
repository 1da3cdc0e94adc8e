"""SegFuse (Shokouhi, ECIR 2007).

Rank positions are grouped into segments of geometrically increasing size,
``size_k = 10 * 2**(k - 1) - 5``, the same for every result set. Training
averages the per-query fraction of relevant documents in each segment; a
fused score sums ``probability * (normalised score + 1)`` over systems.
"""

import numpy as np

from trecfuse.fusion.base import Fuser
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet
from trecfuse.schemas import Relevance

# Segments are laid out until one starts beyond this position
LAST_SEGMENT_START = 1000


def segment_size(k: int) -> int:
    return 10 * 2 ** (k - 1) - 5


def _build_segment_table() -> np.ndarray:
    """Segment number for every covered position; 0 marks positions outside all segments.

    Segment bounds are inclusive at both ends, so each segment's last position is
    overwritten by the next segment except for the final one, which keeps it.
    """
    bounds = []
    start, k = 0, 1
    while start <= LAST_SEGMENT_START:
        size = segment_size(k)
        bounds.append((start, start + size, k))
        start += size
        k += 1

    table = np.zeros(start + 1, dtype=np.int64)
    for first, end, k in bounds:
        table[first:end + 1] = k
    return table


SEGMENTS = _build_segment_table()
SEGMENT_COUNT = int(SEGMENTS.max())


def segment_of(position: int) -> int:
    return int(SEGMENTS[position]) if position < len(SEGMENTS) else 0


class SegFuse(Fuser):
    name = "SegFuse"
    requires_qrels = True

    def __init__(self, qrels: RelevanceTable | None = None, run_id: str | None = None):
        super().__init__(qrels, run_id)
        self._reset()

    def _reset(self) -> None:
        # Column 0 is the "no segment" bucket and always stays zero
        self._sums: np.ndarray | None = None
        self._probabilities: np.ndarray | None = None
        self.training_queries = 0

    def _allocate(self, systems: int) -> None:
        if self._sums is None:
            self._sums = np.zeros((systems, SEGMENT_COUNT + 1), dtype=np.float64)

    def _segments(self, rs: ResultSet) -> np.ndarray:
        covered = min(len(rs), len(SEGMENTS))
        return np.concatenate((SEGMENTS[:covered], np.zeros(len(rs) - covered, dtype=np.int64)))

    def _train(self, qid: str, result_sets: tuple[ResultSet, ...]) -> None:
        self._allocate(len(result_sets))

        for i, rs in enumerate(result_sets):
            segments = self._segments(rs)
            relevant = np.fromiter(
                (self._qrels.is_relevant(qid, docno) is Relevance.RELEVANT for docno in rs.get_docnos()),
                dtype=bool,
                count=len(rs),
            )
            totals = np.bincount(segments, minlength=SEGMENT_COUNT + 1)
            hits = np.bincount(segments[relevant], minlength=SEGMENT_COUNT + 1)
            fractions = np.divide(hits, totals, out=np.zeros(SEGMENT_COUNT + 1), where=totals > 0)
            fractions[0] = 0.0
            self._sums[i] += fractions

        self.training_queries += 1

    def _finalize(self) -> None:
        if self._sums is None or self.training_queries == 0:
            return
        self._probabilities = self._sums / self.training_queries

    @property
    def probabilities(self) -> np.ndarray:
        """Per-system, per-segment mean probability; column k is segment k (available after finalize)."""
        if self._probabilities is None:
            return np.zeros((self.expected_inputs or 0, SEGMENT_COUNT + 1))
        return self._probabilities.copy()

    def _score(self, qid: str, result_sets: tuple[ResultSet, ...]) -> dict[str, float]:
        scores: dict[str, float] = {}

        for i, rs in enumerate(result_sets):
            rs.normalize()
            for position, line in enumerate(rs):
                probability = 0.0
                if self._probabilities is not None:
                    probability = float(self._probabilities[i, segment_of(position)])
                scores[line.docno] = scores.get(line.docno, 0.0) + probability * (line.score + 1)

        return scores
