"""CombMNZ (Fox & Shaw, TREC-2): normalised score sum times the number of systems returning the document."""

from collections import defaultdict

import structlog

from trecfuse.fusion.base import Fuser
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet

logger = structlog.get_logger(__name__)


class CombMNZ(Fuser):
    name = "CombMNZ"
    iteration = "1"

    def __init__(self, qrels: RelevanceTable | None = None, run_id: str | None = None):
        if qrels is None:
            logger.warning(
                "CombMNZ does not require a qrel_file, however inconsistencies may arise if it is not specified",
                algorithm=self.name,
            )
        super().__init__(qrels, run_id)

    def _train(self, qid: str, result_sets: tuple[ResultSet, ...]) -> None:
        pass  # untrained

    def _finalize(self) -> None:
        pass

    def _reset(self) -> None:
        pass

    def _score(self, qid: str, result_sets: tuple[ResultSet, ...]) -> dict[str, float]:
        sums: dict[str, float] = defaultdict(float)
        mnz: dict[str, int] = defaultdict(int)

        for rs in result_sets:
            rs.normalize()
            for line in rs:
                sums[line.docno] += line.score
                mnz[line.docno] += 1

        # Dropping the mnz factor gives CombSUM
        return {docno: total * mnz[docno] for docno, total in sums.items()}
