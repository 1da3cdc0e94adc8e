import pytest

from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet
from trecfuse.schemas import ResultLine


def build_result_set(qid: str, docs: list[tuple[str, float]], run_id: str = "run", source: str | None = None) -> ResultSet:
    """Result set from (docno, score) pairs; ranks are left for sort() to assign."""
    return ResultSet(
        (ResultLine(qid=qid, iteration="Q0", docno=docno, rank=0, score=score, run_id=run_id) for docno, score in docs),
        source=source,
    )


@pytest.fixture
def make_rs():
    return build_result_set


@pytest.fixture
def qrels():
    """Judgments for queries 401 and 402; 403 has none."""
    return RelevanceTable([
        "401 0 d1 1",
        "401 0 d2 0",
        "401 0 d3 2",
        "401 0 d5 0",
        "402 0 e1 1",
        "402 0 e2 0",
    ])
