from collections.abc import Iterable
from pathlib import Path

import structlog

from trecfuse.errors import ConfigError
from trecfuse.retrieval.result_set import ResultSet
from trecfuse.schemas import QRelLine, Relevance

logger = structlog.get_logger(__name__)


class RelevanceTable:
    """In-memory judgment table, read-only once built.

    Grades above zero count as relevant, any other grade as judged
    non-relevant; pairs missing from the table are unjudged.
    """

    def __init__(self, lines: Iterable[QRelLine | str] = (), path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._judgments: dict[str, dict[str, Relevance]] = {}
        for line in lines:
            if isinstance(line, str):
                if not line.strip():
                    continue
                line = QRelLine.parse(line)
            self._judgments.setdefault(line.qid, {})[line.docno] = line.relevance

    @classmethod
    def from_file(cls, path: str | Path) -> "RelevanceTable":
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"qrel_file not found [{path}]")

        logger.info("parsing qrel file", path=str(path))
        try:
            with open(path) as f:
                table = cls(f, path=path)
        except OSError as e:
            raise ConfigError(f"Could not read qrel file [{path}]: {e}") from e
        logger.info("finished parsing qrel file", path=str(path), queries=table.query_count())
        return table

    def is_relevant(self, qid: str, docno: str) -> Relevance:
        return self._judgments.get(qid, {}).get(docno, Relevance.UNJUDGED)

    def has_query(self, qid: str) -> bool:
        return qid in self._judgments

    def query_count(self) -> int:
        return len(self._judgments)

    def queries(self) -> list[str]:
        return list(self._judgments)

    def _filter(self, rs: ResultSet, wanted: Relevance) -> list[str]:
        if not self.has_query(rs.qid):
            logger.warning("no relevance judgments for query in qrel file", qid=rs.qid)
        judged = self._judgments.get(rs.qid, {})
        return [docno for docno in rs.get_docnos() if judged.get(docno, Relevance.UNJUDGED) is wanted]

    def get_relevant(self, rs: ResultSet) -> list[str]:
        return self._filter(rs, Relevance.RELEVANT)

    def get_nonrelevant(self, rs: ResultSet) -> list[str]:
        """Documents judged non-relevant; unjudged documents are not included."""
        return self._filter(rs, Relevance.NONRELEVANT)

    def __len__(self) -> int:
        return sum(len(docs) for docs in self._judgments.values())
