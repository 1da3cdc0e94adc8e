"""MAPFuse: each system votes ``MAP / (position + 1)`` for its documents.

MAP values are not learned; they come from configuration, keyed by
``<parent>_<dir>_<source>`` (lowercase), where ``<parent>/<dir>`` are the last
two components of the experiment directory and ``<source>`` is the input
file name without its ``input.`` prefix. Without a directory the key is
just ``<source>``.
"""

from pathlib import Path

from trecfuse.errors import ConfigError, MissingScoreError
from trecfuse.fusion.base import Fuser
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet


def system_key(directory: str | Path, source: str | Path) -> str:
    base = "_".join(Path(directory).parts[-2:])
    name = Path(source).name.replace("input.", "", 1)
    return f"{base}_{name}".lower()


class MAPFuse(Fuser):
    name = "MAPFuse"

    def __init__(
        self,
        qrels: RelevanceTable | None = None,
        map_scores: dict[str, float] | None = None,
        directory: str | Path | None = None,
        run_id: str | None = None,
    ):
        if map_scores is None:
            raise ConfigError("Cannot run MAPFuse without configured MAP scores", algorithm=self.name)
        self.map_scores = {key.lower(): value for key, value in map_scores.items()}
        self.directory = Path(directory) if directory is not None else None
        super().__init__(qrels, run_id)

    def _train(self, qid: str, result_sets: tuple[ResultSet, ...]) -> None:
        pass  # MAP scores are configured, so problems surface at fusion time

    def _finalize(self) -> None:
        pass

    def _reset(self) -> None:
        pass

    def key_for(self, rs: ResultSet) -> str:
        if rs.source is None:
            raise MissingScoreError("Result set has no source file to derive a MAP key from", algorithm=self.name, qid=rs.qid)
        if self.directory is None:
            return Path(rs.source).name.replace("input.", "", 1).lower()
        return system_key(self.directory, rs.source)

    def _score(self, qid: str, result_sets: tuple[ResultSet, ...]) -> dict[str, float]:
        scores: dict[str, float] = {}

        for rs in result_sets:
            key = self.key_for(rs)
            if key not in self.map_scores:
                raise MissingScoreError(f'No MAP score set (entry should be "{key}")', algorithm=self.name, qid=qid)
            map_score = self.map_scores[key]

            for position, docno in enumerate(rs.get_docnos()):
                scores[docno] = scores.get(docno, 0.0) + map_score / (position + 1)

        return scores
