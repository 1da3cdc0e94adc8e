"""Shared contract for fusion algorithms.

Every algorithm goes through the same lifecycle::

    CREATED --train--> TRAINING --finalize--> FINALIZED --fuse--> FUSED
       ^                                                            |
       +---------------------------- clear -------------------------+

``fuse`` finalizes implicitly, and once finalized an instance accepts no
more training until ``clear`` resets it (e.g. between k-fold partitions).
The number of input result sets is fixed by the first ``train`` or ``fuse``
call and every later call must pass the same number, in the same system
order, all for one query.
"""

from abc import ABC, abstractmethod
from enum import Enum

import structlog

from trecfuse.errors import ConfigError, InconsistentInputError, MismatchedQueryError, TrainingClosedError
from trecfuse.retrieval.qrels import RelevanceTable
from trecfuse.retrieval.result_set import ResultSet, same_qid
from trecfuse.schemas import ResultLine

logger = structlog.get_logger(__name__)


class FuserState(Enum):
    CREATED = "created"
    TRAINING = "training"
    FINALIZED = "finalized"
    FUSED = "fused"


class Fuser(ABC):
    name = "Fuser"
    requires_qrels = False
    iteration = "Q0"

    def __init__(self, qrels: RelevanceTable | None = None, run_id: str | None = None):
        if self.requires_qrels and qrels is None:
            raise ConfigError(f"Cannot train {self.name} as no qrel_file was specified", algorithm=self.name)
        self._qrels = qrels
        self._run_id = run_id or self.default_run_id()
        self.state = FuserState.CREATED
        self.expected_inputs: int | None = None

    def default_run_id(self) -> str:
        return self.name

    @property
    def run_id(self) -> str:
        return self._run_id

    @run_id.setter
    def run_id(self, value: str) -> None:
        if value:
            self._run_id = value

    def description(self) -> str:
        return self._run_id

    def qrels(self) -> RelevanceTable | None:
        return self._qrels

    @property
    def training_closed(self) -> bool:
        return self.state in (FuserState.FINALIZED, FuserState.FUSED)

    def _check_inputs(self, result_sets: tuple[ResultSet, ...]) -> str | None:
        if self.expected_inputs is None:
            if not result_sets:
                raise InconsistentInputError("No result sets supplied", algorithm=self.name)
            self.expected_inputs = len(result_sets)

        if len(result_sets) != self.expected_inputs:
            raise InconsistentInputError(
                f"Inconsistent number of result sets used: expected {self.expected_inputs}, got {len(result_sets)}",
                algorithm=self.name,
            )
        if not same_qid(result_sets):
            qids = sorted({str(rs.qid) for rs in result_sets})
            raise MismatchedQueryError(f"Result sets relate to different queries: {qids}", algorithm=self.name)

        return next((rs.qid for rs in result_sets if rs.qid is not None), None)

    def train(self, *result_sets: ResultSet) -> None:
        if self.training_closed:
            raise TrainingClosedError("Training finished, as fusion has occurred", algorithm=self.name)

        qid = self._check_inputs(result_sets)
        self.state = FuserState.TRAINING
        self._train(qid, result_sets)
        logger.debug("trained on query", algorithm=self.name, qid=qid, inputs=len(result_sets))

    def finalize(self) -> None:
        if self.training_closed:
            return
        self._finalize()
        self.state = FuserState.FINALIZED
        logger.debug("training finalized", algorithm=self.name)

    def fuse(self, *result_sets: ResultSet) -> ResultSet:
        self.finalize()
        qid = self._check_inputs(result_sets)
        scores = self._score(qid, result_sets)
        self.state = FuserState.FUSED
        logger.debug("fused query", algorithm=self.name, qid=qid, documents=len(scores))
        return self._build(qid, scores)

    def clear(self) -> None:
        """Drop all training data and reopen training, as for a new instance."""
        self._reset()
        self.expected_inputs = None
        self.state = FuserState.CREATED

    def _build(self, qid: str | None, scores: dict[str, float]) -> ResultSet:
        # Equal scores fall back to document id so output is stable across runs
        ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        lines = [
            ResultLine(
                qid=qid,
                iteration=self.iteration,
                docno=docno,
                rank=rank,
                score=score,
                run_id=self._run_id,
            )
            for rank, (docno, score) in enumerate(ordered)
        ]
        return ResultSet.ranked(qid, lines)

    @abstractmethod
    def _train(self, qid: str, result_sets: tuple[ResultSet, ...]) -> None:
        ...

    @abstractmethod
    def _finalize(self) -> None:
        ...

    @abstractmethod
    def _score(self, qid: str, result_sets: tuple[ResultSet, ...]) -> dict[str, float]:
        ...

    @abstractmethod
    def _reset(self) -> None:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(run_id={self._run_id!r}, state={self.state.value})"
