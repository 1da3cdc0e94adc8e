from enum import Enum

from pydantic import BaseModel, Field

from trecfuse.errors import DataFormatError


class Relevance(Enum):
    """Judgment for a (query, document) pair. Absence from the qrels is UNJUDGED, not NONRELEVANT."""
    RELEVANT = "relevant"
    NONRELEVANT = "nonrelevant"
    UNJUDGED = "unjudged"

    @classmethod
    def from_grade(cls, grade: int) -> "Relevance":
        return cls.RELEVANT if grade > 0 else cls.NONRELEVANT


class ResultLine(BaseModel):
    """One line of a ranking file: ``qid iter docno rank sim run_id``.

    Query id and document id identify the line and cannot be reassigned;
    rank and score are rewritten by sorting, normalisation and fusion.
    """
    qid: str = Field(..., frozen=True, description="Query (topic) identifier")
    iteration: str = Field(default="Q0", description="Iteration label, informational only")
    docno: str = Field(..., frozen=True, description="Document identifier")
    rank: int = Field(default=0, description="Position within the result set")
    score: float = Field(..., description="Similarity score assigned by the system")
    run_id: str = Field(default="", description="Run that produced the line")

    @classmethod
    def parse(cls, raw: str) -> "ResultLine":
        fields = raw.strip().split(maxsplit=5)
        if len(fields) != 6:
            raise DataFormatError(f"Invalid TREC ranking entry: [{raw.rstrip()}]")
        qid, iteration, docno, rank, score, run_id = fields
        try:
            rank_value = int(rank)
            score_value = float(score)
        except ValueError:
            raise DataFormatError(f"Non-numeric rank or score in ranking entry: [{raw.rstrip()}]") from None
        # Skip validation: the fields are already typed and this runs once per input line
        return cls.model_construct(
            qid=qid,
            iteration=iteration,
            docno=docno,
            rank=rank_value,
            score=score_value,
            run_id=run_id,
        )

    def fields(self) -> tuple[str, str, str, str, str, str]:
        return (self.qid, self.iteration, self.docno, str(self.rank), str(self.score), self.run_id)

    def to_line(self) -> str:
        return "\t".join(self.fields())


class QRelLine(BaseModel):
    """One line of a judgment file: ``qid iter docno rel``."""
    qid: str
    iteration: str = "0"
    docno: str
    grade: int

    @classmethod
    def parse(cls, raw: str) -> "QRelLine":
        fields = raw.split()
        if len(fields) != 4:
            raise DataFormatError(f"Invalid TREC judgment entry: [{raw.rstrip()}]")
        qid, iteration, docno, grade = fields
        try:
            grade_value = int(grade)
        except ValueError:
            raise DataFormatError(f"Non-integer relevance grade in judgment entry: [{raw.rstrip()}]") from None
        return cls.model_construct(qid=qid, iteration=iteration, docno=docno, grade=grade_value)

    @property
    def relevance(self) -> Relevance:
        return Relevance.from_grade(self.grade)
