from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TextIO

import numpy as np

from trecfuse.errors import AppendAfterNormalizeError
from trecfuse.schemas import ResultLine


class ResultSet:
    """Ranked lines for a single query.

    The query id is fixed by the first line added. Ordering is restored
    lazily: mutations only clear the ``sorted`` flag and the next positional
    read sorts by descending score and renumbers ranks 1..N.
    """

    def __init__(self, lines: Iterable[ResultLine | str] = (), source: str | None = None):
        self.qid: str | None = None
        self.source = source
        self.lines: list[ResultLine] = []
        self.is_sorted = True
        self.is_normalized = False
        for line in lines:
            self.add(line)

    @classmethod
    def ranked(cls, qid: str, lines: list[ResultLine], source: str | None = None) -> "ResultSet":
        """Wrap lines that are already in rank order, keeping their ranks as given."""
        rs = cls(source=source)
        rs.qid = qid
        rs.lines = lines
        rs.is_sorted = True
        return rs

    def add(self, line: ResultLine | str) -> bool:
        """Append a line; returns False (without adding) if it belongs to another query."""
        if self.is_normalized:
            raise AppendAfterNormalizeError("Cannot add lines after normalisation", qid=self.qid)

        if isinstance(line, str):
            line = ResultLine.parse(line)

        if self.qid is None:
            self.qid = line.qid
        elif line.qid != self.qid:
            # Not an error: readers rely on this to find query boundaries
            return False

        self.lines.append(line)
        self.is_sorted = False
        return True

    def sort(self) -> None:
        self.lines.sort(key=lambda line: line.score, reverse=True)
        for i, line in enumerate(self.lines):
            line.rank = i + 1
        self.is_sorted = True

    def _ordered(self) -> list[ResultLine]:
        if not self.is_sorted:
            self.sort()
        return self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[ResultLine]:
        return iter(self._ordered())

    def __getitem__(self, position: int) -> ResultLine:
        return self.get_line(position)

    def size(self) -> int:
        return len(self.lines)

    def get_line(self, position: int) -> ResultLine:
        if not 0 <= position < len(self.lines):
            raise IndexError(f"ResultSet line {position} out of range (size {len(self.lines)})")
        return self._ordered()[position]

    def get_docnos(self) -> list[str]:
        return [line.docno for line in self._ordered()]

    def scores(self) -> np.ndarray:
        return np.fromiter((line.score for line in self._ordered()), dtype=np.float64, count=len(self.lines))

    def max_score(self) -> float:
        return self.get_line(0).score

    def min_score(self) -> float:
        return self.get_line(len(self.lines) - 1).score

    def normalize(self) -> None:
        """Min-max rescale scores into [0, 1]; every score becomes 1 when they are all equal.

        Runs once: later calls are no-ops, and the set is closed for appends afterwards.
        """
        if self.is_normalized:
            return

        if self.lines:
            # Take both bounds before rewriting any score
            high = self.max_score()
            low = self.min_score()
            for line in self.lines:
                line.score = 1.0 if high == low else (line.score - low) / (high - low)

        self.is_normalized = True

    def score_variance(self) -> float:
        if not self.lines:
            return 0.0
        return float(np.var(self.scores()))

    def subsets(self, *positions: int) -> list["ResultSet"]:
        """Split into contiguous chunks starting at 0 and at each position.

        Positions at or beyond the end (and 0 itself) are ignored. Subset lines
        are copies carrying the same scores; nothing is renormalised.
        """
        if any(p < 0 for p in positions):
            raise ValueError("Negative index cannot be used for subset")

        size = len(self.lines)
        ordered = self._ordered()
        bounds = [0, *sorted({p for p in positions if 0 < p < size}), size]

        subsets = []
        for start, end in zip(bounds, bounds[1:]):
            subsets.append(ResultSet((line.model_copy() for line in ordered[start:end]), source=self.source))
        return subsets

    def save(self, sink: str | Path | TextIO, limit: int | None = None) -> None:
        """Write up to ``limit`` lines (all by default) in rank order, tab-separated."""
        count = len(self.lines) if limit is None else min(limit, len(self.lines))

        if isinstance(sink, (str, Path)):
            with open(sink, "w") as f:
                self._write(f, count)
        else:
            self._write(sink, count)

    def _write(self, f: TextIO, count: int) -> None:
        for line in self._ordered()[:count]:
            f.write(line.to_line() + "\n")

    def __repr__(self) -> str:
        return f"ResultSet(qid={self.qid!r}, size={len(self.lines)}, source={self.source!r})"


def same_qid(result_sets: Iterable[ResultSet]) -> bool:
    qids = {rs.qid for rs in result_sets if rs.qid is not None}
    return len(qids) <= 1
