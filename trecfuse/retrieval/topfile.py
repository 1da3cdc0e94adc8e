import gzip
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from trecfuse.retrieval.result_set import ResultSet
from trecfuse.schemas import ResultLine


class TopFile:
    """Streaming reader for a ranking ("top") file, one query's ResultSet at a time.

    Lines for a query must be contiguous; a change of query id ends the
    current set. Files ending in ``.gz`` are decompressed on the fly.

    Usage::

        with TopFile("input.run1.gz") as top:
            for rs in top:
                ...
    """

    def __init__(self, path: str | Path, presorted: bool = True):
        self.path = Path(path)
        # Ranking files are already in rank order, so sets read from them are not re-sorted
        self.presorted = presorted
        self._file: TextIO | None = None
        self._pending: ResultLine | None = None
        self._open()

    def _open(self) -> None:
        if self.path.suffix == ".gz":
            self._file = gzip.open(self.path, "rt")
        else:
            self._file = open(self.path)
        try:
            self._advance()
        except Exception:
            self.close()
            raise

    def _advance(self) -> ResultLine | None:
        self._pending = None
        for raw in self._file:
            if raw.strip():
                self._pending = ResultLine.parse(raw)
                break
        return self._pending

    def has_more(self) -> bool:
        return self._pending is not None

    def next_result_set(self) -> ResultSet | None:
        if self._pending is None:
            return None

        rs = ResultSet(source=str(self.path))
        rs.add(self._pending)
        while self._advance() is not None and rs.add(self._pending):
            pass

        if self.presorted:
            rs.is_sorted = True
        return rs

    def reset(self) -> None:
        """Rewind so the next call returns the first query's set again."""
        self.close()
        self._open()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __iter__(self) -> Iterator[ResultSet]:
        while (rs := self.next_result_set()) is not None:
            yield rs

    def __enter__(self) -> "TopFile":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"TopFile({str(self.path)!r})"
