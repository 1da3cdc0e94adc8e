"""SlideFuse (Lillis et al., ECIR 2008).

Same per-position training as PosFuse, but each position's probability is
replaced by the mean over a sliding window of ``radius`` positions either
side, truncated at the first and last trained position.
"""

import numpy as np

from trecfuse.fusion.posfuse import PosFuse
from trecfuse.retrieval.qrels import RelevanceTable

DEFAULT_RADIUS = 5


class SlideFuse(PosFuse):
    name = "SlideFuse"

    def __init__(self, qrels: RelevanceTable | None = None, radius: int = DEFAULT_RADIUS, run_id: str | None = None):
        if radius < 0:
            raise ValueError("radius must be >= 0")
        self.radius = radius
        super().__init__(qrels, run_id)

    def default_run_id(self) -> str:
        return f"SlideFuse_x{self.radius}"

    def _reset(self) -> None:
        super()._reset()
        self._window: np.ndarray | None = None

    def _finalize(self) -> None:
        super()._finalize()
        if self._probabilities is None:
            return

        self._window = np.zeros_like(self._probabilities)
        for i, length in enumerate(self._lengths):
            length = int(length)
            if length == 0:
                continue
            positions = np.arange(length)
            start = np.maximum(positions - self.radius, 0)
            end = np.minimum(positions + self.radius, length - 1)
            cumulative = np.concatenate(([0.0], np.cumsum(self._probabilities[i, :length])))
            self._window[i, :length] = (cumulative[end + 1] - cumulative[start]) / (end - start + 1)

    @property
    def window(self) -> np.ndarray:
        """Per-system, per-position windowed probability (available after finalize)."""
        if self._window is None:
            return np.zeros((self.expected_inputs or 0, 0))
        return self._window.copy()

    def _table(self) -> np.ndarray | None:
        return self._window
