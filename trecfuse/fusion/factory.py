from pathlib import Path

from trecfuse.config import FusionConfig
from trecfuse.errors import ConfigError
from trecfuse.fusion.base import Fuser
from trecfuse.fusion.combmnz import CombMNZ
from trecfuse.fusion.mapfuse import MAPFuse
from trecfuse.fusion.posfuse import PosFuse
from trecfuse.fusion.probfuse import ProbFuse
from trecfuse.fusion.segfuse import SegFuse
from trecfuse.fusion.slidefuse import SlideFuse
from trecfuse.retrieval.qrels import RelevanceTable

TECHNIQUES: dict[str, type[Fuser]] = {
    cls.name.lower(): cls for cls in (CombMNZ, SlideFuse, PosFuse, SegFuse, ProbFuse, MAPFuse)
}


def available_techniques() -> list[str]:
    return [cls.name for cls in TECHNIQUES.values()]


def create_fuser(
    technique: str,
    qrels: RelevanceTable | None,
    config: FusionConfig | None = None,
    directory: str | Path | None = None,
) -> Fuser:
    """Build a fuser by (case-insensitive) name, taking its parameters from ``config``."""
    cls = TECHNIQUES.get(technique.lower())
    if cls is None:
        raise ConfigError(f"Unknown fusion technique {technique!r}; choose from {', '.join(available_techniques())}")
    config = config or FusionConfig()

    if cls is ProbFuse:
        return ProbFuse(qrels, x=config.probfuse_x, denominator=config.denominator)
    if cls is SlideFuse:
        return SlideFuse(qrels, radius=config.slidefuse_window)
    if cls is MAPFuse:
        return MAPFuse(qrels, map_scores=config.map_scores, directory=directory)
    return cls(qrels)
