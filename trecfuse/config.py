"""Experiment configuration.

Experiments are described by a flat ``key=value`` file (``#`` starts a
comment), e.g.::

    qrel_file=/data/trec3/qrels.txt
    k_folds=5
    probfuse.x=25
    denominator=judged
    trec3_run1_inq101=0.2816   # MAP entries for MAPFuse

Keys are case-insensitive. Any key that is not a known setting but whose
value is a number is taken as a MAP entry.
"""

import os
from pathlib import Path
from typing import Literal

import pydantic
import structlog
from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator

from trecfuse.errors import ConfigError

logger = structlog.get_logger(__name__)

CONFIG_ENV_VAR = "TRECFUSE_CONFIG"
DEFAULT_CONFIG_PATH = Path("etc") / "fusion.conf"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class FusionConfig(BaseModel):
    base_dir: Path = Field(default_factory=Path.cwd, description="Experiment root; var/ lives under it")
    qrel_file: Path | None = Field(default=None, description="Judgment file used for training")
    k_folds: int | None = Field(default=None, ge=1, description="Number of folds for cross-validated training")
    probfuse_x: int | None = Field(default=None, ge=1, alias="probfuse.x", description="ProbFuse segments per result set")
    denominator: Literal["all", "judged"] = Field(default="all", description="ProbFuse probability denominator")
    slidefuse_window: int = Field(default=5, ge=0, alias="slidefuse.window", description="SlideFuse window radius")
    runs: int | None = Field(default=None, ge=1, description="Number of experiment directories to create")
    inputs_per_run: int | None = Field(default=None, ge=1, description="Input files per experiment directory")
    log_level: LogLevel = Field(default="INFO")
    map_scores: dict[str, float] = Field(default_factory=dict, description="MAP per system key, for MAPFuse")

    model_config = {"populate_by_name": True}

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @property
    def var_dir(self) -> Path:
        return self.base_dir / "var"

    @property
    def input_dir(self) -> Path:
        return self.var_dir / "input"

    @property
    def result_dir(self) -> Path:
        return self.var_dir / "result"

    @property
    def eval_dir(self) -> Path:
        return self.var_dir / "eval"


def _known_keys() -> set[str]:
    keys = set()
    for name, field in FusionConfig.model_fields.items():
        keys.add(name)
        if field.alias:
            keys.add(field.alias)
    return keys


def load_config(path: str | Path | None = None) -> FusionConfig:
    """Read a config file; defaults to $TRECFUSE_CONFIG, then ./etc/fusion.conf."""
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR, str(DEFAULT_CONFIG_PATH))
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config File {path} not found")

    raw = {key.lower(): value for key, value in dotenv_values(path).items() if value not in (None, "")}

    known = _known_keys()
    settings: dict[str, object] = {}
    map_scores: dict[str, float] = {}
    for key, value in raw.items():
        if key in known:
            settings[key] = value
            continue
        try:
            map_scores[key] = float(value)
        except ValueError:
            logger.debug("ignoring unknown config key", key=key, path=str(path))

    settings.setdefault("base_dir", path.resolve().parent)
    settings["map_scores"] = map_scores

    try:
        return FusionConfig(**settings)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
