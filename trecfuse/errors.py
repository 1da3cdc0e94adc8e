"""Exception taxonomy for fusion runs.

Every error carries the algorithm and query it was raised for (when known)
so a driver can report which fusion run failed and decide whether to skip
the query or abort the experiment.
"""


class FusionError(Exception):
    """Base class for all trecfuse errors."""

    def __init__(self, message: str, *, algorithm: str | None = None, qid: str | None = None):
        self.algorithm = algorithm
        self.qid = qid
        prefix = f"[{algorithm}]: " if algorithm else ""
        suffix = f" (query {qid})" if qid is not None else ""
        super().__init__(f"{prefix}{message}{suffix}")


class ValidationError(FusionError):
    """Inputs to train/fuse are inconsistent with each other or with earlier calls."""


class InconsistentInputError(ValidationError):
    pass


class MismatchedQueryError(ValidationError):
    pass


class StateError(FusionError):
    """An operation was attempted in a lifecycle state that forbids it."""


class TrainingClosedError(StateError):
    pass


class AppendAfterNormalizeError(StateError):
    pass


class ConfigError(FusionError):
    """Missing or invalid construction-time parameter."""


class MissingScoreError(FusionError):
    """No MAP value configured for a system MAPFuse needs."""


class DataFormatError(FusionError):
    """Malformed ranking or judgment line."""


class EvaluationError(FusionError):
    """The external evaluator could not be run or produced no output."""
