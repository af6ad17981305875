"""
Processor configuration.

The configuration is an explicit value passed to the Processor (and from
there to the Evaluator); nothing reads global state at call time. Use
ProcessorConfig.from_env() to build one from BATCHLEARN_* environment
variables.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigError

BATCH_SIZE = 5000
EVALUATION_MEMORY_LIMIT = 500 * 1024 * 1024

ENV_PREFIX = "BATCHLEARN_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}", {"value": value})


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"Invalid integer for {name}", {"value": value}) from None


@dataclass(frozen=True)
class ProcessorConfig:
    """
    Args:
        no_evaluation_limits: Skip the evaluation memory guard and buffer the
                              whole dataset whatever its size.
        evaluation_memory_limit: Approximate byte budget for the buffered
                                 evaluation dataset.
        batch_size: Rows per training / prediction batch.
        random_state: Seed for the evaluation train/test splits. None draws a
                      new split every time.
        progress: Show tqdm progress bars while streaming batches.
    """

    no_evaluation_limits: bool = False
    evaluation_memory_limit: int = EVALUATION_MEMORY_LIMIT
    batch_size: int = BATCH_SIZE
    random_state: Optional[int] = None
    progress: bool = False

    def __post_init__(self):
        if self.batch_size < 1:
            raise ConfigError("batch_size must be positive", {"batch_size": self.batch_size})
        if self.evaluation_memory_limit < 1:
            raise ConfigError(
                "evaluation_memory_limit must be positive",
                {"evaluation_memory_limit": self.evaluation_memory_limit},
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProcessorConfig":
        """Build a config from BATCHLEARN_* variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        kwargs = {}

        name = ENV_PREFIX + "NO_EVALUATION_LIMITS"
        if name in environ:
            kwargs["no_evaluation_limits"] = _parse_bool(name, environ[name])

        for field_name in ("evaluation_memory_limit", "batch_size", "random_state"):
            name = ENV_PREFIX + field_name.upper()
            if environ.get(name, "").strip():
                kwargs[field_name] = _parse_int(name, environ[name])

        name = ENV_PREFIX + "PROGRESS"
        if name in environ:
            kwargs["progress"] = _parse_bool(name, environ[name])

        return cls(**kwargs)
