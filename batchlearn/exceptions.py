"""
Error types raised by batchlearn.

Only hard faults are raised: malformed datasets, missing or unreadable model
files, invalid configuration and unsupported operations. Data-quality
outcomes (no data, not enough data, low score) are reported through
Result.status instead.
"""

from typing import Any, Dict, Optional


class BatchLearnError(Exception):
    """Base class for every error raised by batchlearn."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            extra = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({extra})"
        return self.message


class DatasetError(BatchLearnError):
    """The dataset file does not follow the expected layout."""


class ConfigError(BatchLearnError):
    """Invalid configuration value."""


class ModelLoadError(BatchLearnError):
    """A persisted model could not be restored."""


class ModelNotFoundError(ModelLoadError):
    """No persisted model exists in the given directory."""


class NotFittedError(BatchLearnError):
    """The classifier was used for prediction before any training."""


class UnsupportedOperationError(BatchLearnError, NotImplementedError):
    """The requested capability is not implemented by this processor."""
