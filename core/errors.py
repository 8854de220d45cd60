from dataclasses import dataclass, field
from typing import Any, List


class ConfigError(RuntimeError):
    """Raised when a required environment variable is missing or invalid."""


class OperationError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(OperationError):
    """Bad input rejected before any Staffbase call is made."""
    status_code = 400


class NoUsersFound(OperationError):
    status_code = 404


class FatalOperationError(OperationError):
    """A primary effect (channel create, post create, channel delete, listing) failed."""
    status_code = 502


@dataclass
class OperationResult:
    """
    Outcome of an operation whose primary effect succeeded.
    Side effects that failed along the way are collected in `warnings`.
    """
    value: Any
    warnings: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
