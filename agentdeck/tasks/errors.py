"""
Provider error types.

Every failure of a single provider run is reported as a ProviderError
subclass. Errors are attributed to one project directory and cached like
successful results, so a failing provider is not re-run until its entry
goes stale.
"""

from dataclasses import dataclass
from enum import Enum


class ProviderErrorType(Enum):
    NOT_FOUND = "not_found"      # Script or built-in name not found
    EXEC = "exec"                # Non-zero exit or failed to start
    TIMEOUT = "timeout"          # Exceeded the per-execution timeout
    PARSE = "parse"              # stdout was not valid task JSON


@dataclass
class ProviderError(Exception):
    """A provider run failed."""
    kind: ProviderErrorType
    message: str
    stderr: str = ""  # Captured stderr, shown in the error detail view

    def __str__(self):
        if self.stderr.strip():
            return f"{self.message}: {self.stderr.strip()}"
        return self.message


@dataclass
class ProviderNotFound(ProviderError):
    kind: ProviderErrorType = ProviderErrorType.NOT_FOUND
    message: str = "provider not found"


@dataclass
class ProviderExecutionFailed(ProviderError):
    kind: ProviderErrorType = ProviderErrorType.EXEC
    message: str = "provider exited with error"
    exit_code: int | None = None


@dataclass
class ProviderTimeout(ProviderError):
    kind: ProviderErrorType = ProviderErrorType.TIMEOUT
    message: str = "provider timed out"
    timeout: float = 0.0


@dataclass
class ResultParseError(ProviderError):
    kind: ProviderErrorType = ProviderErrorType.PARSE
    message: str = "failed to parse provider output"
