"""
Error handling for dynlib.

Every failure the loader can report maps to one error code and one exception
class. Programming errors (empty candidate list, empty names, missing pointer
target) also derive from the matching builtin so callers can catch them the
usual way; recoverable OS-level failures derive from OSError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


# =============================================================================
# Error Codes
# =============================================================================

DYNLIB_OK = 0

# General errors (1-9)
DYNLIB_ERROR_UNKNOWN = 1
DYNLIB_ERROR_UNSUPPORTED_PLATFORM = 2

# Argument errors (10-19)
DYNLIB_ERROR_EMPTY_CANDIDATE_SET = 10
DYNLIB_ERROR_INVALID_NAME = 11
DYNLIB_ERROR_INVALID_SYMBOL_NAME = 12
DYNLIB_ERROR_INVALID_FUNCTION_TARGET = 13
DYNLIB_ERROR_INVALID_HANDLE = 14

# Loader errors (20-29)
DYNLIB_ERROR_LOAD_FAILED = 20
DYNLIB_ERROR_BIND_FAILED = 21
DYNLIB_ERROR_CLOSE_FAILED = 22


_ERROR_MESSAGES = {
    DYNLIB_OK: "Success",
    DYNLIB_ERROR_UNKNOWN: "Unknown error",
    DYNLIB_ERROR_UNSUPPORTED_PLATFORM: "Unsupported platform",
    DYNLIB_ERROR_EMPTY_CANDIDATE_SET: "No libraries given",
    DYNLIB_ERROR_INVALID_NAME: "Invalid library name",
    DYNLIB_ERROR_INVALID_SYMBOL_NAME: "Invalid symbol name",
    DYNLIB_ERROR_INVALID_FUNCTION_TARGET: "Invalid function pointer target",
    DYNLIB_ERROR_INVALID_HANDLE: "Library handle is not loaded",
    DYNLIB_ERROR_LOAD_FAILED: "Error loading libraries",
    DYNLIB_ERROR_BIND_FAILED: "Failed to bind symbol",
    DYNLIB_ERROR_CLOSE_FAILED: "Failed to close library",
}


def error_message(code: int) -> str:
    """Return the generic message for an error code."""
    return _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")


# =============================================================================
# Load Error Record
# =============================================================================

@dataclass(frozen=True)
class LoadErrorRecord:
    """One failed load attempt: the exact candidate name and the OS message."""
    name: str
    message: str

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


# =============================================================================
# Exception Classes
# =============================================================================

class DynlibError(Exception):
    """
    Base exception for all dynlib errors.

    Attributes:
        code: One of the DYNLIB_ERROR_* constants
        message: Human-readable detail
    """

    code = DYNLIB_ERROR_UNKNOWN

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if code is not None:
            self.code = code
        if message is None:
            message = error_message(self.code)
        self.message = message
        super().__init__(message)


class EmptyCandidateSetError(DynlibError, ValueError):
    """load() was called with no candidate names."""
    code = DYNLIB_ERROR_EMPTY_CANDIDATE_SET


class InvalidNameError(DynlibError, ValueError):
    """A candidate library name was empty or missing."""
    code = DYNLIB_ERROR_INVALID_NAME


class InvalidSymbolNameError(DynlibError, ValueError):
    """A symbol name was empty or missing."""
    code = DYNLIB_ERROR_INVALID_SYMBOL_NAME


class InvalidFunctionTargetError(DynlibError, TypeError):
    """No usable destination was given for a resolved pointer."""
    code = DYNLIB_ERROR_INVALID_FUNCTION_TARGET


class InvalidHandleError(DynlibError, ValueError):
    """The handle was never loaded or has already been closed."""
    code = DYNLIB_ERROR_INVALID_HANDLE


class LoadFailedError(DynlibError, OSError):
    """
    Every candidate was attempted and every one failed.

    ``attempts`` holds one LoadErrorRecord per candidate, in the order they
    were tried.
    """

    code = DYNLIB_ERROR_LOAD_FAILED

    def __init__(self, attempts: Sequence[LoadErrorRecord]):
        self.attempts = list(attempts)
        names = ", ".join(record.name for record in self.attempts)
        detail = "\n".join(f"  {record}" for record in self.attempts)
        super().__init__(f"error loading libs: {names}\n{detail}")

    def __reduce__(self):
        return (type(self), (self.attempts,))


class BindFailedError(DynlibError, OSError):
    """A symbol could not be resolved in a loaded library."""

    code = DYNLIB_ERROR_BIND_FAILED

    def __init__(self, symbol_name: str, reason: str):
        self.symbol_name = symbol_name
        self.reason = reason
        super().__init__(f"Failed to bind: {symbol_name}: {reason}")

    def __reduce__(self):
        return (type(self), (self.symbol_name, self.reason))


class CloseFailedError(DynlibError, OSError):
    """The OS reported a failure while releasing a library."""

    code = DYNLIB_ERROR_CLOSE_FAILED

    def __init__(self, name: Optional[str], reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to close {name or 'library'}: {reason}")

    def __reduce__(self):
        return (type(self), (self.name, self.reason))
