"""
Tests for error codes and exception classes.
"""

import pickle

import pytest

from dynlib import (
    DynlibError,
    EmptyCandidateSetError,
    InvalidNameError,
    InvalidSymbolNameError,
    InvalidFunctionTargetError,
    InvalidHandleError,
    LoadFailedError,
    BindFailedError,
    CloseFailedError,
    LoadErrorRecord,
)
from dynlib import error


class TestErrorCodes:
    """Test that every exception carries its error code."""

    @pytest.mark.parametrize("exc_type, code", [
        (EmptyCandidateSetError, error.DYNLIB_ERROR_EMPTY_CANDIDATE_SET),
        (InvalidNameError, error.DYNLIB_ERROR_INVALID_NAME),
        (InvalidSymbolNameError, error.DYNLIB_ERROR_INVALID_SYMBOL_NAME),
        (InvalidFunctionTargetError, error.DYNLIB_ERROR_INVALID_FUNCTION_TARGET),
        (InvalidHandleError, error.DYNLIB_ERROR_INVALID_HANDLE),
    ])
    def test_argument_errors(self, exc_type, code):
        """Test code and default message of the programming errors."""
        exc = exc_type()
        assert exc.code == code
        assert str(exc) == error.error_message(code)
        assert isinstance(exc, DynlibError)

    def test_unknown_code_message(self):
        """Test the message for a code without an entry."""
        assert error.error_message(999) == "Unknown error (code=999)"

    def test_explicit_code(self):
        """Test that the base class accepts an explicit code."""
        exc = DynlibError("no loader", code=error.DYNLIB_ERROR_UNSUPPORTED_PLATFORM)
        assert exc.code == error.DYNLIB_ERROR_UNSUPPORTED_PLATFORM
        assert exc.message == "no loader"


class TestBuiltinBases:
    """Test that errors can be caught by their builtin category."""

    def test_programming_errors(self):
        assert issubclass(EmptyCandidateSetError, ValueError)
        assert issubclass(InvalidNameError, ValueError)
        assert issubclass(InvalidSymbolNameError, ValueError)
        assert issubclass(InvalidHandleError, ValueError)
        assert issubclass(InvalidFunctionTargetError, TypeError)

    def test_recoverable_errors(self):
        assert issubclass(LoadFailedError, OSError)
        assert issubclass(BindFailedError, OSError)
        assert issubclass(CloseFailedError, OSError)


class TestLoadFailedError:
    """Test the aggregated load failure."""

    def test_attempts_and_text(self):
        records = [LoadErrorRecord("a.so", "not found"), LoadErrorRecord("b.so", "bad ELF")]
        exc = LoadFailedError(records)

        assert exc.attempts == records
        assert exc.code == error.DYNLIB_ERROR_LOAD_FAILED
        assert "a.so: not found" in str(exc)
        assert "b.so: bad ELF" in str(exc)

    def test_pickle(self):
        """Test that the attempts survive pickling."""
        exc = LoadFailedError([LoadErrorRecord("a.so", "not found")])
        restored = pickle.loads(pickle.dumps(exc))
        assert restored.attempts == exc.attempts


class TestBindFailedError:

    def test_fields(self):
        exc = BindFailedError("sqrt", "undefined symbol: sqrt")
        assert exc.symbol_name == "sqrt"
        assert exc.reason == "undefined symbol: sqrt"
        assert str(exc) == "Failed to bind: sqrt: undefined symbol: sqrt"

    def test_pickle(self):
        restored = pickle.loads(pickle.dumps(BindFailedError("sqrt", "missing")))
        assert (restored.symbol_name, restored.reason) == ("sqrt", "missing")


def test_load_error_record_is_frozen():
    """Test that records cannot be modified after capture."""
    record = LoadErrorRecord("a.so", "not found")
    with pytest.raises(AttributeError):
        record.message = "other"
