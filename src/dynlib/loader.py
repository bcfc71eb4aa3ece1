"""
Dynamic Library Loader

Loads a shared library from an ordered list of candidate names, resolves
symbols to function pointers and releases the library again.

    >>> from dynlib import load, bind, close
    >>> lib = load(["libm.so.6", "libm.so"])
    >>> sqrt_addr = bind(lib, "sqrt")
    >>> close(lib)

The OS keeps a single last-error slot per thread (dlerror, GetLastError) that
the next loader call overwrites. Every primitive call below is followed by
the error capture inside the same critical section.
"""

from __future__ import annotations

import ctypes
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Sequence, Union

from ._backends import Backend, get_backend
from .config import config
from .error import (
    BindFailedError,
    CloseFailedError,
    EmptyCandidateSetError,
    InvalidFunctionTargetError,
    InvalidHandleError,
    InvalidNameError,
    InvalidSymbolNameError,
    LoadErrorRecord,
    LoadFailedError,
)

__all__ = [
    'LibraryHandle',
    'load', 'bind', 'bind_to', 'is_loaded', 'errors',
    'close', 'close_checked', 'open_library',
]

logger = logging.getLogger("dynlib.loader")

# Guards each "primitive call + last-error read" pair
_last_error_lock = threading.Lock()


# =============================================================================
# Library Handle
# =============================================================================

@dataclass
class LibraryHandle:
    """
    One opened shared library.

    Attributes:
        native: OS handle value (HMODULE / dlopen pointer); None once closed
        load_errors: Failures of the candidates tried before the one that loaded
        name: The candidate name that loaded
        backend: Backend that opened the library; bind() and close() reuse it
    """
    native: Optional[int] = None
    load_errors: List[LoadErrorRecord] = field(default_factory=list)
    name: Optional[str] = None
    backend: Optional[Backend] = field(default=None, repr=False, compare=False)

    @property
    def loaded(self) -> bool:
        return bool(self.native)

    def __enter__(self) -> "LibraryHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        close(self)


def _candidate(name: Any) -> str:
    if isinstance(name, os.PathLike):
        name = os.fspath(name)
    if not isinstance(name, str) or not name or "\x00" in name:
        raise InvalidNameError(f"Invalid library name: {name!r}")
    return name


# =============================================================================
# Operations
# =============================================================================

def load(
    names: Union[str, Sequence[str]],
    *,
    backend: Optional[Backend] = None,
    mode: Optional[int] = None,
) -> LibraryHandle:
    """
    Load the first library in ``names`` that the OS can open.

    Candidates are tried strictly in order. Each failure is recorded with the
    OS message captured at that moment; the records stay on the returned
    handle (see errors()) even when a later candidate succeeds.

    Args:
        names: Candidate names or paths, highest priority first. A single
               string is treated as a one-element list.
        backend: Loader backend; defaults to the running platform's
        mode: dlopen flags (POSIX only); defaults to config.open_mode

    Returns:
        LibraryHandle for the library that loaded

    Raises:
        EmptyCandidateSetError: If ``names`` is empty
        InvalidNameError: If a candidate reached in the iteration is empty,
                          not a string or contains a NUL
        LoadFailedError: If every candidate failed; ``.attempts`` lists them
    """
    if isinstance(names, (str, os.PathLike)):
        names = [names]
    names = list(names)

    if not names:
        raise EmptyCandidateSetError("No libraries given")

    if backend is None:
        backend = get_backend()
    if mode is None:
        mode = config.open_mode

    handle = LibraryHandle(backend=backend)

    for candidate in names:
        name = _candidate(candidate)

        message = None
        with _last_error_lock:
            native = backend.open(name, mode)
            if not native:
                message = backend.last_error_message()

        if native:
            handle.native = native
            handle.name = name
            logger.debug(f"Loaded {name} after {len(handle.load_errors)} failed attempt(s)")
            return handle

        logger.debug(f"Could not load {name}: {message}")
        handle.load_errors.append(LoadErrorRecord(name, message))

    raise LoadFailedError(handle.load_errors)


def bind(handle: LibraryHandle, symbol_name: str, prototype: Optional[type] = None) -> Any:
    """
    Resolve a symbol in a loaded library.

    Names are matched exactly; no mangling or decoration is applied.

    Args:
        handle: Handle returned by load()
        symbol_name: Exported symbol name
        prototype: Optional ctypes function type (CFUNCTYPE / WINFUNCTYPE);
                   when given, the address is wrapped in it

    Returns:
        The symbol address as an int, or ``prototype(address)``

    Raises:
        InvalidHandleError: If the handle is not loaded
        InvalidSymbolNameError: If ``symbol_name`` is empty, not a string or
                                contains a NUL
        BindFailedError: If the library does not export the symbol
    """
    if not is_loaded(handle):
        raise InvalidHandleError(f"Cannot bind {symbol_name!r}: library is not loaded")
    if not isinstance(symbol_name, str) or not symbol_name or "\x00" in symbol_name:
        raise InvalidSymbolNameError(f"Invalid symbol name: {symbol_name!r}")

    backend = handle.backend or get_backend()

    message = None
    with _last_error_lock:
        address = backend.resolve(handle.native, symbol_name)
        if not address:
            message = backend.last_error_message()

    if not address:
        raise BindFailedError(symbol_name, message)

    if prototype is not None:
        return prototype(address)
    return address


def bind_to(handle: LibraryHandle, target: Optional[ctypes.c_void_p], symbol_name: str) -> None:
    """
    Resolve a symbol and store its address in ``target``.

    ``target`` is left untouched if resolution fails.

    Raises:
        InvalidFunctionTargetError: If ``target`` is not a ctypes.c_void_p
        InvalidHandleError, InvalidSymbolNameError, BindFailedError: as bind()
    """
    if not isinstance(target, ctypes.c_void_p):
        raise InvalidFunctionTargetError(
            f"Function pointer target must be a ctypes.c_void_p, got {type(target).__name__}"
        )
    target.value = bind(handle, symbol_name)


def is_loaded(handle: LibraryHandle) -> bool:
    """True if the handle holds an open library."""
    return handle is not None and handle.loaded


def errors(handle: LibraryHandle) -> List[LoadErrorRecord]:
    """Load failures recorded before the library that loaded, in attempt order."""
    if handle is None:
        return []
    return list(handle.load_errors)


def _release(handle: LibraryHandle) -> Optional[str]:
    """Close the native handle and clear it. Returns the OS message on failure."""
    if handle is None:
        return None
    native = handle.native
    if not native:
        return None

    backend = handle.backend or get_backend()

    message = None
    with _last_error_lock:
        ok = backend.close_handle(native)
        if not ok:
            message = backend.last_error_message()

    handle.native = None
    return message


def close(handle: LibraryHandle) -> None:
    """
    Release the library and mark the handle as not loaded.

    Closing None or an already closed handle does nothing. An OS-level close failure
    is logged as a warning, never raised; use close_checked() to get it as an
    exception.
    """
    message = _release(handle)
    if message is not None:
        logger.warning(f"Failed to close {handle.name or 'library'}: {message}")


def close_checked(handle: LibraryHandle) -> None:
    """
    Like close(), but raise if the OS reports a failure.

    The handle is marked as not loaded either way.

    Raises:
        CloseFailedError: If the platform close primitive failed
    """
    message = _release(handle)
    if message is not None:
        raise CloseFailedError(handle.name, message)


@contextmanager
def open_library(
    names: Union[str, Sequence[str]],
    *,
    backend: Optional[Backend] = None,
    mode: Optional[int] = None,
) -> Iterator[LibraryHandle]:
    """
    Scoped load(): the library is closed when the block exits.

    Example:
        >>> with open_library(["libc.so.6"]) as libc:
        ...     uname = bind(libc, "uname")
    """
    handle = load(names, backend=backend, mode=mode)
    try:
        yield handle
    finally:
        close(handle)
