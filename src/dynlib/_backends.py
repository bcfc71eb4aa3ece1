"""
Platform Backends for dynlib

Each backend wraps exactly four OS primitives: open a library by name,
resolve a symbol, close a handle, and fetch the last error message.

Native handles and addresses are passed around as plain ints; NULL is None.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import platform
from functools import lru_cache
from typing import Optional, Protocol, runtime_checkable

from .config import config, MAX_MESSAGE_SIZE
from .error import DynlibError, InvalidSymbolNameError, DYNLIB_ERROR_UNSUPPORTED_PLATFORM

__all__ = ['Backend', 'PosixBackend', 'WindowsBackend', 'get_backend', 'UNKNOWN_ERROR']

logger = logging.getLogger("dynlib.backends")

UNKNOWN_ERROR = "Unknown error"


@runtime_checkable
class Backend(Protocol):
    """The four loader primitives of one platform."""

    name: str

    def open(self, name: str, mode: int) -> Optional[int]: ...
    def resolve(self, native: int, symbol_name: str) -> Optional[int]: ...
    def close_handle(self, native: int) -> bool: ...
    def last_error_message(self) -> str: ...


# =============================================================================
# POSIX (dlopen / dlsym / dlclose / dlerror)
# =============================================================================

def _find_dl_library() -> ctypes.CDLL:
    """
    Locate the library exporting the dl* family.

    glibc >= 2.34, musl and macOS export them from the process image; older
    glibc keeps them in libdl.
    """
    process = ctypes.CDLL(None)
    if hasattr(process, 'dlopen'):
        return process

    for name in ('libdl.so.2', ctypes.util.find_library('dl')):
        if not name:
            continue
        try:
            lib = ctypes.CDLL(name)
        except OSError:
            continue
        if hasattr(lib, 'dlopen'):
            return lib

    raise DynlibError("Cannot find dlopen in this process or in libdl",
                      code=DYNLIB_ERROR_UNSUPPORTED_PLATFORM)


class PosixBackend:
    """
    dlopen-family backend.

    dlerror() is a destructive read: it returns the last error and clears it,
    so it must be called right after the failing primitive.
    """

    name = "posix"

    def __init__(self, lib: Optional[ctypes.CDLL] = None):
        lib = lib if lib is not None else _find_dl_library()

        self._dlopen = lib.dlopen
        self._dlopen.argtypes = [ctypes.c_char_p, ctypes.c_int]
        self._dlopen.restype = ctypes.c_void_p

        self._dlsym = lib.dlsym
        self._dlsym.argtypes = [ctypes.c_void_p, ctypes.c_char_p]
        self._dlsym.restype = ctypes.c_void_p

        self._dlclose = lib.dlclose
        self._dlclose.argtypes = [ctypes.c_void_p]
        self._dlclose.restype = ctypes.c_int

        self._dlerror = lib.dlerror
        self._dlerror.argtypes = []
        self._dlerror.restype = ctypes.c_char_p

    def open(self, name: str, mode: int) -> Optional[int]:
        return self._dlopen(os.fsencode(name), mode)

    def resolve(self, native: int, symbol_name: str) -> Optional[int]:
        return self._dlsym(native, symbol_name.encode('utf-8'))

    def close_handle(self, native: int) -> bool:
        return self._dlclose(native) == 0

    def last_error_message(self) -> str:
        msg = self._dlerror()
        if not msg:
            return UNKNOWN_ERROR
        return os.fsdecode(msg)


# =============================================================================
# Windows (LoadLibraryW / GetProcAddress / FreeLibrary / GetLastError)
# =============================================================================

FORMAT_MESSAGE_IGNORE_INSERTS = 0x00000200
FORMAT_MESSAGE_FROM_SYSTEM = 0x00001000

ERROR_INSUFFICIENT_BUFFER = 122


class WindowsBackend:
    """
    kernel32 backend.

    The functions are loaded with use_last_error=True, so ctypes snapshots
    GetLastError() the moment each call returns; last_error_message() reads
    that snapshot rather than the live value.
    """

    name = "windows"

    def __init__(self, kernel32=None, get_last_error=None):
        if kernel32 is None:
            kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        if get_last_error is None:
            get_last_error = ctypes.get_last_error
        self._get_last_error = get_last_error

        self._load_library = kernel32.LoadLibraryW
        self._load_library.argtypes = [ctypes.c_wchar_p]
        self._load_library.restype = ctypes.c_void_p

        self._get_proc_address = kernel32.GetProcAddress
        self._get_proc_address.argtypes = [ctypes.c_void_p, ctypes.c_char_p]
        self._get_proc_address.restype = ctypes.c_void_p

        self._free_library = kernel32.FreeLibrary
        self._free_library.argtypes = [ctypes.c_void_p]
        self._free_library.restype = ctypes.c_int

        self._format_message = kernel32.FormatMessageW
        self._format_message.argtypes = [
            ctypes.c_uint32,   # dwFlags
            ctypes.c_void_p,   # lpSource
            ctypes.c_uint32,   # dwMessageId
            ctypes.c_uint32,   # dwLanguageId
            ctypes.c_wchar_p,  # lpBuffer
            ctypes.c_uint32,   # nSize
            ctypes.c_void_p,   # Arguments
        ]
        self._format_message.restype = ctypes.c_uint32

    def open(self, name: str, mode: int) -> Optional[int]:
        return self._load_library(name)

    def resolve(self, native: int, symbol_name: str) -> Optional[int]:
        # PE export names are ASCII
        try:
            encoded = symbol_name.encode('ascii')
        except UnicodeEncodeError:
            raise InvalidSymbolNameError(f"Invalid symbol name: {symbol_name!r}") from None
        return self._get_proc_address(native, encoded)

    def close_handle(self, native: int) -> bool:
        return self._free_library(native) != 0

    def last_error_message(self) -> str:
        return self.format_error(self._get_last_error())

    def format_error(self, code: int) -> str:
        """
        Format a system error code into a bounded buffer.

        Messages longer than the buffer are cut at the buffer size. If the
        system has no text for the code, "Unknown error" is returned.
        """
        size = config.message_buffer_size
        buf = ctypes.create_unicode_buffer(size)
        flags = FORMAT_MESSAGE_FROM_SYSTEM | FORMAT_MESSAGE_IGNORE_INSERTS
        n = self._format_message(flags, None, code, 0, buf, size, None)

        if n == 0 and self._get_last_error() == ERROR_INSUFFICIENT_BUFFER:
            # Format into the largest buffer FormatMessage supports, keep the head.
            big = ctypes.create_unicode_buffer(MAX_MESSAGE_SIZE)
            n = self._format_message(flags, None, code, 0, big, MAX_MESSAGE_SIZE, None)
            buf = big

        if n == 0:
            return UNKNOWN_ERROR

        msg = buf[:min(n, size - 1)].strip()
        return msg or UNKNOWN_ERROR


# =============================================================================
# Backend Selection
# =============================================================================

@lru_cache(maxsize=1)
def get_backend() -> Backend:
    """
    Return the backend for the running platform (created once, then cached).

    Raises:
        DynlibError: If the platform has neither kernel32 nor dlopen
    """
    system = platform.system()

    if system == "Windows":
        backend = WindowsBackend()
    elif os.name == "posix":
        backend = PosixBackend()
    else:
        raise DynlibError(f"No dynamic loader backend for {system!r}",
                          code=DYNLIB_ERROR_UNSUPPORTED_PLATFORM)

    logger.debug(f"Using {backend.name} loader backend on {system}")
    return backend
