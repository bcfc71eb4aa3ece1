"""
dynlib - Cross-platform dynamic library loading

One API over LoadLibrary/GetProcAddress/FreeLibrary (Windows) and
dlopen/dlsym/dlclose (POSIX):
- Load a library from a prioritized list of candidate names
- Resolve symbols to function pointers
- Query load status and per-candidate load failures
- Release the library

Example:
    >>> import ctypes
    >>> import dynlib
    >>>
    >>> libm = dynlib.load(dynlib.library_names("m", ["6"]))
    >>> sqrt = dynlib.bind(libm, "sqrt", ctypes.CFUNCTYPE(ctypes.c_double, ctypes.c_double))
    >>> sqrt(2.0)
    1.4142135623730951
    >>> dynlib.close(libm)
"""

__version__ = '0.1.0'

from ._backends import Backend, PosixBackend, WindowsBackend, get_backend
from .config import config, set_open_mode
from .error import (
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
from .loader import (
    LibraryHandle,
    load,
    bind,
    bind_to,
    is_loaded,
    errors,
    close,
    close_checked,
    open_library,
)
from .naming import library_filename, library_names

__all__ = [
    # Version
    '__version__',
    # Loader
    'LibraryHandle',
    'load',
    'bind',
    'bind_to',
    'is_loaded',
    'errors',
    'close',
    'close_checked',
    'open_library',
    # Names
    'library_filename',
    'library_names',
    # Backends
    'Backend',
    'PosixBackend',
    'WindowsBackend',
    'get_backend',
    # Configuration
    'config',
    'set_open_mode',
    # Errors
    'DynlibError',
    'EmptyCandidateSetError',
    'InvalidNameError',
    'InvalidSymbolNameError',
    'InvalidFunctionTargetError',
    'InvalidHandleError',
    'LoadFailedError',
    'BindFailedError',
    'CloseFailedError',
    'LoadErrorRecord',
]
