"""
Pytest configuration and shared fixtures for dynlib tests.
"""

import platform
import sys
from pathlib import Path

import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

from dynlib.config import config


IS_GLIBC = sys.platform.startswith("linux") and platform.libc_ver()[0] == "glibc"


# =============================================================================
# Test Doubles
# =============================================================================

class FakeBackend:
    """
    In-memory loader backend.

    ``libraries`` maps a library name to its exported symbols
    ({symbol: address}). Like dlerror(), last_error_message() is a
    destructive read of a single shared slot, so a loader that captures the
    message late sees the wrong text or "Unknown error".
    """

    name = "fake"

    def __init__(self, libraries=None, close_ok=True):
        self.libraries = dict(libraries or {})
        self.close_ok = close_ok
        self.calls = {"open": 0, "resolve": 0, "close_handle": 0, "last_error_message": 0}
        self.opened = []
        self.modes = []
        self.live = {}
        self._next_native = 0x1000
        self._last_error = None

    def open(self, name, mode):
        self.calls["open"] += 1
        self.opened.append(name)
        self.modes.append(mode)
        if name not in self.libraries:
            self._last_error = f"{name}: cannot open shared object file: No such file or directory"
            return None
        native = self._next_native
        self._next_native += 0x1000
        self.live[native] = name
        return native

    def resolve(self, native, symbol_name):
        self.calls["resolve"] += 1
        library = self.live[native]
        address = self.libraries[library].get(symbol_name)
        if address is None:
            self._last_error = f"{library}: undefined symbol: {symbol_name}"
        return address

    def close_handle(self, native):
        self.calls["close_handle"] += 1
        if not self.close_ok:
            self._last_error = f"{self.live[native]}: shared object still in use"
            return False
        del self.live[native]
        return True

    def last_error_message(self):
        self.calls["last_error_message"] += 1
        message, self._last_error = self._last_error, None
        return message or "Unknown error"


class FakeKernel32:
    """
    Stand-in for the kernel32 functions WindowsBackend calls.

    Plain functions are used so WindowsBackend can set argtypes/restype on
    them. Errors land in ``last_error``, which get_last_error() returns, the way a
    use_last_error=True WinDLL snapshots GetLastError() after each call.
    """

    MESSAGES = {
        126: "The specified module could not be found.\r\n",
        127: "The specified procedure could not be found.\r\n",
    }

    def __init__(self, modules=None):
        self.modules = dict(modules or {})
        self.format_calls = []
        self.freed = []
        self.last_error = 0

        def LoadLibraryW(name):
            if name in self.modules:
                return 0x7FF00000 + 0x10000 * list(self.modules).index(name)
            self.last_error = 126
            return None

        def GetProcAddress(native, symbol):
            for name, symbols in self.modules.items():
                address = symbols.get(symbol.decode("ascii"))
                if address is not None:
                    return address
            self.last_error = 127
            return None

        def FreeLibrary(native):
            self.freed.append(native)
            return 1

        def FormatMessageW(flags, source, code, language, buf, size, args):
            self.format_calls.append((code, size))
            text = self.MESSAGES.get(code)
            if text is None:
                self.last_error = 317  # ERROR_MR_MID_NOT_FOUND
                return 0
            if len(text) + 1 > size:
                self.last_error = 122  # ERROR_INSUFFICIENT_BUFFER
                return 0
            buf.value = text
            return len(text)

        self.LoadLibraryW = LoadLibraryW
        self.GetProcAddress = GetProcAddress
        self.FreeLibrary = FreeLibrary
        self.FormatMessageW = FormatMessageW

    def get_last_error(self):
        return self.last_error


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_backend():
    """Backend where only libc.so.6 and libm.so.6 exist."""
    return FakeBackend({
        "libc.so.6": {"uname": 0x7F0010, "getpid": 0x7F0020},
        "libm.so.6": {"sqrt": 0x7F1010},
    })


@pytest.fixture
def fake_kernel32():
    return FakeKernel32({"kernel32.dll": {"GetTickCount": 0x7FF10010}})


@pytest.fixture
def restore_config():
    """Undo configuration changes made by a test."""
    yield config
    config.reset()


@pytest.fixture
def requires_glibc():
    """Skip test unless running on glibc Linux (libc.so.6 available)."""
    if not IS_GLIBC:
        pytest.skip("glibc Linux required")
