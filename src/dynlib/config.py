"""
Global configuration for dynlib.

Provides:
- Default dlopen flags used on POSIX systems
- Message buffer size used when formatting Windows error codes
- Environment variable overrides (read at import and on reset())

Environment:
    DYNLIB_BIND_NOW=1         Resolve all symbols at load time (RTLD_NOW)
    DYNLIB_GLOBAL=1           Make loaded symbols globally visible (RTLD_GLOBAL)
    DYNLIB_MESSAGE_BUFFER=N   Windows FormatMessage buffer size in characters
"""

from __future__ import annotations

import ctypes
import logging
import os
from typing import Union

__all__ = ['config', 'set_open_mode', 'RTLD_LAZY', 'RTLD_NOW', 'RTLD_GLOBAL', 'RTLD_LOCAL']

logger = logging.getLogger("dynlib.config")


# =============================================================================
# dlopen Flags
# =============================================================================

# os.RTLD_* only exist on POSIX; the values below are the glibc ones and are
# never passed to the OS on Windows.
RTLD_LAZY = getattr(os, 'RTLD_LAZY', 0x0001)
RTLD_NOW = getattr(os, 'RTLD_NOW', 0x0002)
RTLD_GLOBAL = ctypes.RTLD_GLOBAL
RTLD_LOCAL = ctypes.RTLD_LOCAL

_MODE_NAMES = {
    'lazy': RTLD_LAZY,
    'now': RTLD_NOW,
}

DEFAULT_MESSAGE_BUFFER_SIZE = 512
MIN_MESSAGE_BUFFER_SIZE = 16

# FormatMessage output is capped at 64K bytes
MAX_MESSAGE_SIZE = 0x8000


def _env_flag(name: str) -> bool:
    return os.environ.get(name, '').strip().lower() in ('1', 'true', 'yes', 'on')


# =============================================================================
# Global Configuration State
# =============================================================================

class _Config:
    """
    Global configuration singleton.

    Values are read from the environment on construction; the setters
    validate and override them for the rest of the process.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Re-read defaults from the environment."""
        mode = RTLD_NOW if _env_flag('DYNLIB_BIND_NOW') else RTLD_LAZY
        mode |= RTLD_GLOBAL if _env_flag('DYNLIB_GLOBAL') else RTLD_LOCAL
        self._open_mode = mode

        size = os.environ.get('DYNLIB_MESSAGE_BUFFER', '').strip()
        self._message_buffer_size = DEFAULT_MESSAGE_BUFFER_SIZE
        if size:
            try:
                self.message_buffer_size = int(size)
            except ValueError as e:
                logger.warning(f"Ignoring DYNLIB_MESSAGE_BUFFER={size!r}: {e}")

    @property
    def open_mode(self) -> int:
        """dlopen flags used when load() gets no explicit mode."""
        return self._open_mode

    @open_mode.setter
    def open_mode(self, value: Union[int, str]):
        if isinstance(value, str):
            key = value.strip().lower()
            if key not in _MODE_NAMES:
                raise ValueError(f"open mode must be 'lazy' or 'now', got {value!r}")
            value = _MODE_NAMES[key] | (self._open_mode & (RTLD_GLOBAL | RTLD_LOCAL))
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"open mode must be a non-negative int, got {value!r}")
        self._open_mode = value

    @property
    def message_buffer_size(self) -> int:
        """Size, in characters, of the buffer system error messages are formatted into."""
        return self._message_buffer_size

    @message_buffer_size.setter
    def message_buffer_size(self, value: int):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"message_buffer_size must be an int, got {value!r}")
        if not MIN_MESSAGE_BUFFER_SIZE <= value <= MAX_MESSAGE_SIZE:
            raise ValueError(
                f"message_buffer_size must be between {MIN_MESSAGE_BUFFER_SIZE} "
                f"and {MAX_MESSAGE_SIZE}, got {value}"
            )
        self._message_buffer_size = value

    def __repr__(self) -> str:
        return (
            f"Config(open_mode={self._open_mode:#x}, "
            f"message_buffer_size={self._message_buffer_size})"
        )


config = _Config()


def set_open_mode(mode: Union[int, str]) -> None:
    """
    Set the default dlopen flags.

    Args:
        mode: Raw flag value, or 'lazy' / 'now' (keeps the current
              RTLD_GLOBAL / RTLD_LOCAL setting)
    """
    config.open_mode = mode
