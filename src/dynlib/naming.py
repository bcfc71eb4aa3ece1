"""
Platform-specific library file names.

Builds candidate lists for load(), most specific name first.
"""

from __future__ import annotations

import platform as _platform
from typing import Iterable, List, Optional

__all__ = ['library_filename', 'library_names']


def _system(system: Optional[str]) -> str:
    return system if system is not None else _platform.system()


def library_filename(base_name: str, version: Optional[str] = None,
                     system: Optional[str] = None) -> str:
    """
    Get the library filename for a platform.

    Args:
        base_name: Library name without prefix or suffix ("c", "z", "ssl")
        version: Optional ABI version ("6" gives libc.so.6 on Linux)
        system: platform.system() value; defaults to the running platform

    Returns:
        File name such as "libz.so.1", "libz.1.dylib" or "z.dll"
    """
    if not base_name:
        raise ValueError("base_name must be a non-empty string")

    system = _system(system)

    if system == "Windows":
        # Windows DLLs carry the version in the base name, if at all
        return f"{base_name}.dll"
    elif system == "Darwin":
        if version:
            return f"lib{base_name}.{version}.dylib"
        return f"lib{base_name}.dylib"
    else:  # Linux and other ELF systems
        if version:
            return f"lib{base_name}.so.{version}"
        return f"lib{base_name}.so"


def library_names(base_name: str, versions: Iterable[str] = (),
                  system: Optional[str] = None) -> List[str]:
    """
    Build an ordered candidate list for load().

    Versioned names come first, in the order given, followed by the
    unversioned name. Duplicates are dropped.

    Example:
        >>> library_names("c", ["6"], system="Linux")
        ['libc.so.6', 'libc.so']
    """
    names: List[str] = []
    for version in list(versions) + [None]:
        name = library_filename(base_name, version, system)
        if name not in names:
            names.append(name)
    return names
