"""Open mode flags and their mapping onto the host's flags."""

from __future__ import annotations

import os
from enum import IntFlag


class OpenFlag(IntFlag):
    """Flags accepted by open()."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200
    TRUNC = 0x400


_KNOWN = OpenFlag.WRONLY | OpenFlag.RDWR | OpenFlag.CREATE | OpenFlag.TRUNC


def to_os_flags(flags: int) -> int:
    """Translate open flags into the host's ``os.O_*`` flags.

    A file is readable unless WRONLY is given, and writable if either
    WRONLY or RDWR is given.
    """
    flags = int(flags)
    if flags & ~int(_KNOWN):
        raise ValueError(f"unknown open flags: {flags:#x}")
    readable = not flags & OpenFlag.WRONLY
    writable = bool(flags & (OpenFlag.WRONLY | OpenFlag.RDWR))
    if readable and writable:
        result = os.O_RDWR
    elif writable:
        result = os.O_WRONLY
    else:
        result = os.O_RDONLY
    if flags & OpenFlag.CREATE:
        result |= os.O_CREAT
    if flags & OpenFlag.TRUNC:
        result |= os.O_TRUNC
    return result