"""File metadata as reported by fstat()."""

from __future__ import annotations

import os
import stat as _stat
from dataclasses import dataclass
from enum import IntEnum


class FileType(IntEnum):
    """Kinds of file-system object."""

    DIR = 1
    FILE = 2
    DEVICE = 3


@dataclass(frozen=True)
class Stat:
    """Metadata of one file."""

    dev: int
    ino: int
    type: FileType
    nlink: int
    size: int

    @classmethod
    def from_os(cls, st: os.stat_result) -> "Stat":
        """Build from a host ``os.stat_result``."""
        if _stat.S_ISDIR(st.st_mode):
            kind = FileType.DIR
        elif _stat.S_ISREG(st.st_mode):
            kind = FileType.FILE
        else:
            kind = FileType.DEVICE
        return cls(dev=st.st_dev, ino=st.st_ino, type=kind,
                   nlink=st.st_nlink, size=st.st_size)