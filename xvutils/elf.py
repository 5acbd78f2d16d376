"""ELF executable file header and program header structures."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntFlag

ELF_MAGIC = 0x464C457F  # "\x7FELF" read as a little-endian word

ELF_PROG_LOAD = 1


class ProgFlag(IntFlag):
    """Flag bits of a program header."""

    EXEC = 1
    WRITE = 2
    READ = 4


_ELFHDR = struct.Struct("<I12sHHIQQQIHHHHHH")
_PROGHDR = struct.Struct("<IIQQQQQQ")


class ElfFormatError(ValueError):
    """Raised when bytes do not hold a valid ELF structure."""


@dataclass
class ElfHeader:
    """The ELF file header."""

    magic: int = ELF_MAGIC
    elf: bytes = field(default=bytes(12))
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = _ELFHDR.size
    phentsize: int = _PROGHDR.size
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    SIZE = _ELFHDR.size

    def __post_init__(self) -> None:
        if len(self.elf) != 12:
            raise ValueError("elf identification must be 12 bytes")

    @classmethod
    def from_bytes(cls, data: bytes) -> "ElfHeader":
        """Parse a header from the start of ``data``."""
        if len(data) < _ELFHDR.size:
            raise ElfFormatError("data too short for an ELF header")
        header = cls(*_ELFHDR.unpack_from(data))
        if header.magic != ELF_MAGIC:
            raise ElfFormatError("bad ELF magic")
        return header

    def to_bytes(self) -> bytes:
        """Serialise the header in little-endian layout."""
        return _ELFHDR.pack(
            self.magic, self.elf, self.type, self.machine, self.version,
            self.entry, self.phoff, self.shoff, self.flags, self.ehsize,
            self.phentsize, self.phnum, self.shentsize, self.shnum,
            self.shstrndx,
        )


@dataclass
class ProgramHeader:
    """An ELF program section header."""

    type: int = 0
    flags: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    align: int = 0

    SIZE = _PROGHDR.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProgramHeader":
        """Parse a program header from the start of ``data``."""
        if len(data) < _PROGHDR.size:
            raise ElfFormatError("data too short for a program header")
        return cls(*_PROGHDR.unpack_from(data))

    def to_bytes(self) -> bytes:
        """Serialise the program header in little-endian layout."""
        return _PROGHDR.pack(
            self.type, self.flags, self.off, self.vaddr, self.paddr,
            self.filesz, self.memsz, self.align,
        )

    def is_load(self) -> bool:
        """True if this section is to be loaded into memory."""
        return self.type == ELF_PROG_LOAD


def program_headers(data: bytes) -> list[ProgramHeader]:
    """Return every program header of the ELF image in ``data``."""
    header = ElfHeader.from_bytes(data)
    result = []
    for i in range(header.phnum):
        start = header.phoff + i * _PROGHDR.size
        if start + _PROGHDR.size > len(data):
            raise ElfFormatError("program header lies beyond end of data")
        result.append(ProgramHeader.from_bytes(data[start:start + _PROGHDR.size]))
    return result