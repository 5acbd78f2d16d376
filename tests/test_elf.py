import pytest

from xvutils.elf import (
    ELF_MAGIC,
    ELF_PROG_LOAD,
    ElfFormatError,
    ElfHeader,
    ProgFlag,
    ProgramHeader,
    program_headers,
)


def test_header_round_trip():
    header = ElfHeader(entry=0x1000, phoff=64, phnum=3, machine=243)
    assert ElfHeader.from_bytes(header.to_bytes()) == header


def test_header_starts_with_magic():
    data = ElfHeader().to_bytes()
    assert data[:4] == b"\x7fELF"
    assert int.from_bytes(data[:4], "little") == ELF_MAGIC


def test_header_size_matches_layout():
    assert len(ElfHeader().to_bytes()) == ElfHeader.SIZE
    assert len(ProgramHeader().to_bytes()) == ProgramHeader.SIZE


def test_bad_magic_rejected():
    data = bytearray(ElfHeader().to_bytes())
    data[0] = 0
    with pytest.raises(ElfFormatError):
        ElfHeader.from_bytes(bytes(data))


def test_short_data_rejected():
    with pytest.raises(ElfFormatError):
        ElfHeader.from_bytes(b"\x7fELF")
    with pytest.raises(ElfFormatError):
        ProgramHeader.from_bytes(b"\x00" * 10)


def test_bad_identification_length():
    with pytest.raises(ValueError):
        ElfHeader(elf=b"abc")


def test_program_header_round_trip_and_load():
    ph = ProgramHeader(type=ELF_PROG_LOAD, flags=ProgFlag.READ | ProgFlag.EXEC,
                       vaddr=0x1000, filesz=10, memsz=20, align=4096)
    back = ProgramHeader.from_bytes(ph.to_bytes())
    assert back == ph
    assert back.is_load()
    assert not ProgramHeader(type=ELF_PROG_LOAD + 1).is_load()


def test_program_headers_listing():
    phs = [ProgramHeader(type=ELF_PROG_LOAD, vaddr=0), ProgramHeader(type=2, vaddr=4096)]
    header = ElfHeader(phoff=ElfHeader.SIZE, phnum=len(phs))
    image = header.to_bytes() + b"".join(p.to_bytes() for p in phs)
    assert program_headers(image) == phs


def test_program_headers_truncated():
    header = ElfHeader(phoff=ElfHeader.SIZE, phnum=2)
    image = header.to_bytes() + ProgramHeader().to_bytes()
    with pytest.raises(ElfFormatError):
        program_headers(image)