import pytest

from xvutils.memlayout import KERNBASE, MAXVA, PGSIZE, PHYSTOP, TRAMPOLINE, UART0, kstack
from xvutils.vm import (
    PTE_R,
    PTE_U,
    PTE_V,
    PTE_W,
    PTE_X,
    BadAddress,
    KernelPanic,
    OutOfMemory,
    PageTable,
    PhysicalMemory,
    kvmmake,
)


@pytest.fixture
def mem():
    return PhysicalMemory(KERNBASE, KERNBASE + 64 * PGSIZE)


def _pte(mem, addr):
    return int.from_bytes(mem.read(addr, 8), "little")


def test_kalloc_until_exhausted():
    m = PhysicalMemory(KERNBASE, KERNBASE + 3 * PGSIZE)
    pages = {m.kalloc() for _ in range(3)}
    assert len(pages) == 3
    assert m.free_pages() == 0
    with pytest.raises(OutOfMemory):
        m.kalloc()
    for pa in pages:
        m.kfree(pa)
    assert m.free_pages() == 3


def test_kfree_errors(mem):
    pa = mem.kalloc()
    with pytest.raises(KernelPanic):
        mem.kfree(pa + 1)
    mem.kfree(pa)
    with pytest.raises(KernelPanic):
        mem.kfree(pa)


def test_physical_read_write(mem):
    pa = mem.kalloc()
    assert mem.read(pa, 4) == bytes(4)
    mem.write(pa + 10, b"data")
    assert mem.read(pa + 10, 4) == b"data"
    with pytest.raises(BadAddress):
        mem.read(KERNBASE + 40 * PGSIZE, 1)


def test_mappages_and_walkaddr(mem):
    pt = PageTable(mem)
    pa = mem.kalloc()
    pt.mappages(PGSIZE, PGSIZE, pa, PTE_R | PTE_U)
    assert pt.walkaddr(PGSIZE) == pa
    other = mem.kalloc()
    pt.mappages(2 * PGSIZE, PGSIZE, other, PTE_R)
    assert pt.walkaddr(2 * PGSIZE) is None
    assert pt.walkaddr(MAXVA) is None


def test_mappages_panics(mem):
    pt = PageTable(mem)
    pa = mem.kalloc()
    with pytest.raises(KernelPanic, match="va not aligned"):
        pt.mappages(1, PGSIZE, pa, PTE_R)
    with pytest.raises(KernelPanic, match="size not aligned"):
        pt.mappages(0, 10, pa, PTE_R)
    with pytest.raises(KernelPanic, match="mappages: size"):
        pt.mappages(0, 0, pa, PTE_R)
    pt.mappages(0, PGSIZE, pa, PTE_R)
    with pytest.raises(KernelPanic, match="remap"):
        pt.mappages(0, PGSIZE, pa, PTE_R)


def test_walk_beyond_maxva(mem):
    pt = PageTable(mem)
    with pytest.raises(KernelPanic):
        pt.walk(MAXVA)
    assert pt.walk(0) is None


def test_copy_round_trip_across_pages(mem):
    pt = PageTable(mem)
    assert pt.grow(0, 3 * PGSIZE, PTE_W) == 3 * PGSIZE
    data = bytes(range(256)) * 20
    pt.copyout(PGSIZE - 100, data)
    assert pt.copyin(PGSIZE - 100, len(data)) == data


def test_copyin_unmapped(mem):
    pt = PageTable(mem)
    with pytest.raises(BadAddress):
        pt.copyin(0, 1)
    with pytest.raises(BadAddress):
        pt.copyout(MAXVA, b"x")


def test_copyout_readonly(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE)
    with pytest.raises(BadAddress):
        pt.copyout(0, b"x")
    assert pt.copyin(0, 2) == bytes(2)


def test_copyinstr(mem):
    pt = PageTable(mem)
    pt.grow(0, 2 * PGSIZE, PTE_W)
    pt.copyout(PGSIZE - 3, b"abcdef\0")
    assert pt.copyinstr(PGSIZE - 3, 100) == b"abcdef"
    with pytest.raises(BadAddress):
        pt.copyinstr(PGSIZE - 3, 4)


def test_free_returns_all_pages(mem):
    before = mem.free_pages()
    pt = PageTable(mem)
    sz = pt.grow(0, 5 * PGSIZE + 7, PTE_W)
    assert mem.free_pages() < before
    pt.free(sz)
    assert mem.free_pages() == before


def test_shrink(mem):
    pt = PageTable(mem)
    pt.grow(0, 3 * PGSIZE, PTE_W)
    after_grow = mem.free_pages()
    assert pt.shrink(3 * PGSIZE, PGSIZE) == PGSIZE
    assert mem.free_pages() == after_grow + 2
    assert pt.walkaddr(2 * PGSIZE) is None
    assert pt.copyin(0, 1) == b"\0"
    assert pt.shrink(PGSIZE, 2 * PGSIZE) == PGSIZE


def test_grow_out_of_memory_cleans_up():
    m = PhysicalMemory(KERNBASE, KERNBASE + 4 * PGSIZE)
    pt = PageTable(m)
    with pytest.raises(OutOfMemory):
        pt.grow(0, 10 * PGSIZE, PTE_W)
    assert pt.walkaddr(0) is None
    pt.free(0)
    assert m.free_pages() == 4


def test_grow_smaller_keeps_size(mem):
    pt = PageTable(mem)
    assert pt.grow(2 * PGSIZE, PGSIZE) == 2 * PGSIZE


def test_copy_into_is_independent(mem):
    parent = PageTable(mem)
    parent.grow(0, 2 * PGSIZE, PTE_W)
    parent.copyout(0, b"hello")
    child = PageTable(mem)
    parent.copy_into(child, 2 * PGSIZE)
    assert child.copyin(0, 5) == b"hello"
    assert child.walkaddr(0) != parent.walkaddr(0)
    child.copyout(0, b"HELLO")
    assert parent.copyin(0, 5) == b"hello"


def test_load_first(mem):
    pt = PageTable(mem)
    pt.load_first(b"\x13\x00")
    assert pt.copyin(0, 2) == b"\x13\x00"
    with pytest.raises(KernelPanic):
        PageTable(mem).load_first(bytes(PGSIZE))


def test_clear_user(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE, PTE_W)
    pt.clear_user(0)
    assert pt.walkaddr(0) is None
    with pytest.raises(BadAddress):
        pt.copyin(0, 1)
    with pytest.raises(KernelPanic):
        pt.clear_user(1 << 30)


def test_unmap_errors(mem):
    pt = PageTable(mem)
    with pytest.raises(KernelPanic, match="not aligned"):
        pt.unmap(1, 1, False)
    with pytest.raises(KernelPanic, match="walk"):
        pt.unmap(0, 1, False)
    pt.grow(0, PGSIZE)
    with pytest.raises(KernelPanic, match="not mapped"):
        pt.unmap(PGSIZE, 1, False)


def test_free_with_leaf_panics(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE)
    with pytest.raises(KernelPanic, match="freewalk: leaf"):
        pt.free(0)


def test_kvmmake():
    m = PhysicalMemory(PHYSTOP - 256 * PGSIZE, PHYSTOP)
    etext = KERNBASE + 8 * PGSIZE
    tramp = KERNBASE + PGSIZE
    kpt = kvmmake(m, etext, tramp, 2)

    uart = _pte(m, kpt.walk(UART0))
    assert uart & (PTE_V | PTE_R | PTE_W) == PTE_V | PTE_R | PTE_W
    assert not uart & PTE_U

    text = _pte(m, kpt.walk(KERNBASE))
    assert text & PTE_X and not text & PTE_W

    tr = _pte(m, kpt.walk(TRAMPOLINE))
    assert tr & PTE_X and tr & PTE_R

    stack = _pte(m, kpt.walk(kstack(1)))
    assert stack & PTE_V and stack & PTE_W
    assert kpt.walkaddr(kstack(0)) is None