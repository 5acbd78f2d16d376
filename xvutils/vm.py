"""Sv39 page tables over a simulated pool of physical pages."""

from __future__ import annotations

import struct

from xvutils.memlayout import (
    KERNBASE,
    MAXVA,
    PGSIZE,
    PHYSTOP,
    PLIC,
    TRAMPOLINE,
    UART0,
    VIRTIO0,
    kstack,
)

PTE_V = 1 << 0
PTE_R = 1 << 1
PTE_W = 1 << 2
PTE_X = 1 << 3
PTE_U = 1 << 4

_PTE_PERMS = PTE_R | PTE_W | PTE_X
_ENTRIES = 512
_U64 = struct.Struct("<Q")


class KernelPanic(RuntimeError):
    """An invariant of the memory system was violated."""


class OutOfMemory(MemoryError):
    """No free physical page was left."""


class BadAddress(ValueError):
    """A virtual or physical address could not be accessed."""


def _pa2pte(pa: int) -> int:
    return (pa >> 12) << 10


def _pte2pa(pte: int) -> int:
    return (pte >> 10) << 12


def _pte_flags(pte: int) -> int:
    return pte & 0x3FF


def _px(level: int, va: int) -> int:
    return (va >> (12 + 9 * level)) & 0x1FF


def _pgroundup(a: int) -> int:
    return (a + PGSIZE - 1) & ~(PGSIZE - 1)


def _pgrounddown(a: int) -> int:
    return a & ~(PGSIZE - 1)


class PhysicalMemory:
    """Page-granular physical memory from ``base`` up to ``top``."""

    def __init__(self, base: int, top: int) -> None:
        if base % PGSIZE or top % PGSIZE:
            raise ValueError("memory bounds must be page-aligned")
        if top <= base:
            raise ValueError("memory must hold at least one page")
        self.base = base
        self.top = top
        self._free = list(range(top - PGSIZE, base - 1, -PGSIZE))
        self._pages: dict[int, bytearray] = {}

    def kalloc(self) -> int:
        """Allocate one zeroed page and return its physical address."""
        if not self._free:
            raise OutOfMemory("kalloc: no free pages")
        pa = self._free.pop()
        self._pages[pa] = bytearray(PGSIZE)
        return pa

    def kfree(self, pa: int) -> None:
        """Return the page at ``pa`` to the pool."""
        if pa % PGSIZE or not self.base <= pa < self.top or pa not in self._pages:
            raise KernelPanic("kfree")
        del self._pages[pa]
        self._free.append(pa)

    def _locate(self, pa: int) -> tuple[bytearray, int]:
        page = self._pages.get(_pgrounddown(pa))
        if page is None:
            raise BadAddress(f"physical address {pa:#x} is not allocated")
        return page, pa % PGSIZE

    def read(self, pa: int, n: int) -> bytes:
        """Read ``n`` bytes starting at physical address ``pa``."""
        out = bytearray()
        while n > 0:
            page, off = self._locate(pa)
            k = min(n, PGSIZE - off)
            out += page[off:off + k]
            pa += k
            n -= k
        return bytes(out)

    def write(self, pa: int, data: bytes) -> None:
        """Write ``data`` starting at physical address ``pa``."""
        view = memoryview(bytes(data))
        while view:
            page, off = self._locate(pa)
            k = min(len(view), PGSIZE - off)
            page[off:off + k] = view[:k]
            pa += k
            view = view[k:]

    def free_pages(self) -> int:
        """Number of pages not yet allocated."""
        return len(self._free)

    def _load_u64(self, pa: int) -> int:
        page, off = self._locate(pa)
        return _U64.unpack_from(page, off)[0]

    def _store_u64(self, pa: int, value: int) -> None:
        page, off = self._locate(pa)
        _U64.pack_into(page, off, value)


class PageTable:
    """A three-level page table whose pages live in ``memory``."""

    def __init__(self, memory: PhysicalMemory) -> None:
        self.memory = memory
        self.root = memory.kalloc()

    def walk(self, va: int, alloc: bool = False) -> int | None:
        """Physical address of the leaf PTE for ``va``.

        Missing intermediate tables are created when ``alloc`` is true;
        otherwise None is returned for them.
        """
        if va >= MAXVA:
            raise KernelPanic("walk")
        mem = self.memory
        table = self.root
        for level in (2, 1):
            addr = table + 8 * _px(level, va)
            pte = mem._load_u64(addr)
            if pte & PTE_V:
                table = _pte2pa(pte)
            else:
                if not alloc:
                    return None
                table = mem.kalloc()
                mem._store_u64(addr, _pa2pte(table) | PTE_V)
        return table + 8 * _px(0, va)

    def walkaddr(self, va: int) -> int | None:
        """Physical page of a user-accessible ``va``, or None."""
        if va >= MAXVA:
            return None
        addr = self.walk(va)
        if addr is None:
            return None
        pte = self.memory._load_u64(addr)
        if not pte & PTE_V or not pte & PTE_U:
            return None
        return _pte2pa(pte)

    def mappages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map ``size`` bytes at ``va`` to physical memory at ``pa``."""
        if va % PGSIZE:
            raise KernelPanic("mappages: va not aligned")
        if size % PGSIZE:
            raise KernelPanic("mappages: size not aligned")
        if size == 0:
            raise KernelPanic("mappages: size")
        mem = self.memory
        for offset in range(0, size, PGSIZE):
            addr = self.walk(va + offset, True)
            if mem._load_u64(addr) & PTE_V:
                raise KernelPanic("mappages: remap")
            mem._store_u64(addr, _pa2pte(pa + offset) | perm | PTE_V)

    def unmap(self, va: int, npages: int, do_free: bool) -> None:
        """Remove ``npages`` existing mappings from ``va``."""
        if va % PGSIZE:
            raise KernelPanic("uvmunmap: not aligned")
        mem = self.memory
        for a in range(va, va + npages * PGSIZE, PGSIZE):
            addr = self.walk(a)
            if addr is None:
                raise KernelPanic("uvmunmap: walk")
            pte = mem._load_u64(addr)
            if not pte & PTE_V:
                raise KernelPanic("uvmunmap: not mapped")
            if _pte_flags(pte) == PTE_V:
                raise KernelPanic("uvmunmap: not a leaf")
            if do_free:
                mem.kfree(_pte2pa(pte))
            mem._store_u64(addr, 0)

    def load_first(self, src: bytes) -> None:
        """Place the first process's code at address 0."""
        if len(src) >= PGSIZE:
            raise KernelPanic("uvmfirst: more than a page")
        pa = self.memory.kalloc()
        self.mappages(0, PGSIZE, pa, PTE_W | PTE_R | PTE_X | PTE_U)
        self.memory.write(pa, src)

    def grow(self, oldsz: int, newsz: int, xperm: int = 0) -> int:
        """Allocate user pages from ``oldsz`` up to ``newsz``; return the new size."""
        if newsz < oldsz:
            return oldsz
        oldsz = _pgroundup(oldsz)
        mem = self.memory
        for a in range(oldsz, newsz, PGSIZE):
            try:
                pa = mem.kalloc()
            except OutOfMemory:
                self.shrink(a, oldsz)
                raise
            try:
                self.mappages(a, PGSIZE, pa, PTE_R | PTE_U | xperm)
            except OutOfMemory:
                mem.kfree(pa)
                self.shrink(a, oldsz)
                raise
        return newsz

    def shrink(self, oldsz: int, newsz: int) -> int:
        """Free user pages to bring the size down to ``newsz``."""
        if newsz >= oldsz:
            return oldsz
        if _pgroundup(newsz) < _pgroundup(oldsz):
            npages = (_pgroundup(oldsz) - _pgroundup(newsz)) // PGSIZE
            self.unmap(_pgroundup(newsz), npages, True)
        return newsz

    def _freewalk(self, table: int) -> None:
        mem = self.memory
        entries = [v for (v,) in _U64.iter_unpack(mem.read(table, PGSIZE))]
        for i, pte in enumerate(entries):
            if pte & PTE_V and not pte & _PTE_PERMS:
                self._freewalk(_pte2pa(pte))
                mem._store_u64(table + 8 * i, 0)
            elif pte & PTE_V:
                raise KernelPanic("freewalk: leaf")
        mem.kfree(table)

    def free(self, sz: int) -> None:
        """Free ``sz`` bytes of user memory and then every table page."""
        if sz > 0:
            self.unmap(0, _pgroundup(sz) // PGSIZE, True)
        self._freewalk(self.root)

    def copy_into(self, other: "PageTable", sz: int) -> None:
        """Copy the first ``sz`` bytes of mappings and memory into ``other``."""
        mem = self.memory
        for i in range(0, sz, PGSIZE):
            addr = self.walk(i)
            if addr is None:
                raise KernelPanic("uvmcopy: pte should exist")
            pte = mem._load_u64(addr)
            if not pte & PTE_V:
                raise KernelPanic("uvmcopy: page not present")
            try:
                page = other.memory.kalloc()
            except OutOfMemory:
                other.unmap(0, i // PGSIZE, True)
                raise
            other.memory.write(page, mem.read(_pte2pa(pte), PGSIZE))
            try:
                other.mappages(i, PGSIZE, page, _pte_flags(pte))
            except OutOfMemory:
                other.memory.kfree(page)
                other.unmap(0, i // PGSIZE, True)
                raise

    def clear_user(self, va: int) -> None:
        """Make the page at ``va`` inaccessible to user code."""
        addr = self.walk(va)
        if addr is None:
            raise KernelPanic("uvmclear")
        self.memory._store_u64(addr, self.memory._load_u64(addr) & ~PTE_U)

    def copyout(self, dstva: int, data: bytes) -> None:
        """Copy ``data`` to user virtual address ``dstva``."""
        mem = self.memory
        data = bytes(data)
        pos = 0
        while pos < len(data):
            va0 = _pgrounddown(dstva)
            if va0 >= MAXVA:
                raise BadAddress(f"virtual address {dstva:#x} out of range")
            addr = self.walk(va0)
            pte = 0 if addr is None else mem._load_u64(addr)
            if not (pte & PTE_V and pte & PTE_U and pte & PTE_W):
                raise BadAddress(f"virtual address {dstva:#x} is not writable")
            off = dstva - va0
            n = min(PGSIZE - off, len(data) - pos)
            mem.write(_pte2pa(pte) + off, data[pos:pos + n])
            pos += n
            dstva = va0 + PGSIZE

    def copyin(self, srcva: int, n: int) -> bytes:
        """Copy ``n`` bytes from user virtual address ``srcva``."""
        out = bytearray()
        while n > 0:
            va0 = _pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"virtual address {srcva:#x} is not readable")
            off = srcva - va0
            k = min(PGSIZE - off, n)
            out += self.memory.read(pa0 + off, k)
            n -= k
            srcva = va0 + PGSIZE
        return bytes(out)

    def copyinstr(self, srcva: int, max_len: int) -> bytes:
        """Copy a NUL-terminated string, without its NUL, from ``srcva``."""
        out = bytearray()
        while max_len > 0:
            va0 = _pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"virtual address {srcva:#x} is not readable")
            off = srcva - va0
            n = min(PGSIZE - off, max_len)
            chunk = self.memory.read(pa0 + off, n)
            nul = chunk.find(0)
            if nul >= 0:
                out += chunk[:nul]
                return bytes(out)
            out += chunk
            max_len -= n
            srcva = va0 + PGSIZE
        raise BadAddress("string is not terminated within the limit")


def _kvmmap(table: PageTable, va: int, pa: int, sz: int, perm: int) -> None:
    try:
        table.mappages(va, sz, pa, perm)
    except OutOfMemory:
        raise KernelPanic("kvmmap") from None


def kvmmake(memory: PhysicalMemory, etext: int, trampoline: int, nproc: int) -> PageTable:
    """Build the kernel's direct-mapped page table."""
    table = PageTable(memory)
    _kvmmap(table, UART0, UART0, PGSIZE, PTE_R | PTE_W)
    _kvmmap(table, VIRTIO0, VIRTIO0, PGSIZE, PTE_R | PTE_W)
    _kvmmap(table, PLIC, PLIC, 0x400000, PTE_R | PTE_W)
    _kvmmap(table, KERNBASE, KERNBASE, etext - KERNBASE, PTE_R | PTE_X)
    _kvmmap(table, etext, etext, PHYSTOP - etext, PTE_R | PTE_W)
    _kvmmap(table, TRAMPOLINE, trampoline, PGSIZE, PTE_R | PTE_X)
    for p in range(nproc):
        try:
            pa = memory.kalloc()
        except OutOfMemory:
            raise KernelPanic("kalloc") from None
        _kvmmap(table, kstack(p), pa, PGSIZE, PTE_R | PTE_W)
    return table