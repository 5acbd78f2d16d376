"""Physical and virtual memory layout of the qemu virt machine."""

from __future__ import annotations

PGSIZE = 4096
# One bit less than Sv39 allows, so addresses need no sign extension.
MAXVA = 1 << (9 + 9 + 9 + 12 - 1)

UART0 = 0x10000000
UART0_IRQ = 10

VIRTIO0 = 0x10001000
VIRTIO0_IRQ = 1

CLINT = 0x2000000
CLINT_MTIME = CLINT + 0xBFF8

PLIC = 0x0C000000
PLIC_PRIORITY = PLIC + 0x0
PLIC_PENDING = PLIC + 0x1000

KERNBASE = 0x80000000
PHYSTOP = KERNBASE + 128 * 1024 * 1024

TRAMPOLINE = MAXVA - PGSIZE
TRAPFRAME = TRAMPOLINE - PGSIZE


def _check(index: int) -> None:
    if index < 0:
        raise ValueError("index must not be negative")


def clint_mtimecmp(hartid: int) -> int:
    """Address of the timer compare register of a hart."""
    _check(hartid)
    return CLINT + 0x4000 + 8 * hartid


def plic_senable(hart: int) -> int:
    """Address of the supervisor interrupt-enable bits of a hart."""
    _check(hart)
    return PLIC + 0x2080 + hart * 0x100


def plic_spriority(hart: int) -> int:
    """Address of the supervisor priority threshold of a hart."""
    _check(hart)
    return PLIC + 0x201000 + hart * 0x2000


def plic_sclaim(hart: int) -> int:
    """Address of the supervisor claim register of a hart."""
    _check(hart)
    return PLIC + 0x201004 + hart * 0x2000


def kstack(p: int) -> int:
    """Virtual address of process slot ``p``'s kernel stack.

    Each stack sits beneath the trampoline, separated by guard pages.
    """
    _check(p)
    return TRAMPOLINE - (p + 1) * 2 * PGSIZE