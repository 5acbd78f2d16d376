"""Virtio MMIO register offsets, ring structures and block requests."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

VIRTIO_MMIO_MAGIC_VALUE = 0x000
VIRTIO_MMIO_VERSION = 0x004
VIRTIO_MMIO_DEVICE_ID = 0x008
VIRTIO_MMIO_VENDOR_ID = 0x00C
VIRTIO_MMIO_DEVICE_FEATURES = 0x010
VIRTIO_MMIO_DRIVER_FEATURES = 0x020
VIRTIO_MMIO_QUEUE_SEL = 0x030
VIRTIO_MMIO_QUEUE_NUM_MAX = 0x034
VIRTIO_MMIO_QUEUE_NUM = 0x038
VIRTIO_MMIO_QUEUE_READY = 0x044
VIRTIO_MMIO_QUEUE_NOTIFY = 0x050
VIRTIO_MMIO_INTERRUPT_STATUS = 0x060
VIRTIO_MMIO_INTERRUPT_ACK = 0x064
VIRTIO_MMIO_STATUS = 0x070
VIRTIO_MMIO_QUEUE_DESC_LOW = 0x080
VIRTIO_MMIO_QUEUE_DESC_HIGH = 0x084
VIRTIO_MMIO_DRIVER_DESC_LOW = 0x090
VIRTIO_MMIO_DRIVER_DESC_HIGH = 0x094
VIRTIO_MMIO_DEVICE_DESC_LOW = 0x0A0
VIRTIO_MMIO_DEVICE_DESC_HIGH = 0x0A4

VIRTIO_CONFIG_S_ACKNOWLEDGE = 1
VIRTIO_CONFIG_S_DRIVER = 2
VIRTIO_CONFIG_S_DRIVER_OK = 4
VIRTIO_CONFIG_S_FEATURES_OK = 8

VIRTIO_BLK_F_RO = 5
VIRTIO_BLK_F_SCSI = 7
VIRTIO_BLK_F_CONFIG_WCE = 11
VIRTIO_BLK_F_MQ = 12
VIRTIO_F_ANY_LAYOUT = 27
VIRTIO_RING_F_INDIRECT_DESC = 28
VIRTIO_RING_F_EVENT_IDX = 29

NUM = 8

VRING_DESC_F_NEXT = 1
VRING_DESC_F_WRITE = 2

VIRTIO_BLK_T_IN = 0
VIRTIO_BLK_T_OUT = 1

_DESC = struct.Struct("<QIHH")
_AVAIL = struct.Struct(f"<HH{NUM}HH")
_USED_ELEM = struct.Struct("<II")
_USED_HEAD = struct.Struct("<HH")
_BLK_REQ = struct.Struct("<IIQ")


def _unpack(layout: struct.Struct, data: bytes) -> tuple:
    if len(data) != layout.size:
        raise ValueError(f"expected {layout.size} bytes, got {len(data)}")
    return layout.unpack(data)


@dataclass
class VirtqDesc:
    """A single virtqueue descriptor."""

    addr: int = 0
    len: int = 0
    flags: int = 0
    next: int = 0

    SIZE = _DESC.size

    def pack(self) -> bytes:
        return _DESC.pack(self.addr, self.len, self.flags, self.next)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqDesc":
        return cls(*_unpack(_DESC, data))


@dataclass
class VirtqAvail:
    """The driver's available ring."""

    flags: int = 0
    idx: int = 0
    ring: tuple[int, ...] = field(default=(0,) * NUM)
    unused: int = 0

    SIZE = _AVAIL.size

    def __post_init__(self) -> None:
        self.ring = tuple(self.ring)
        if len(self.ring) != NUM:
            raise ValueError(f"avail ring must hold {NUM} entries")

    def pack(self) -> bytes:
        return _AVAIL.pack(self.flags, self.idx, *self.ring, self.unused)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqAvail":
        values = _unpack(_AVAIL, data)
        return cls(values[0], values[1], tuple(values[2:2 + NUM]), values[-1])


@dataclass
class VirtqUsedElem:
    """One entry of the device's used ring."""

    id: int = 0
    len: int = 0

    SIZE = _USED_ELEM.size

    def pack(self) -> bytes:
        return _USED_ELEM.pack(self.id, self.len)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqUsedElem":
        return cls(*_unpack(_USED_ELEM, data))


@dataclass
class VirtqUsed:
    """The device's used ring."""

    flags: int = 0
    idx: int = 0
    ring: tuple[VirtqUsedElem, ...] = field(
        default_factory=lambda: tuple(VirtqUsedElem() for _ in range(NUM))
    )

    SIZE = _USED_HEAD.size + NUM * _USED_ELEM.size

    def __post_init__(self) -> None:
        self.ring = tuple(self.ring)
        if len(self.ring) != NUM:
            raise ValueError(f"used ring must hold {NUM} entries")

    def pack(self) -> bytes:
        return _USED_HEAD.pack(self.flags, self.idx) + b"".join(e.pack() for e in self.ring)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqUsed":
        if len(data) != cls.SIZE:
            raise ValueError(f"expected {cls.SIZE} bytes, got {len(data)}")
        flags, idx = _USED_HEAD.unpack_from(data)
        elems = tuple(
            VirtqUsedElem(*_USED_ELEM.unpack_from(data, _USED_HEAD.size + k * _USED_ELEM.size))
            for k in range(NUM)
        )
        return cls(flags, idx, elems)


@dataclass
class BlkRequest:
    """The first descriptor of a virtio block request."""

    type: int = VIRTIO_BLK_T_IN
    reserved: int = 0
    sector: int = 0

    SIZE = _BLK_REQ.size

    def pack(self) -> bytes:
        return _BLK_REQ.pack(self.type, self.reserved, self.sector)

    @classmethod
    def unpack(cls, data: bytes) -> "BlkRequest":
        return cls(*_unpack(_BLK_REQ, data))