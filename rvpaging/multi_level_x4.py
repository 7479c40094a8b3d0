"""Hypervisor page tables: guest-physical (x4) and guest-virtual tables."""

from __future__ import annotations

from .address import VirtAddrSv32, VirtAddrSv39, VirtAddrSv48
from .gpax4 import GPAddrSv32X4, GPAddrSv39X4, GPAddrSv48X4
from .mapper import Fence, MapperFlush
from .multi_level import Rv32PageTable, Rv39PageTable, Rv48PageTable


class MapperFlushGPA(MapperFlush):
    """A pending flush of a guest-physical page, fenced with ``HFENCE.GVMA``."""

    __slots__ = ()

    def flush(self, fence: Fence) -> None:
        """Flush the page by calling ``fence(rs1, rs2)`` with the address in ``rs1``."""
        fence(self.address, 0)


class MapperFlushGPT(MapperFlush):
    """A pending flush of a guest-virtual page, fenced with ``HFENCE.VVMA``."""

    __slots__ = ()

    def flush(self, fence: Fence) -> None:
        """Flush the page by calling ``fence(rs1, rs2)`` with the address in ``rs1``."""
        fence(self.address, 0)


class Rv32PageTableX4(Rv32PageTable):
    """An Sv32x4 table mapping guest-physical to host-physical addresses."""

    virt_type = GPAddrSv32X4
    flush_type = MapperFlushGPA


class Rv39PageTableX4(Rv39PageTable):
    """An Sv39x4 table mapping guest-physical to host-physical addresses."""

    virt_type = GPAddrSv39X4
    flush_type = MapperFlushGPA


class Rv48PageTableX4(Rv48PageTable):
    """An Sv48x4 table mapping guest-physical to host-physical addresses."""

    virt_type = GPAddrSv48X4
    flush_type = MapperFlushGPA


class Rv32PageTableGuest(Rv32PageTable):
    """An Sv32 guest page table, flushed with ``HFENCE.VVMA``."""

    virt_type = VirtAddrSv32
    flush_type = MapperFlushGPT


class Rv39PageTableGuest(Rv39PageTable):
    """An Sv39 guest page table, flushed with ``HFENCE.VVMA``."""

    virt_type = VirtAddrSv39
    flush_type = MapperFlushGPT


class Rv48PageTableGuest(Rv48PageTable):
    """An Sv48 guest page table, flushed with ``HFENCE.VVMA``."""

    virt_type = VirtAddrSv48
    flush_type = MapperFlushGPT