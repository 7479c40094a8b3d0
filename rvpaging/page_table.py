"""Page-table entries, flags and fixed-size page tables."""

from __future__ import annotations

import enum
import operator
from dataclasses import dataclass
from typing import ClassVar, Iterator

from .address import Address, PhysAddrSv32, PhysAddrSv39, PhysAddrSv48, _require_width
from .page import Frame

RV64_ENTRY_COUNT = 1 << 9
RV32_ENTRY_COUNT = 1 << 10
RV32_X4_ENTRY_COUNT = RV32_ENTRY_COUNT << 2
RV64_X4_ENTRY_COUNT = RV64_ENTRY_COUNT << 2

_PPN_SHIFT = 10
_PAGE_SHIFT = 12


class PageTableFlags(enum.IntFlag):
    """Possible flags for a page table entry."""

    VALID = 1 << 0
    READABLE = 1 << 1
    WRITABLE = 1 << 2
    EXECUTABLE = 1 << 3
    USER = 1 << 4
    GLOBAL = 1 << 5
    ACCESSED = 1 << 6
    DIRTY = 1 << 7
    RESERVED1 = 1 << 8
    RESERVED2 = 1 << 9


_FLAG_MASK = (1 << _PPN_SHIFT) - 1


@dataclass(eq=True, repr=False)
class PageTableEntry:
    """A page-table entry: a physical page number above ten flag bits."""

    bits: int = 0

    _WIDTH: ClassVar[int] = 64
    _DEFAULT_PHYS: ClassVar[type[Address]] = PhysAddrSv48

    def __post_init__(self) -> None:
        _require_width(self.bits, self._WIDTH, type(self).__name__)

    def is_unused(self) -> bool:
        return self.bits == 0

    def set_unused(self) -> None:
        self.bits = 0

    def flags(self) -> PageTableFlags:
        return PageTableFlags(self.bits & _FLAG_MASK)

    def set_flags(self, flags: PageTableFlags) -> None:
        """Replace the flag bits, keeping the physical page number."""
        self.bits = (self.bits & ~_FLAG_MASK) | (int(flags) & _FLAG_MASK)

    def ppn(self) -> int:
        return self.bits >> _PPN_SHIFT

    def addr(self, address_type: type[Address]) -> Address:
        return address_type.new_u64(self.ppn() << _PAGE_SHIFT)

    def frame(self, address_type: type[Address]) -> Frame:
        return Frame.of_addr(self.addr(address_type))

    def set(self, frame: Frame, flags: PageTableFlags) -> None:
        """Point the entry at ``frame``; accessed and dirty are always set."""
        flags = PageTableFlags(int(flags) & _FLAG_MASK)
        flags |= PageTableFlags.ACCESSED | PageTableFlags.DIRTY
        value = (frame.number() << _PPN_SHIFT) | int(flags)
        self.bits = value & ((1 << self._WIDTH) - 1)

    def describe(self, address_type: type[Address]) -> str:
        """Render the entry with its frame read as ``address_type``."""
        return (
            f"{type(self).__name__} {{ frame: {self.frame(address_type)!r}, "
            f"flags: {self.flags()!r} }}"
        )

    def __repr__(self) -> str:
        return self.describe(self._DEFAULT_PHYS)


class PageTableEntryX32(PageTableEntry):
    """A 32-bit entry used by Sv32 tables."""

    _WIDTH = 32
    _DEFAULT_PHYS = PhysAddrSv32


class PageTableEntryX64(PageTableEntry):
    """A 64-bit entry used by Sv39 and Sv48 tables."""

    _WIDTH = 64
    _DEFAULT_PHYS = PhysAddrSv48

    def debug_sv39(self) -> str:
        return self.describe(PhysAddrSv39)

    def debug_sv48(self) -> str:
        return self.describe(PhysAddrSv48)


class PageTable:
    """A fixed number of entries of one entry type."""

    def __init__(self, entry_type: type[PageTableEntry], count: int) -> None:
        self.entry_type = entry_type
        self._entries = [entry_type() for _ in range(count)]

    def zero(self) -> None:
        """Clear all entries."""
        for entry in self._entries:
            entry.set_unused()

    def used_entries(self) -> Iterator[tuple[int, PageTableEntry]]:
        """Yield ``(index, entry)`` for every entry in use."""
        return ((i, e) for i, e in enumerate(self._entries) if not e.is_unused())

    def __getitem__(self, index: int) -> PageTableEntry:
        position = operator.index(index)
        if not 0 <= position < len(self._entries):
            raise IndexError(f"page table index {position} out of range")
        return self._entries[position]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PageTableEntry]:
        return iter(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"{i}: {e!r}" for i, e in self.used_entries())
        return f"PageTable({{{body}}})"


def page_table_x32() -> PageTable:
    """An empty Sv32 table."""
    return PageTable(PageTableEntryX32, RV32_ENTRY_COUNT)


def page_table_x64() -> PageTable:
    """An empty Sv39 or Sv48 table."""
    return PageTable(PageTableEntryX64, RV64_ENTRY_COUNT)


def page_table_32x4() -> PageTable:
    """An empty Sv32x4 root table, four times the usual size."""
    return PageTable(PageTableEntryX32, RV32_X4_ENTRY_COUNT)


def page_table_64x4() -> PageTable:
    """An empty Sv39x4 or Sv48x4 root table, four times the usual size."""
    return PageTable(PageTableEntryX64, RV64_X4_ENTRY_COUNT)