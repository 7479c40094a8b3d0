"""Two, three and four level page tables that implement the mapper interface."""

from __future__ import annotations

from typing import Callable, ClassVar

from .address import (
    PhysAddrSv32,
    PhysAddrSv39,
    PhysAddrSv48,
    VirtAddrSv32,
    VirtAddrSv39,
    VirtAddrSv48,
    _require_width,
)
from .mapper import (
    FrameAllocationFailed,
    FrameAllocator,
    Mapper,
    MapperFlush,
    PageAlreadyMapped,
    PageNotMapped,
)
from .page import Frame, Page
from .page_table import PageTable, PageTableEntry, PageTableFlags, page_table_x32, page_table_x64


class TableMemory:
    """Page tables held in memory, keyed by the kernel address they live at."""

    def __init__(self) -> None:
        self._tables: dict[int, PageTable] = {}

    def table_at(self, address: int, factory: Callable[[], PageTable]) -> PageTable:
        """Return the table at ``address``, making an empty one with ``factory`` if none is there."""
        table = self._tables.get(address)
        if table is None:
            table = factory()
            self._tables[address] = table
        return table

    def __contains__(self, address: object) -> bool:
        return address in self._tables

    def __len__(self) -> int:
        return len(self._tables)


class _MultiLevelPageTable(Mapper):
    """A page table walked from the root through ``_levels`` to a leaf table."""

    _levels: ClassVar[tuple[str, ...]]
    _new_table: ClassVar[staticmethod]

    def __init__(
        self, root_table: PageTable, linear_offset: int = 0, memory: TableMemory | None = None
    ) -> None:
        _require_width(linear_offset, 64, "linear_offset")
        self.root_table = root_table
        self.linear_offset = linear_offset
        self.memory = memory if memory is not None else TableMemory()

    def _table_for(self, frame: Frame) -> PageTable:
        return self.memory.table_at(frame.kernel_address(self.linear_offset), self._new_table)

    def _check_page(self, page: Page) -> None:
        if not isinstance(page, Page) or not isinstance(page.start_address(), self.virt_type):
            raise TypeError(f"{type(self).__name__} maps pages of {self.virt_type.__name__}")

    def _check_frame(self, frame: Frame) -> None:
        if not isinstance(frame, Frame) or not isinstance(frame.start_address(), self.phys_type):
            raise TypeError(f"{type(self).__name__} maps to frames of {self.phys_type.__name__}")

    def _leaf_table(self, page: Page) -> PageTable:
        table = self.root_table
        for level in self._levels:
            entry = table[getattr(page, level)()]
            if entry.is_unused():
                raise PageNotMapped(f"no table for {page!r}")
            table = self._table_for(entry.frame(self.phys_type))
        return table

    def _create_leaf_table(self, page: Page, allocator: FrameAllocator) -> PageTable:
        table = self.root_table
        for level in self._levels:
            entry = table[getattr(page, level)()]
            if entry.is_unused():
                frame = allocator.alloc()
                if frame is None:
                    raise FrameAllocationFailed("frame allocator is exhausted")
                entry.set(frame, PageTableFlags.VALID)
                table = self._table_for(frame)
                table.zero()
            else:
                table = self._table_for(entry.frame(self.phys_type))
        return table

    def _map_to(
        self, page: Page, frame: Frame, flags: PageTableFlags, allocator: FrameAllocator
    ) -> MapperFlush:
        self._check_page(page)
        self._check_frame(frame)
        leaf = self._create_leaf_table(page, allocator)[page.p1_index()]
        if not leaf.is_unused():
            raise PageAlreadyMapped(f"{page!r} is already mapped")
        leaf.set(frame, flags)
        return self.flush_type(page)

    def _unmap(self, page: Page) -> tuple[Frame, MapperFlush]:
        self._check_page(page)
        leaf = self._leaf_table(page)[page.p1_index()]
        if PageTableFlags.VALID not in leaf.flags():
            raise PageNotMapped(f"{page!r} is not mapped")
        frame = leaf.frame(self.phys_type)
        leaf.set_unused()
        return frame, self.flush_type(page)

    def _ref_entry(self, page: Page) -> PageTableEntry:
        self._check_page(page)
        return self._leaf_table(page)[page.p1_index()]


class Rv32PageTable(_MultiLevelPageTable):
    """A two-level Sv32 page table."""

    virt_type = VirtAddrSv32
    phys_type = PhysAddrSv32
    flush_type = MapperFlush
    _levels = ("p2_index",)
    _new_table = staticmethod(page_table_x32)

    def map_to(
        self, page: Page, frame: Frame, flags: PageTableFlags, allocator: FrameAllocator
    ) -> MapperFlush:
        """Map ``page`` to ``frame``, creating the second-level table if needed."""
        return self._map_to(page, frame, flags, allocator)

    def unmap(self, page: Page) -> tuple[Frame, MapperFlush]:
        """Clear the mapping of ``page``; no tables are freed."""
        return self._unmap(page)

    def ref_entry(self, page: Page) -> PageTableEntry:
        """Return the leaf entry of ``page``, whether in use or not."""
        return self._ref_entry(page)


class Rv39PageTable(_MultiLevelPageTable):
    """A three-level Sv39 page table."""

    virt_type = VirtAddrSv39
    phys_type = PhysAddrSv39
    flush_type = MapperFlush
    _levels = ("p3_index", "p2_index")
    _new_table = staticmethod(page_table_x64)

    def map_to(
        self, page: Page, frame: Frame, flags: PageTableFlags, allocator: FrameAllocator
    ) -> MapperFlush:
        """Map ``page`` to ``frame``, creating the tables on the way as needed."""
        return self._map_to(page, frame, flags, allocator)

    def unmap(self, page: Page) -> tuple[Frame, MapperFlush]:
        """Clear the mapping of ``page``; no tables are freed."""
        return self._unmap(page)

    def ref_entry(self, page: Page) -> PageTableEntry:
        """Return the leaf entry of ``page``, whether in use or not."""
        return self._ref_entry(page)


class Rv48PageTable(_MultiLevelPageTable):
    """A four-level Sv48 page table."""

    virt_type = VirtAddrSv48
    phys_type = PhysAddrSv48
    flush_type = MapperFlush
    _levels = ("p4_index", "p3_index", "p2_index")
    _new_table = staticmethod(page_table_x64)

    def map_to(
        self, page: Page, frame: Frame, flags: PageTableFlags, allocator: FrameAllocator
    ) -> MapperFlush:
        """Map ``page`` to ``frame``, creating the tables on the way as needed."""
        return self._map_to(page, frame, flags, allocator)

    def unmap(self, page: Page) -> tuple[Frame, MapperFlush]:
        """Clear the mapping of ``page``; no tables are freed."""
        return self._unmap(page)

    def ref_entry(self, page: Page) -> PageTableEntry:
        """Return the leaf entry of ``page``, whether in use or not."""
        return self._ref_entry(page)