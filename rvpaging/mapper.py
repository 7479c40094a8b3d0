"""The mapper interface, frame allocation, flush promises and mapping errors."""

from __future__ import annotations

import abc
from typing import Callable, ClassVar

from .address import Address
from .page import Frame, Page
from .page_table import PageTableEntry, PageTableFlags

Fence = Callable[[int, int], None]


class FrameAllocator(abc.ABC):
    """Something that hands out physical frames."""

    @abc.abstractmethod
    def alloc(self) -> Frame | None:
        """Return a free frame, or ``None`` when none is left."""


class FrameDeallocator(abc.ABC):
    """Something that takes physical frames back."""

    @abc.abstractmethod
    def dealloc(self, frame: Frame) -> None:
        """Give ``frame`` back."""


class MapperFlush:
    """A pending TLB flush for one page, fenced with ``SFENCE.VMA``."""

    __slots__ = ("address",)

    def __init__(self, page: Page) -> None:
        self.address = page.start_address().as_usize()

    def flush(self, fence: Fence) -> None:
        """Flush the page by calling ``fence(asid, addr)``."""
        fence(0, self.address)

    def ignore(self) -> None:
        """Drop the promise without flushing."""

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash((type(self), self.address))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address:#x})"


class MapToError(Exception):
    """A mapping could not be created."""


class UnmapError(Exception):
    """A mapping could not be removed."""


class FlagUpdateError(Exception):
    """The flags of a mapping could not be changed."""


class FrameAllocationFailed(MapToError):
    """A frame was needed for a new table, but the allocator had none."""


class ParentEntryHugePage(MapToError, UnmapError):
    """An upper-level entry maps a huge page that covers the given page."""


class PageAlreadyMapped(MapToError):
    """The given page is already mapped to a frame."""


class PageNotMapped(UnmapError, FlagUpdateError):
    """The given page is not mapped to a frame."""


class InvalidFrameAddress(UnmapError):
    """The entry for the page points at an invalid physical address."""

    def __init__(self, address: Address) -> None:
        super().__init__(f"invalid frame address {address!r}")
        self.address = address


class Mapper(abc.ABC):
    """A page table that maps virtual pages to physical frames."""

    virt_type: ClassVar[type[Address]]
    phys_type: ClassVar[type[Address]]
    flush_type: ClassVar[type[MapperFlush]] = MapperFlush

    @abc.abstractmethod
    def map_to(
        self, page: Page, frame: Frame, flags: PageTableFlags, allocator: FrameAllocator
    ) -> MapperFlush:
        """Map ``page`` to ``frame``, taking new tables from ``allocator``."""

    @abc.abstractmethod
    def unmap(self, page: Page) -> tuple[Frame, MapperFlush]:
        """Remove the mapping of ``page`` and return the frame it had."""

    @abc.abstractmethod
    def ref_entry(self, page: Page) -> PageTableEntry:
        """Return the leaf entry for ``page``."""

    def update_flags(self, page: Page, flags: PageTableFlags) -> MapperFlush:
        """Replace the flags of an existing mapping."""
        entry = self.ref_entry(page)
        entry.set(entry.frame(self.phys_type), flags)
        return self.flush_type(page)

    def translate_page(self, page: Page) -> Frame | None:
        """Return the frame ``page`` is mapped to, or ``None``."""
        try:
            entry = self.ref_entry(page)
        except FlagUpdateError:
            return None
        if entry.is_unused():
            return None
        return entry.frame(self.phys_type)

    def identity_map(
        self, frame: Frame, flags: PageTableFlags, allocator: FrameAllocator
    ) -> MapperFlush:
        """Map ``frame`` to the virtual page at the same address."""
        page = Page.of_addr(self.virt_type.new(frame.start_address().as_usize()))
        return self.map_to(page, frame, flags, allocator)