import pytest

from rvpaging.address import PhysAddrSv39, VirtAddrSv39
from rvpaging.mapper import (
    FlagUpdateError,
    FrameAllocationFailed,
    FrameAllocator,
    FrameDeallocator,
    InvalidFrameAddress,
    MapperFlush,
    Mapper,
    MapToError,
    PageAlreadyMapped,
    PageNotMapped,
    ParentEntryHugePage,
    UnmapError,
)
from rvpaging.page import Frame, Page
from rvpaging.page_table import PageTableFlags, page_table_x64

F = PageTableFlags


class _FlatMapper(Mapper):
    virt_type = VirtAddrSv39
    phys_type = PhysAddrSv39

    def __init__(self):
        self.table = page_table_x64()

    def ref_entry(self, page):
        if page.p2_index() or page.p3_index():
            raise PageNotMapped()
        return self.table[page.p1_index()]

    def map_to(self, page, frame, flags, allocator):
        entry = self.ref_entry(page)
        if not entry.is_unused():
            raise PageAlreadyMapped()
        entry.set(frame, flags)
        return MapperFlush(page)

    def unmap(self, page):
        entry = self.ref_entry(page)
        if entry.is_unused():
            raise PageNotMapped()
        frame = entry.frame(PhysAddrSv39)
        entry.set_unused()
        return frame, MapperFlush(page)


class _NoFrames(FrameAllocator):
    def alloc(self):
        return None


def _page(vpn):
    return Page.of_vpn(VirtAddrSv39, vpn)


def _frame(ppn):
    return Frame.of_ppn(PhysAddrSv39, ppn)


def test_translate_unmapped_page_is_none():
    assert _FlatMapper().translate_page(_page(3)) is None


def test_translate_page_outside_table_is_none():
    page = Page.from_page_table_indices(VirtAddrSv39, 0, 1, 0)
    assert _FlatMapper().translate_page(page) is None


def test_translate_after_map():
    mapper = _FlatMapper()
    mapper.map_to(_page(3), _frame(40), F.VALID | F.READABLE, _NoFrames())
    assert mapper.translate_page(_page(3)) == _frame(40)


def test_update_flags_keeps_frame_and_replaces_flags():
    mapper = _FlatMapper()
    mapper.map_to(_page(3), _frame(40), F.VALID | F.READABLE, _NoFrames())
    flush = mapper.update_flags(_page(3), F.VALID | F.WRITABLE)
    entry = mapper.ref_entry(_page(3))
    assert F.WRITABLE in entry.flags()
    assert F.READABLE not in entry.flags()
    assert F.ACCESSED in entry.flags() and F.DIRTY in entry.flags()
    assert entry.frame(PhysAddrSv39) == _frame(40)
    assert flush == MapperFlush(_page(3))


def test_update_flags_on_unreachable_page_raises():
    page = Page.from_page_table_indices(VirtAddrSv39, 1, 0, 0)
    with pytest.raises(FlagUpdateError):
        _FlatMapper().update_flags(page, F.VALID)


def test_identity_map_uses_same_address():
    mapper = _FlatMapper()
    frame = _frame(7)
    flush = mapper.identity_map(frame, F.VALID | F.READABLE, _NoFrames())
    page = Page.of_addr(VirtAddrSv39.new(frame.start_address().as_usize()))
    assert mapper.translate_page(page) == frame
    assert flush.address == frame.start_address().as_usize()


def test_identity_map_twice_raises():
    mapper = _FlatMapper()
    mapper.identity_map(_frame(7), F.VALID, _NoFrames())
    with pytest.raises(PageAlreadyMapped):
        mapper.identity_map(_frame(7), F.VALID, _NoFrames())


def test_flush_calls_sfence_with_zero_asid():
    calls = []
    flush = MapperFlush(_page(5))
    flush.flush(lambda asid, addr: calls.append((asid, addr)))
    assert calls == [(0, _page(5).start_address().as_usize())]


def test_ignore_does_not_fence():
    flush = MapperFlush(_page(5))
    assert flush.ignore() is None
    assert flush.address == _page(5).start_address().as_usize()


def test_error_hierarchy():
    mapper = _FlatMapper()
    with pytest.raises(UnmapError) as unmap_info:
        mapper.unmap(_page(6))
    assert isinstance(unmap_info.value, PageNotMapped)

    unreachable = Page.from_page_table_indices(VirtAddrSv39, 1, 0, 0)
    with pytest.raises(FlagUpdateError) as update_info:
        mapper.update_flags(unreachable, F.VALID)
    assert isinstance(update_info.value, PageNotMapped)

    huge = ParentEntryHugePage()
    assert isinstance(huge, MapToError)
    assert isinstance(huge, UnmapError)

    assert isinstance(FrameAllocationFailed(), MapToError)

    already = PageAlreadyMapped()
    assert isinstance(already, MapToError)
    assert not isinstance(already, UnmapError)


def test_errors_raised_by_mapper_are_caught_by_family():
    mapper = _FlatMapper()
    with pytest.raises(UnmapError) as unmap_info:
        mapper.unmap(_page(4))
    assert isinstance(unmap_info.value, PageNotMapped)
    mapper.map_to(_page(4), _frame(11), F.VALID, _NoFrames())
    with pytest.raises(MapToError) as map_info:
        mapper.map_to(_page(4), _frame(12), F.VALID, _NoFrames())
    assert isinstance(map_info.value, PageAlreadyMapped)
    assert not isinstance(map_info.value, UnmapError)
    assert mapper.translate_page(_page(4)) == _frame(11)


def test_invalid_frame_address_carries_address():
    address = PhysAddrSv39.new_u64(0x3000)
    error = InvalidFrameAddress(address)
    assert error.address == address
    assert isinstance(error, UnmapError)


def test_allocator_interfaces_are_abstract():
    with pytest.raises(TypeError):
        FrameAllocator()
    with pytest.raises(TypeError):
        FrameDeallocator()


def test_deallocator_subclass_receives_frames():
    class _Collect(FrameDeallocator):
        def __init__(self):
            self.frames = []

        def dealloc(self, frame):
            self.frames.append(frame)

    sink = _Collect()
    mapper = _FlatMapper()
    mapper.map_to(_page(2), _frame(9), F.VALID, _NoFrames())
    frame, _ = mapper.unmap(_page(2))
    sink.dealloc(frame)
    assert sink.frames == [_frame(9)]
    assert mapper.translate_page(_page(2)) is None