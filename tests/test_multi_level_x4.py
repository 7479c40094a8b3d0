import pytest

from rvpaging.address import (
    PhysAddrSv32,
    PhysAddrSv39,
    PhysAddrSv48,
    VirtAddrSv32,
    VirtAddrSv39,
    VirtAddrSv48,
)
from rvpaging.gpax4 import GPAddrSv32X4, GPAddrSv39X4, GPAddrSv48X4
from rvpaging.mapper import FrameAllocator, MapperFlush, PageNotMapped
from rvpaging.multi_level_x4 import (
    MapperFlushGPA,
    MapperFlushGPT,
    Rv32PageTableGuest,
    Rv32PageTableX4,
    Rv39PageTableGuest,
    Rv39PageTableX4,
    Rv48PageTableGuest,
    Rv48PageTableX4,
)
from rvpaging.page import Frame, Page
from rvpaging.page_table import (
    PageTableFlags,
    page_table_32x4,
    page_table_64x4,
    page_table_x32,
    page_table_x64,
)

F = PageTableFlags


class _ListAllocator(FrameAllocator):
    def __init__(self, frames):
        self.frames = list(frames)

    def alloc(self):
        return self.frames.pop(0) if self.frames else None


def _allocator(phys):
    return _ListAllocator(Frame.of_ppn(phys, n) for n in range(200, 220))


X4_CASES = [
    (Rv32PageTableX4, page_table_32x4, GPAddrSv32X4, PhysAddrSv32, (4000, 5)),
    (Rv39PageTableX4, page_table_64x4, GPAddrSv39X4, PhysAddrSv39, (2000, 7, 8)),
    (Rv48PageTableX4, page_table_64x4, GPAddrSv48X4, PhysAddrSv48, (1900, 1, 2, 3)),
]


@pytest.mark.parametrize("cls,factory,gpa,phys,indices", X4_CASES)
def test_x4_root_reaches_wide_index(cls, factory, gpa, phys, indices):
    mapper = cls(factory())
    page = Page.from_page_table_indices(gpa, *indices)
    frame = Frame.of_ppn(phys, 0x42)
    flush = mapper.map_to(page, frame, F.VALID | F.READABLE, _allocator(phys))
    assert mapper.translate_page(page) == frame
    assert isinstance(flush, MapperFlushGPA)
    assert flush.address == page.start_address().as_usize()
    assert not mapper.root_table[indices[0]].is_unused()


@pytest.mark.parametrize("cls,factory,gpa,phys,indices", X4_CASES)
def test_x4_unmap(cls, factory, gpa, phys, indices):
    mapper = cls(factory())
    page = Page.from_page_table_indices(gpa, *indices)
    frame = Frame.of_ppn(phys, 0x42)
    mapper.map_to(page, frame, F.VALID, _allocator(phys))
    got, flush = mapper.unmap(page)
    assert got == frame
    assert flush == MapperFlushGPA(page)
    with pytest.raises(PageNotMapped):
        mapper.unmap(page)


def test_x4_with_standard_root_overflows():
    mapper = Rv39PageTableX4(page_table_x64())
    page = Page.from_page_table_indices(GPAddrSv39X4, 2000, 0, 0)
    with pytest.raises(IndexError):
        mapper.map_to(page, Frame.of_ppn(PhysAddrSv39, 1), F.VALID, _allocator(PhysAddrSv39))


def test_x4_rejects_guest_virtual_pages():
    mapper = Rv39PageTableX4(page_table_64x4())
    with pytest.raises(TypeError):
        mapper.map_to(
            Page.of_vpn(VirtAddrSv39, 1),
            Frame.of_ppn(PhysAddrSv39, 1),
            F.VALID,
            _allocator(PhysAddrSv39),
        )


GUEST_CASES = [
    (Rv32PageTableGuest, page_table_x32, VirtAddrSv32, PhysAddrSv32),
    (Rv39PageTableGuest, page_table_x64, VirtAddrSv39, PhysAddrSv39),
    (Rv48PageTableGuest, page_table_x64, VirtAddrSv48, PhysAddrSv48),
]


@pytest.mark.parametrize("cls,factory,virt,phys", GUEST_CASES)
def test_guest_tables_flush_with_gpt(cls, factory, virt, phys):
    mapper = cls(factory())
    page = Page.of_vpn(virt, 0x321)
    frame = Frame.of_ppn(phys, 0x123)
    flush = mapper.map_to(page, frame, F.VALID, _allocator(phys))
    assert isinstance(flush, MapperFlushGPT)
    assert mapper.translate_page(page) == frame


def test_gpa_flush_passes_address_as_first_operand():
    page = Page.of_vpn(GPAddrSv39X4, 0x10)
    calls = []
    MapperFlushGPA(page).flush(lambda rs1, rs2: calls.append((rs1, rs2)))
    assert calls == [(page.start_address().as_usize(), 0)]


def test_gpt_flush_passes_address_as_first_operand():
    page = Page.of_vpn(VirtAddrSv48, 0x10)
    calls = []
    MapperFlushGPT(page).flush(lambda rs1, rs2: calls.append((rs1, rs2)))
    assert calls == [(page.start_address().as_usize(), 0)]


def test_flush_kinds_are_distinct():
    page = Page.of_vpn(VirtAddrSv39, 4)
    assert MapperFlushGPA(page) != MapperFlushGPT(page)
    assert MapperFlushGPT(page) != MapperFlush(page)
    assert MapperFlushGPT(page) == MapperFlushGPT(page)