"""Guest physical addresses for the hypervisor Sv32x4, Sv39x4 and Sv48x4 schemes."""

from __future__ import annotations

from .address import Address, _bits, _check_index, _require_width


class GPAddrSv32X4(Address):
    """A 34-bit guest physical address translated by an Sv32x4 table."""

    _NUMBER_END = 34

    @classmethod
    def new(cls, addr: int) -> GPAddrSv32X4:
        _require_width(addr, 64, "usize")
        return cls.new_u64(addr)

    @classmethod
    def new_u64(cls, addr: int) -> GPAddrSv32X4:
        _require_width(addr, 64, "u64")
        if _bits(addr, 34, 64):
            raise ValueError("Sv32x4 does not allow pa 34..64!=0")
        return cls(addr)

    def p2_index(self) -> int:
        return _bits(self.value, 22, 34)

    def p1_index(self) -> int:
        return _bits(self.value, 12, 22)

    @classmethod
    def from_page_table_indices(cls, p2_index: int, p1_index: int, offset: int) -> GPAddrSv32X4:
        _check_index(p2_index, 12, "p2_index")
        _check_index(p1_index, 10, "p1_index")
        _check_index(offset, 12, "offset")
        return cls.new_u64((p2_index << 22) | (p1_index << 12) | offset)


class GPAddrSv39X4(Address):
    """A 41-bit guest physical address translated by an Sv39x4 table.

    ``new`` accepts any 64-bit value; ``new_u64`` enforces the 41-bit limit.
    """

    _NUMBER_END = 41

    @classmethod
    def new_u64(cls, addr: int) -> GPAddrSv39X4:
        _require_width(addr, 64, "u64")
        if _bits(addr, 41, 64):
            raise ValueError("Sv39x4 does not allow pa 41..64!=0")
        return cls(addr)

    def p3_index(self) -> int:
        return _bits(self.value, 30, 41)

    def p2_index(self) -> int:
        return _bits(self.value, 21, 30)

    def p1_index(self) -> int:
        return _bits(self.value, 12, 21)

    @classmethod
    def from_page_table_indices(
        cls, p3_index: int, p2_index: int, p1_index: int, offset: int
    ) -> GPAddrSv39X4:
        _check_index(p3_index, 11, "p3_index")
        _check_index(p2_index, 9, "p2_index")
        _check_index(p1_index, 9, "p1_index")
        _check_index(offset, 12, "offset")
        return cls.new_u64((p3_index << 30) | (p2_index << 21) | (p1_index << 12) | offset)


class GPAddrSv48X4(Address):
    """A 50-bit guest physical address translated by an Sv48x4 table.

    ``new`` accepts any 64-bit value; ``new_u64`` enforces the 50-bit limit.
    """

    _NUMBER_END = 50

    @classmethod
    def new_u64(cls, addr: int) -> GPAddrSv48X4:
        _require_width(addr, 64, "u64")
        if _bits(addr, 50, 64):
            raise ValueError("Sv48x4 does not allow pa 50..64!=0")
        return cls(addr)

    def p4_index(self) -> int:
        return _bits(self.value, 39, 50)

    def p3_index(self) -> int:
        return _bits(self.value, 30, 39)

    def p2_index(self) -> int:
        return _bits(self.value, 21, 30)

    def p1_index(self) -> int:
        return _bits(self.value, 12, 21)

    @classmethod
    def from_page_table_indices(
        cls, p4_index: int, p3_index: int, p2_index: int, p1_index: int, offset: int
    ) -> GPAddrSv48X4:
        _check_index(p4_index, 11, "p4_index")
        _check_index(p3_index, 9, "p3_index")
        _check_index(p2_index, 9, "p2_index")
        _check_index(p1_index, 9, "p1_index")
        _check_index(offset, 12, "offset")
        return cls.new_u64(
            (p4_index << 39)
            | (p3_index << 30)
            | (p2_index << 21)
            | (p1_index << 12)
            | offset
        )