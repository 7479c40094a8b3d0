"""Virtual and physical addresses for the RISC-V Sv32, Sv39 and Sv48 schemes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, TypeVar

_USIZE_BITS = 64
_PAGE_SHIFT = 12

_A = TypeVar("_A", bound="Address")


def _bits(value: int, lo: int, hi: int) -> int:
    """Return bits ``lo..hi`` (exclusive) of ``value``."""
    return (value >> lo) & ((1 << (hi - lo)) - 1)


def _require_width(value: int, bits: int, what: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{what} must be an integer, not {type(value).__name__}")
    if value < 0 or value >> bits:
        raise ValueError(f"{what} {value:#x} does not fit in {bits} bits")


def _check_index(value: int, bits: int, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an integer, not {type(value).__name__}")
    if value < 0 or value >> bits:
        raise ValueError(f"{name} exceeding {bits} bits")


def _sign_extend(addr: int, sign_bit: int) -> int:
    """Copy bit ``sign_bit`` into every bit above it, up to bit 63."""
    low_mask = (1 << (sign_bit + 1)) - 1
    low = addr & low_mask
    if (addr >> sign_bit) & 1:
        return low | (((1 << _USIZE_BITS) - 1) & ~low_mask)
    return low


def _check_sign_extended(addr: int, sign_bit: int) -> None:
    upper = _bits(addr, sign_bit + 1, _USIZE_BITS)
    expected = (1 << (_USIZE_BITS - sign_bit - 1)) - 1 if (addr >> sign_bit) & 1 else 0
    if upper != expected:
        raise ValueError(f"va {sign_bit + 1}..64 is not sext")


@dataclass(frozen=True, order=True)
class Address:
    """An address held in a fixed-width integer.

    Direct construction only checks that the value fits the storage width;
    ``new`` and the scheme-specific constructors apply the scheme's rules.
    """

    value: int

    _STORAGE_BITS: ClassVar[int] = 64
    _NUMBER_END: ClassVar[int] = 64

    def __post_init__(self) -> None:
        _require_width(self.value, self._STORAGE_BITS, type(self).__name__)

    @classmethod
    def new(cls: type[_A], addr: int) -> _A:
        """Build an address from a machine-word sized integer."""
        _require_width(addr, _USIZE_BITS, "usize")
        return cls(addr)

    def page_number(self) -> int:
        return _bits(self.value, _PAGE_SHIFT, self._NUMBER_END)

    def page_offset(self) -> int:
        return _bits(self.value, 0, _PAGE_SHIFT)

    def to_4k_aligned(self: _A) -> _A:
        return type(self)((self.value >> _PAGE_SHIFT) << _PAGE_SHIFT)

    def as_usize(self) -> int:
        _require_width(self.value, _USIZE_BITS, "usize")
        return self.value

    def as_u64(self) -> int:
        return self.value


class VirtAddrSv32(Address):
    """A 32-bit Sv32 virtual address with two page-table levels."""

    _STORAGE_BITS = 32
    _NUMBER_END = 32

    @classmethod
    def new_u32(cls, addr: int) -> VirtAddrSv32:
        _require_width(addr, 32, "u32")
        return cls(addr)

    def as_u32(self) -> int:
        return self.value

    def p2_index(self) -> int:
        return _bits(self.value, 22, 32)

    def p1_index(self) -> int:
        return _bits(self.value, 12, 22)

    @classmethod
    def from_page_table_indices(cls, p2_index: int, p1_index: int, offset: int) -> VirtAddrSv32:
        _check_index(p2_index, 10, "p2_index")
        _check_index(p1_index, 10, "p1_index")
        _check_index(offset, 12, "offset")
        return cls.new((p2_index << 22) | (p1_index << 12) | offset)


class PhysAddrSv32(Address):
    """A 34-bit Sv32 physical address."""

    _NUMBER_END = 34

    @classmethod
    def new(cls, addr: int) -> PhysAddrSv32:
        _require_width(addr, _USIZE_BITS, "usize")
        return cls.new_u64(addr)

    @classmethod
    def new_u64(cls, addr: int) -> PhysAddrSv32:
        _require_width(addr, 64, "u64")
        if _bits(addr, 34, 64):
            raise ValueError("Sv32 does not allow pa 34..64!=0")
        return cls(addr)

    def as_usize(self) -> int:
        if _bits(self.value, 32, 34):
            raise ValueError(
                "Downcasting an Sv32 pa >4GB (32..34!=0) will cause address loss."
            )
        return self.value


class VirtAddrSv39(Address):
    """A sign-extended Sv39 virtual address with three page-table levels."""

    _NUMBER_END = 39

    @classmethod
    def new(cls, addr: int) -> VirtAddrSv39:
        _require_width(addr, _USIZE_BITS, "usize")
        return cls.new_u64(addr)

    @classmethod
    def new_u64(cls, addr: int) -> VirtAddrSv39:
        _require_width(addr, 64, "u64")
        _check_sign_extended(addr, 38)
        return cls(addr)

    def p3_index(self) -> int:
        return _bits(self.value, 30, 39)

    def p2_index(self) -> int:
        return _bits(self.value, 21, 30)

    def p1_index(self) -> int:
        return _bits(self.value, 12, 21)

    @classmethod
    def from_page_table_indices(
        cls, p3_index: int, p2_index: int, p1_index: int, offset: int
    ) -> VirtAddrSv39:
        _check_index(p3_index, 11, "p3_index")
        _check_index(p2_index, 9, "p2_index")
        _check_index(p1_index, 9, "p1_index")
        _check_index(offset, 12, "offset")
        addr = (p3_index << 30) | (p2_index << 21) | (p1_index << 12) | offset
        return cls.new_u64(_sign_extend(addr, 38))


class PhysAddrSv39(Address):
    """A 56-bit Sv39 physical address."""

    _NUMBER_END = 56

    @classmethod
    def new(cls, addr: int) -> PhysAddrSv39:
        _require_width(addr, _USIZE_BITS, "usize")
        return cls.new_u64(addr)

    @classmethod
    def new_u64(cls, addr: int) -> PhysAddrSv39:
        _require_width(addr, 64, "u64")
        if _bits(addr, 56, 64):
            raise ValueError("Sv39 does not allow pa 56..64!=0")
        return cls(addr)


class VirtAddrSv48(Address):
    """A sign-extended Sv48 virtual address with four page-table levels."""

    _NUMBER_END = 48

    @classmethod
    def new(cls, addr: int) -> VirtAddrSv48:
        _require_width(addr, _USIZE_BITS, "usize")
        return cls.new_u64(addr)

    @classmethod
    def new_u64(cls, addr: int) -> VirtAddrSv48:
        _require_width(addr, 64, "u64")
        _check_sign_extended(addr, 47)
        return cls(addr)

    def p4_index(self) -> int:
        return _bits(self.value, 39, 48)

    def p3_index(self) -> int:
        return _bits(self.value, 30, 39)

    def p2_index(self) -> int:
        return _bits(self.value, 21, 30)

    def p1_index(self) -> int:
        return _bits(self.value, 12, 21)

    @classmethod
    def from_page_table_indices(
        cls, p4_index: int, p3_index: int, p2_index: int, p1_index: int, offset: int
    ) -> VirtAddrSv48:
        _check_index(p4_index, 9, "p4_index")
        _check_index(p3_index, 9, "p3_index")
        _check_index(p2_index, 9, "p2_index")
        _check_index(p1_index, 9, "p1_index")
        _check_index(offset, 12, "offset")
        addr = (
            (p4_index << 39)
            | (p3_index << 30)
            | (p2_index << 21)
            | (p1_index << 12)
            | offset
        )
        return cls.new_u64(_sign_extend(addr, 47))


class PhysAddrSv48(Address):
    """A 56-bit Sv48 physical address."""

    _NUMBER_END = 56

    @classmethod
    def new(cls, addr: int) -> PhysAddrSv48:
        _require_width(addr, _USIZE_BITS, "usize")
        return cls.new_u64(addr)

    @classmethod
    def new_u64(cls, addr: int) -> PhysAddrSv48:
        _require_width(addr, 64, "u64")
        if _bits(addr, 56, 64):
            raise ValueError("Sv48 does not allow pa 56..64!=0")
        return cls(addr)