"""Pages and frames: 4 KiB aligned blocks named by their start address."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .address import Address

_USIZE_BITS = 64
_PAGE_SHIFT = 12


def _address_from_indices(address_type: type[Address], indices: Sequence[int]) -> Address:
    builder = getattr(address_type, "from_page_table_indices", None)
    if builder is None:
        raise TypeError(f"{address_type.__name__} has no page-table indices")
    return builder(*indices, 0)


def _level_index(address: Address, name: str) -> int:
    method = getattr(address, name, None)
    if method is None:
        raise TypeError(f"{type(address).__name__} has no {name}")
    return method()


@dataclass(frozen=True, order=True)
class _Block:
    """A 4 KiB block whose start address is held in ``address``."""

    address: Address

    def __post_init__(self) -> None:
        if not isinstance(self.address, Address):
            raise TypeError(
                f"{type(self).__name__} needs an address, not {type(self.address).__name__}"
            )


class Page(_Block):
    """A virtual page."""

    @classmethod
    def of_addr(cls, addr: Address) -> Page:
        """Return the page containing ``addr``."""
        return cls(addr.to_4k_aligned())

    @classmethod
    def of_vpn(cls, address_type: type[Address], vpn: int) -> Page:
        """Return the page with virtual page number ``vpn``."""
        return cls(address_type.new(vpn << _PAGE_SHIFT))

    @classmethod
    def from_page_table_indices(cls, address_type: type[Address], *args: int) -> Page:
        """Build the page from its page-table indices, highest level first."""
        return cls.of_addr(_address_from_indices(address_type, args))

    def start_address(self) -> Address:
        return self.address

    def number(self) -> int:
        return self.address.page_number()

    def p4_index(self) -> int:
        return _level_index(self.address, "p4_index")

    def p3_index(self) -> int:
        return _level_index(self.address, "p3_index")

    def p2_index(self) -> int:
        return _level_index(self.address, "p2_index")

    def p1_index(self) -> int:
        return _level_index(self.address, "p1_index")


class Frame(_Block):
    """A physical frame."""

    @classmethod
    def of_addr(cls, addr: Address) -> Frame:
        """Return the frame containing ``addr``."""
        return cls(addr.to_4k_aligned())

    @classmethod
    def of_ppn(cls, address_type: type[Address], ppn: int) -> Frame:
        """Return the frame with physical page number ``ppn``."""
        return cls(address_type.new_u64(ppn << _PAGE_SHIFT))

    @classmethod
    def from_page_table_indices(cls, address_type: type[Address], *args: int) -> Frame:
        """Build the frame from its page-table indices, highest level first."""
        return cls.of_addr(_address_from_indices(address_type, args))

    def start_address(self) -> Address:
        return self.address

    def number(self) -> int:
        return self.address.page_number()

    def kernel_address(self, linear_offset: int) -> int:
        """Return where this frame is seen through a linear mapping at ``linear_offset``."""
        total = self.address.as_u64() + linear_offset
        if total < 0 or total >> _USIZE_BITS:
            raise OverflowError(f"kernel address {total:#x} does not fit in 64 bits")
        return total

    def p4_index(self) -> int:
        return _level_index(self.address, "p4_index")

    def p3_index(self) -> int:
        return _level_index(self.address, "p3_index")

    def p2_index(self) -> int:
        return _level_index(self.address, "p2_index")

    def p1_index(self) -> int:
        return _level_index(self.address, "p1_index")