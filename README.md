# rvpaging

Model RISC-V virtual memory in plain Python. The package covers Sv32, Sv39 and
Sv48 addresses, the hypervisor's x4 guest-physical addresses, page table
entries and page tables, and two-, three- and four-level mappers. It also
includes a small generator for control-and-status-register accessor source.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Addresses (`rvpaging.address`, `rvpaging.gpax4`)

Every address type checks the value it is given and raises `ValueError` or
`TypeError` when the value breaks the scheme's rules:

- `VirtAddrSv39` and `VirtAddrSv48` must be sign-extended.
- `PhysAddrSv32`, `PhysAddrSv39` and `PhysAddrSv48` must not set bits above
  bit 34 or bit 56.
- The index arguments of `from_page_table_indices` must fit their level.

```python
from rvpaging.address import VirtAddrSv39, PhysAddrSv39

va = VirtAddrSv39.from_page_table_indices(1, 2, 3, 0x45)
va.p3_index(), va.p2_index(), va.p1_index(), va.page_offset()   # (1, 2, 3, 0x45)
va.to_4k_aligned().page_offset()                                 # 0

pa = PhysAddrSv39.new_u64(0x8020_0000)
pa.page_number()                                                 # 0x80200
```

All address types are frozen, ordered dataclasses with a `value` field. They
share `new`, `page_number`, `page_offset`, `to_4k_aligned`, `as_usize` and
`as_u64`. `VirtAddrSv32` also has `new_u32` and `as_u32`.
`PhysAddrSv32.as_usize` refuses addresses above 4 GiB.

The guest-physical types `GPAddrSv32X4`, `GPAddrSv39X4` and `GPAddrSv48X4`
live in `rvpaging.gpax4`. Their root index has two more bits than the plain
scheme's. `new_u64` enforces the 34-, 41- and 50-bit limits. For
`GPAddrSv39X4` and `GPAddrSv48X4`, `new` accepts any 64-bit value.

## Pages and frames (`rvpaging.page`)

`Page` and `Frame` wrap a 4 KiB aligned start address.

```python
from rvpaging.address import VirtAddrSv39, PhysAddrSv39
from rvpaging.page import Page, Frame

page = Page.of_addr(VirtAddrSv39.new(0x1234_5678))
page.start_address().as_u64()                                    # 0x12345000
frame = Frame.of_ppn(PhysAddrSv39, 0x80200)
frame.start_address().as_u64()                                   # 0x80200000
frame.kernel_address(0xFFFF_FFC0_0000_0000)                      # frame address + offset
```

Both also offer `of_addr`, `from_page_table_indices(address_type, *indices)`,
`number` and the `p4_index` … `p1_index` methods that their address type
supports.

## Page tables and entries (`rvpaging.page_table`)

The following functions create zeroed tables:

| Function | Entries |
|---|---|
| `page_table_x32()` | 1024 |
| `page_table_x64()` | 512 |
| `page_table_32x4()` | 4096 |
| `page_table_64x4()` | 2048 |

A `PageTable` supports indexing, `len`, iteration, `zero()` and
`used_entries()`.

The entries are `PageTableEntryX32` and `PageTableEntryX64`. They have the
following methods:

- `is_unused`
- `set_unused`
- `flags`
- `set_flags`
- `ppn`
- `addr`
- `frame`
- `set`
- `describe`

`set` always adds `ACCESSED` and `DIRTY` to the flags.

```python
from rvpaging.page_table import page_table_x64, PageTableFlags

table = page_table_x64()
table[3].set(frame, PageTableFlags.VALID | PageTableFlags.READABLE)
[i for i, _ in table.used_entries()]                             # [3]
table[3].debug_sv39()                                            # readable summary
table.zero()
```

## Mappers (`rvpaging.multi_level`, `rvpaging.multi_level_x4`)

`rvpaging.multi_level` provides three mappers:

- `Rv32PageTable`
- `Rv39PageTable`
- `Rv48PageTable`

Each takes a root table, an optional `linear_offset` and an optional
`TableMemory`. The `TableMemory` holds the lower-level tables, keyed by the
frame address plus the linear offset. Frames for new intermediate tables come
from a `FrameAllocator`, which you subclass from `rvpaging.mapper`.

```python
from rvpaging.address import VirtAddrSv39, PhysAddrSv39
from rvpaging.mapper import FrameAllocator
from rvpaging.multi_level import Rv39PageTable
from rvpaging.page import Page, Frame
from rvpaging.page_table import page_table_x64, PageTableFlags


class BumpAllocator(FrameAllocator):
    def __init__(self, first_ppn):
        self.next_ppn = first_ppn

    def alloc(self):
        frame = Frame.of_ppn(PhysAddrSv39, self.next_ppn)
        self.next_ppn += 1
        return frame


mapper = Rv39PageTable(page_table_x64())
page = Page.of_addr(VirtAddrSv39.new(0x4000_0000))
target = Frame.of_ppn(PhysAddrSv39, 0x90000)

mapper.map_to(page, target, PageTableFlags.VALID | PageTableFlags.READABLE,
              BumpAllocator(0x80000)).ignore()
mapper.translate_page(page) == target                            # True
frame, flush = mapper.unmap(page)
flush.flush(lambda asid, addr: None)
```

The mapper methods are:

- `map_to`
- `unmap`
- `ref_entry`
- `update_flags`
- `translate_page`
- `identity_map`

Each call that changes a mapping returns a `MapperFlush`. You either call its
`flush(fence)` with a callable that receives two integers, or call `ignore()`.

Failures raise exceptions from `rvpaging.mapper`:

- `FrameAllocationFailed` and `PageAlreadyMapped`, both `MapToError`.
- `PageNotMapped`, which is both an `UnmapError` and a `FlagUpdateError`.

`rvpaging.multi_level_x4` adds two sets of mappers:

- `Rv32PageTableX4`, `Rv39PageTableX4` and `Rv48PageTableX4` map
  guest-physical addresses and flush with `MapperFlushGPA`.
- `Rv32PageTableGuest`, `Rv39PageTableGuest` and `Rv48PageTableGuest` flush
  with `MapperFlushGPT`.

## CSR accessor generator (`rvpaging.csrgen`)

`rvpaging-csrgen` reads a register description on standard input and prints
the generated accessor source. The description is laid out as follows:

1. The register name.
2. Its numeric id.
3. One line per bit field, either `name,hi,lo,number,description` or
   `name,hi,lo,EnumType,A;B;C=5,description`.
4. The word `end`.
5. Free-form description text.

```
rvpaging-csrgen < mstatus.desc
```

The same is available from Python through `CSRDescriptor.parse(text).generate()`.

## What this package does not do

The package only models the data structures. It does not read or write real
registers, enable or disable interrupts, or execute fence instructions:

- A flush calls the fence function you pass in.
- Page tables live in Python objects in a `TableMemory`, not in physical
  memory.