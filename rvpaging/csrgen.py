"""Generate register-access source code from a plain-text CSR description.

A description is a sequence of lines::

    NAME
    <numeric CSR id>
    <field>,<hi>,<lo>,number[,<description>]
    <field>,<hi>,<lo>,<EnumName>,<Variant[=n]>;<Variant[=n]>...[,<description>]
    end
    <free text description of the register>

Bit positions may be given in either order. Enum variants without an
explicit value follow the previous one.
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from typing import Iterator, Sequence

_USIZE_BITS = 64
_USIZE_RE = re.compile(r"\+?[0-9]+")


def _parse_usize(text: str, what: str) -> int:
    """Parse an unsigned machine-word integer, rejecting anything else."""
    if not _USIZE_RE.fullmatch(text):
        raise ValueError(f"invalid {what}: {text!r}")
    value = int(text)
    if value >> _USIZE_BITS:
        raise ValueError(f"{what} {text!r} does not fit in {_USIZE_BITS} bits")
    return value


def _take(parts: Iterator[str], what: str) -> str:
    try:
        return next(parts)
    except StopIteration:
        raise ValueError(f"missing {what}") from None


def _bit(position: int) -> int:
    if position >= _USIZE_BITS:
        raise OverflowError(f"bit {position} does not fit in {_USIZE_BITS} bits")
    return 1 << position


@dataclass(frozen=True)
class EnumerationDescriptor:
    """The variants of an enumerated field, as ``(name, value)`` pairs."""

    enumerations: tuple[tuple[str, int], ...] = ()

    @classmethod
    def parse(cls, enums: str) -> EnumerationDescriptor:
        """Parse ``A;B=5;C``: unnumbered variants follow the previous value."""
        counter = 0
        variants = []
        for item in enums.split(";"):
            name, *rest = item.split("=")
            if rest:
                counter = _parse_usize(rest[0], "enumeration value")
            variants.append((name, counter))
            counter += 1
        return cls(tuple(variants))

    def generate_enum(self, name: str) -> str:
        """Return the enum declaration and its conversion from an integer."""
        variants = "".join(f"    {n} = {v},\n" for n, v in self.enumerations)
        branches = "".join(f"            {v} => Self::{n},\n" for n, v in self.enumerations)
        return (
            "#[derive(Copy, Clone, Debug)]\n"
            "#[repr(usize)]\n"
            f"pub enum {name}{{\n"
            f"{variants}"
            "}\n"
            f"impl {name}{{\n"
            "    fn from(x: usize)->Self{\n"
            "        match x{\n"
            f"{branches}"
            "            _ => unreachable!()\n"
            "        }\n"
            "    }\n"
            "}\n"
        )


@dataclass(frozen=True)
class BitFieldDescriptor:
    """One field of a register, occupying bits ``lo..=hi``."""

    name: str
    description: str
    lo: int
    hi: int
    ed: tuple[str, EnumerationDescriptor] | None = None

    @classmethod
    def parse(cls, desc: str) -> BitFieldDescriptor:
        """Parse one ``name,hi,lo,kind[,variants][,description]`` line."""
        pieces = desc.split(",")
        parts = iter(pieces)
        name = _take(parts, "field name")
        hi = _parse_usize(_take(parts, "high bit"), "high bit")
        lo = _parse_usize(_take(parts, "low bit"), "low bit")
        lo, hi = (lo, hi) if lo < hi else (hi, lo)
        kind = _take(parts, "field kind")
        consumed = 4
        ed = None
        if kind != "number":
            ed = (kind, EnumerationDescriptor.parse(_take(parts, "enumeration")))
            consumed = 5
        description = ",".join(pieces[consumed:])
        return cls(name=name, description=description, lo=lo, hi=hi, ed=ed)

    def generate_enum(self) -> str | None:
        """Return the field's enum declaration, or ``None`` for plain fields."""
        if self.ed is None:
            return None
        enum_name, enumeration = self.ed
        return enumeration.generate_enum(enum_name)

    def flag_type(self) -> str:
        if self.ed is not None:
            return self.ed[0]
        return "bool" if self.lo == self.hi else "usize"

    def mask(self) -> str:
        """Return the field mask, right-aligned, in decimal."""
        return str(_bit(self.hi - self.lo + 1) - 1)

    def getter(self) -> str:
        if self.lo == self.hi:
            return f"self.bits.get_bit({self.lo})"
        if self.flag_type() != "usize":
            return f"{self.flag_type()}::from(self.bits.get_bits({self.lo}..{self.hi + 1}))"
        return f"self.bits.get_bits({self.lo}..{self.hi + 1})"

    def setter(self) -> str:
        if self.lo == self.hi:
            return f"self.bits.set_bit({self.lo}, val);"
        if self.flag_type() != "usize":
            return f"self.bits.set_bits({self.lo}..{self.hi + 1}, val as usize);"
        return f"self.bits.set_bits({self.lo}..{self.hi + 1}, val);"

    def generate_read_write(self) -> str:
        """Return the field's accessor and mutator methods."""
        flag_type = self.flag_type()
        return (
            f"    /// {self.description}\n"
            "    #[inline] \n"
            f"    pub fn {self.name}(&self)->{flag_type}{{\n"
            f"        {self.getter()}\n"
            "    }\n"
            "    #[inline]\n"
            f"    pub fn set_{self.name}(&mut self, val: {flag_type}){{\n"
            f"        {self.setter()}\n"
            "    }\n"
        )

    def generate_bit_set(self) -> str:
        """Return direct set and clear functions for a single-bit field."""
        bit = _bit(self.lo)
        return (
            f"    pub fn set_{self.name}()->bool{{\n"
            f"        unsafe {{csr::csrrc({bit}) & {bit} !=0}}\n"
            "    }\n"
            f"    pub fn clear_{self.name}()->bool{{\n"
            f"        unsafe {{csr::csrrs({bit}) & {bit} !=0 }}\n"
            "    }\n"
        )

    def generate_bitops(self) -> str:
        """Return the set/clear macro invocation for a single-bit field."""
        return (
            "    set_clear_csr!(\n"
            f"    ///{self.description}\n"
            f"    , set_{self.name}, clear_{self.name}, 1 << {self.lo});\n"
        )


@dataclass(frozen=True)
class CSRDescriptor:
    """A control and status register with its fields."""

    name: str
    id: int
    description: str
    bfs: tuple[BitFieldDescriptor, ...] = field(default=())

    def canonical_name(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, d: str) -> CSRDescriptor:
        """Parse a whole register description."""
        lines = d.split("\n")
        parts = iter(lines)
        name = _take(parts, "register name")
        csr_id = _parse_usize(_take(parts, "register id"), "register id")
        bfs = []
        consumed = 2
        for line in parts:
            consumed += 1
            if line == "end":
                break
            bfs.append(BitFieldDescriptor.parse(line))
        description = "\n".join(lines[consumed:])
        return cls(name=name, id=csr_id, description=description, bfs=tuple(bfs))

    def generate(self) -> str:
        """Return the source code of the register module."""
        cn = self.canonical_name()
        trait_impls = "".join(bf.generate_read_write() for bf in self.bfs)
        bit_sets = "".join(bf.generate_bitops() for bf in self.bfs if bf.lo == bf.hi)
        enums = "".join(e for e in (bf.generate_enum() for bf in self.bfs) if e is not None)
        if not trait_impls and not bit_sets:
            return (
                "\n"
                f"//! {self.description}\n"
                f"read_csr_as_usize!({self.id}, __read_{cn});\n"
                f"write_csr_as_usize!({self.id}, __write_{cn});\n"
            )
        return (
            "\n"
            f"//! {self.description}\n"
            "\n"
            "use bit_field::BitField;\n"
            "\n"
            "#[derive(Copy, Clone, Debug)]\n"
            f"pub struct {self.name}{{\n"
            "    bits: usize,\n"
            "}\n"
            f"impl {self.name}{{\n"
            "    #[inline]\n"
            "    pub fn bits(&self) -> usize{\n"
            "        return self.bits;\n"
            "    }\n"
            "    #[inline]\n"
            "    pub fn from_bits(x: usize) -> Self{\n"
            f"        return {self.name}{{bits: x}};\n"
            "    }\n"
            "    #[inline]\n"
            "    pub unsafe fn write(&self){\n"
            "        _write(self.bits);\n"
            "    }\n"
            f"{trait_impls}\n"
            "}\n"
            f"read_csr_as!({self.name}, {self.id}, __read_{cn});\n"
            f"write_csr!({self.id}, __write_{cn});\n"
            f"set!({self.id}, __set_{cn});\n"
            f"clear!({self.id}, __clear_{cn});\n"
            "// bit ops\n"
            f"{bit_sets}\n"
            "// enums\n"
            f"{enums}\n"
            "\n"
        )


def main(argv: Sequence[str] | None = None) -> int:
    """Read a register description from standard input and print its code."""
    del argv
    csr = CSRDescriptor.parse(sys.stdin.read())
    print(csr.generate())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())