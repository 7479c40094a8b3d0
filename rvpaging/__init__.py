"""RISC-V paging structures: addresses, page tables, mappers and a CSR accessor generator."""

__version__ = "0.6.0"
__all__ = ["__version__"]