[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rvpaging"
version = "0.6.0"
description = "RISC-V Sv32/Sv39/Sv48 addresses, page tables and multi-level mappers, plus a CSR accessor generator"
requires-python = ">=3.10"
dependencies = []
keywords = ["riscv", "paging", "page-table", "mmu", "sv39", "sv48", "hypervisor", "csr"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System Kernels",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[project.scripts]
rvpaging-csrgen = "rvpaging.csrgen:main"

[tool.hatch.build.targets.wheel]
packages = ["rvpaging"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
