"""Symbol tables, syntax trees, three-address IR, optimizations and MIPS output for a small C-like language."""

__version__ = "0.1.0"