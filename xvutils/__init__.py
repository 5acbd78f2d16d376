"""Small Unix-style tools, a tiny shell, and page-table, ELF and virtio layout models."""

__version__ = "0.1.0"