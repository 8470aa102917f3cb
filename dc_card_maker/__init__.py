"""Dreamcast SD card maker: builds a GDEMU SD card layout with a GDMenu disc."""

__version__ = "0.1.0"
