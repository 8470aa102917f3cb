"""Data models for the Dreamcast SD card maker."""

from .config import AppConfig
from .game import DiscHeader, DiscType, SlotEntry
from .progress import RunReport, SkippedGame

__all__ = [
    "AppConfig",
    "DiscHeader",
    "DiscType",
    "RunReport",
    "SkippedGame",
    "SlotEntry",
]
