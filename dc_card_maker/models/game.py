"""Game and disc related data models."""

from dataclasses import dataclass
from enum import Enum


class DiscType(Enum):
    """Kind of disc image stored in a slot directory."""
    GDI = "gdi"  # Track list referencing per-track files
    CDI = "cdi"  # Single-file DiscJuggler image

    @property
    def canonical_name(self) -> str:
        """File name the image gets inside its slot directory."""
        return f"disc.{self.value}"

    @property
    def suffix(self) -> str:
        return f".{self.value}"


@dataclass(frozen=True)
class DiscHeader:
    """The six menu fields read out of a 256-byte disc header."""
    name: str
    disc: str
    vga: str
    region: str
    version: str
    date: str


@dataclass(frozen=True)
class SlotEntry:
    """A game placed in a numbered slot during a run."""
    slot_name: str
    identity: str
    disc_type: DiscType
    restored: bool  # True if reused from a previous run without extraction
