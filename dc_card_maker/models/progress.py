"""Progress and result data models for card building runs."""

from dataclasses import dataclass, field
from pathlib import Path

from .game import SlotEntry


@dataclass(frozen=True)
class SkippedGame:
    """A game from the list that could not be placed in a slot."""
    identity: str
    reason: str


@dataclass
class RunReport:
    """Outcome of a single card building run."""
    placed: list[SlotEntry] = field(default_factory=list)
    skipped: list[SkippedGame] = field(default_factory=list)
    leftovers: list[Path] = field(default_factory=list)  # Unclaimed marker directories
    menu_image: Path | None = None

    @property
    def restored_count(self) -> int:
        return sum(1 for entry in self.placed if entry.restored)

    @property
    def extracted_count(self) -> int:
        return sum(1 for entry in self.placed if not entry.restored)
