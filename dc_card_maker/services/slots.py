"""Slot numbering and restoration of games placed by a previous run.

The device boots whatever it finds in directories named ``01``, ``02``, ...
Slot 01 always holds the menu disc; games take the following slots in game
list order. Before a run, existing slot directories are renamed with a
trailing marker (``07`` becomes ``07_``) so they can be claimed again by
the game whose archive name they record.
"""

from pathlib import Path

import structlog

from ..models import DiscType
from .errors import DiscImageNotFoundError, SlotLimitError
from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()

MENU_SLOT = 1
FIRST_GAME_SLOT = 2
MAX_SLOT = 99

MARKER_SUFFIX = "_"
ARCHIVE_FILE = "archive.txt"

# Track lists win over single-file images when a directory holds both
DISC_TYPE_PRIORITY: tuple[DiscType, ...] = (DiscType.GDI, DiscType.CDI)


def slot_dir_name(slot: int) -> str:
    """Render a slot number as its two-digit directory name."""
    return f"{slot:02d}"


def is_slot_dir_name(name: str) -> bool:
    """True for names made of digits only, e.g. ``07``."""
    return name.isdigit()


def is_marked_slot_dir_name(name: str) -> bool:
    """True for digits followed by the marker, e.g. ``07_``."""
    return name.endswith(MARKER_SUFFIX) and is_slot_dir_name(name[:-len(MARKER_SUFFIX)])


def mark(name: str) -> str:
    return name + MARKER_SUFFIX


def check_slot(slot: int, maximum: int = MAX_SLOT) -> None:
    """Refuse slots past the last one the device shows.

    Raises:
        SlotLimitError: If the slot is out of range
    """
    if slot > maximum:
        raise SlotLimitError(slot, maximum)


def find_disc_image(directory: Path, filesystem: FileSystemService) -> tuple[Path, DiscType] | None:
    """Locate the disc image below a directory.

    Returns:
        The first image found and its type, or None if there is no image
    """
    for disc_type in DISC_TYPE_PRIORITY:
        images = filesystem.find_files(directory, disc_type.suffix)
        if images:
            return images[0], disc_type
    return None


class SlotAllocator:
    """Hands out consecutive slot numbers to games, starting after the menu."""

    def __init__(self, start: int = FIRST_GAME_SLOT, maximum: int = MAX_SLOT) -> None:
        self._next: int = start
        self._maximum: int = maximum

    @property
    def current(self) -> int:
        """The slot the next placed game will occupy, possibly past the last one."""
        return self._next

    @property
    def current_name(self) -> str:
        return slot_dir_name(self.current)

    def advance(self) -> int:
        """Mark the current slot as used and return it.

        Raises:
            SlotLimitError: If every slot is taken
        """
        slot = self._next
        check_slot(slot, self._maximum)
        self._next += 1
        return slot


class SlotDirectoryResolver:
    """Matches marked slot directories against the games of the current list."""

    def __init__(self, target_root: Path, filesystem: FileSystemService) -> None:
        self._target_root: Path = target_root
        self._filesystem: FileSystemService = filesystem

    def marked_directories(self) -> list[Path]:
        """Marked slot directories in the target root, sorted by name."""
        return self._filesystem.list_directories(self._target_root, is_marked_slot_dir_name)

    def recorded_identity(self, directory: Path) -> str | None:
        """The archive name a slot directory was built from, if it records one."""
        marker = directory / ARCHIVE_FILE
        if not marker.is_file():
            return None
        return self._filesystem.read_text(marker)

    def find_restorable(self, identity: str) -> Path | None:
        """Find the first marked directory built from the given archive."""
        for directory in self.marked_directories():
            if self.recorded_identity(directory) == identity:
                return directory
        return None

    def claim(self, directory: Path, slot_name: str) -> Path:
        """Move a previously built game into a slot.

        Once renamed the directory no longer carries the marker, so it cannot
        be matched a second time.

        Args:
            directory: Marked directory returned by ``find_restorable``
            slot_name: Directory name of the slot to fill

        Returns:
            The slot directory

        Raises:
            SlotLimitError: If the slot is past the last one
        """
        check_slot(int(slot_name))
        slot_dir = self._target_root / slot_name
        log.info("Game located in target directory", source=directory.name, slot=slot_name)
        self._filesystem.move(directory, slot_dir)
        return slot_dir

    def restore(self, identity: str, slot_name: str) -> DiscType | None:
        """Claim the directory a previous run built for a game, if any.

        The directory keeps its marker when it holds no disc image, so the
        slot stays free for the next game.

        Returns:
            The disc type of the restored game, or None if the game has to be
            extracted from its archive

        Raises:
            DiscImageNotFoundError: If the matching directory holds no GDI or CDI image
        """
        directory = self.find_restorable(identity)
        if directory is None:
            return None

        found = find_disc_image(directory, self._filesystem)
        if found is None:
            raise DiscImageNotFoundError(identity, directory)

        _ = self.claim(directory, slot_name)
        return found[1]
