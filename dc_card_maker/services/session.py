"""Guards the target directory against clashes with a previous run.

A run renames every existing slot directory aside (``07`` -> ``07_``)
before numbering games again. Marked directories that are still present
when a run starts mean the previous run was interrupted, and the run must
not touch anything. Marked directories left over when a run ends belong to
games that are no longer on the list.
"""

from pathlib import Path

import structlog

from .errors import LeftoverSessionError
from .filesystem import FileSystemService
from .slots import MENU_SLOT, is_marked_slot_dir_name, is_slot_dir_name, mark, slot_dir_name

log = structlog.stdlib.get_logger()

OLD_MENU_DIR = "gdmenu_old"


class SessionGuard:
    """Pre- and post-flight checks over the slot directories of a target root."""

    def __init__(self, target_root: Path, filesystem: FileSystemService) -> None:
        self._target_root: Path = target_root
        self._filesystem: FileSystemService = filesystem

    def leftover_directories(self) -> list[Path]:
        """Marked slot directories currently in the target root."""
        return self._filesystem.list_directories(self._target_root, is_marked_slot_dir_name)

    def check_preflight(self) -> None:
        """Refuse to start when a previous run left marked directories behind.

        Raises:
            LeftoverSessionError: Listing the leftover directories
        """
        leftovers = self.leftover_directories()
        old_menu = self._target_root / OLD_MENU_DIR
        if old_menu.is_dir():
            leftovers.append(old_menu)
        if leftovers:
            raise LeftoverSessionError(leftovers)

    def mark_existing_slots(self) -> list[Path]:
        """Rename slot directories aside so this run can number games afresh.

        The old menu slot is renamed to a name of its own so it is never
        mistaken for a game.

        Returns:
            The marked directories that hold games
        """
        existing = self._filesystem.list_directories(self._target_root, is_slot_dir_name)
        if not existing:
            return []

        log.info("Renaming target directories to avoid name clashes", count=len(existing))
        marked: list[Path] = []
        for directory in existing:
            renamed = directory.with_name(mark(directory.name))
            log.info("Renaming slot directory", source=directory.name, destination=renamed.name)
            self._filesystem.move(directory, renamed)
            marked.append(renamed)

        old_menu = self._target_root / mark(slot_dir_name(MENU_SLOT))
        if old_menu.is_dir():
            self._filesystem.move(old_menu, self._target_root / OLD_MENU_DIR)
            marked.remove(old_menu)

        return marked

    def restore_old_menu(self) -> Path | None:
        """Put the previous menu slot back as a marked directory.

        It then shows up in the post-flight report for the operator to delete.
        """
        old_menu = self._target_root / OLD_MENU_DIR
        if not old_menu.is_dir():
            return None

        restored = self._target_root / mark(slot_dir_name(MENU_SLOT))
        self._filesystem.move(old_menu, restored)
        return restored

    def report_leftovers(self) -> list[Path]:
        """Warn about marked directories that no game of this run claimed."""
        leftovers = self.leftover_directories()
        if leftovers:
            log.warning(
                "Following directories at target directory contain old games, delete or move them to a different location",
                directories=[str(d) for d in leftovers],
            )
        return leftovers
