"""Turns a game archive into a ready-to-boot slot directory."""

from pathlib import Path

import structlog

from ..models import DiscType
from .errors import ArchiveNotFoundError, DiscImageNotFoundError, RelocationError
from .filesystem import FileSystemService
from .slots import ARCHIVE_FILE, check_slot, find_disc_image
from .tools import ArchiveExtractor

log = structlog.stdlib.get_logger()


class GameMaterializer:
    """Extracts a game archive and moves the result into a slot directory."""

    def __init__(
        self,
        source_dir: Path,
        target_root: Path,
        scratch_dir: Path,
        extractor: ArchiveExtractor,
        filesystem: FileSystemService,
    ) -> None:
        """Initialize the materializer.

        Args:
            source_dir: Directory holding the game archives
            target_root: Root of the SD card layout
            scratch_dir: Temporary directory for extraction
            extractor: Archive extractor collaborator
            filesystem: File system service
        """
        self._source_dir: Path = source_dir
        self._target_root: Path = target_root
        self._scratch_dir: Path = scratch_dir
        self._extractor: ArchiveExtractor = extractor
        self._filesystem: FileSystemService = filesystem

    def materialize(self, identity: str, slot_name: str) -> DiscType:
        """Build the slot directory for a game from its archive.

        Args:
            identity: Archive file name from the game list
            slot_name: Directory name of the reserved slot

        Returns:
            The type of the disc image placed in the slot

        Raises:
            ArchiveNotFoundError: If the archive is not in the source directory
            DiscImageNotFoundError: If the archive holds no GDI or CDI image
            ExtractionError: If the archive cannot be extracted
            RelocationError: If the prepared game cannot be moved into place
            SlotLimitError: If the slot is past the last one
        """
        archive = self._source_dir / identity
        if not archive.is_file():
            raise ArchiveNotFoundError(identity, archive)

        work_dir = self._scratch_dir / slot_name
        _ = self._extractor.extract(archive, work_dir)

        found = find_disc_image(work_dir, self._filesystem)
        if found is None:
            self._filesystem.remove_tree(work_dir)
            raise DiscImageNotFoundError(identity, archive)

        image, disc_type = found
        # Track files sit next to the .gdi, so the image's own directory is the game
        content_dir = image.parent

        log.debug("Writing archive marker", file=ARCHIVE_FILE, game=identity)
        self._filesystem.write_text(content_dir / ARCHIVE_FILE, identity)

        canonical = content_dir / disc_type.canonical_name
        if not canonical.exists():
            log.info("Renaming disc file", original=image.name, canonical=canonical.name)
            image.rename(canonical)

        check_slot(int(slot_name))
        destination = self._target_root / slot_name
        log.info("Moving game from temporary directory to target directory", slot=slot_name)
        try:
            self._filesystem.move(content_dir, destination)
        except OSError as e:
            raise RelocationError(content_dir, destination, e) from e

        if work_dir.exists():
            self._filesystem.remove_tree(work_dir)

        log.info("Game placed in slot", game=identity, slot=slot_name, disc_type=disc_type.value)
        return disc_type
