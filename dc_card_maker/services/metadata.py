"""Reads the menu fields for a slot, caching them inside the slot directory.

For GDI images the header is the IP.BIN dumped by gditools. For CDI images
it lives in the first sectors of the last data track, so the image is
ripped into a temporary directory and the highest-sorted ``*.iso`` track
is read.
"""

import dataclasses
import tempfile
from pathlib import Path

import structlog

from ..models import DiscHeader, DiscType
from .errors import ToolError
from .filesystem import FileSystemService
from .header import read_header
from .tools import DiscRipper, HeaderDumper

log = structlog.stdlib.get_logger()

NAME_FILE = "name.txt"
HEADER_CACHE_FILE = "header.json"


class DiscMetadataService:
    """Provides the six header fields of the game in a slot directory."""

    def __init__(
        self,
        header_dumper: HeaderDumper,
        ripper: DiscRipper,
        filesystem: FileSystemService,
    ) -> None:
        self._header_dumper: HeaderDumper = header_dumper
        self._ripper: DiscRipper = ripper
        self._filesystem: FileSystemService = filesystem

    def read_metadata(self, slot_dir: Path, disc_type: DiscType) -> DiscHeader:
        """Return the menu fields for a slot.

        The display name from ``name.txt`` wins over the one in the header so
        hand-edited names survive; both caches are written on first use.
        """
        header = self._load_cached_header(slot_dir)
        if header is None:
            header = self._extract_header(slot_dir, disc_type)
            self._filesystem.save_json(dataclasses.asdict(header), slot_dir / HEADER_CACHE_FILE)

        name_file = slot_dir / NAME_FILE
        if name_file.is_file():
            header = dataclasses.replace(header, name=self._filesystem.read_first_line(name_file))
        else:
            self._filesystem.write_text(name_file, header.name)

        return header

    def _load_cached_header(self, slot_dir: Path) -> DiscHeader | None:
        cache = slot_dir / HEADER_CACHE_FILE
        if not cache.is_file():
            return None

        try:
            data = self._filesystem.load_json(cache)
            return DiscHeader(**{f.name: str(data[f.name]) for f in dataclasses.fields(DiscHeader)})
        except (KeyError, ValueError) as e:
            log.warning("Ignoring unreadable header cache", path=str(cache), error=str(e))
            return None

    def _extract_header(self, slot_dir: Path, disc_type: DiscType) -> DiscHeader:
        image = slot_dir / disc_type.canonical_name
        log.info("Reading disc header", image=str(image))

        if disc_type is DiscType.GDI:
            header_file = self._header_dumper.dump(image)
            try:
                return read_header(header_file)
            finally:
                self._filesystem.delete_file(header_file)

        with tempfile.TemporaryDirectory(prefix="dc-card-maker-") as temp_dir:
            tracks = self._ripper.rip(image, Path(temp_dir))
            data_tracks = sorted(t for t in tracks if t.suffix.lower() == ".iso")
            if not data_tracks:
                raise ToolError([self._ripper.command, str(image), temp_dir], stderr="no data track extracted")
            return read_header(data_tracks[-1])
