"""Disc header field extraction.

Dreamcast discs carry a 256-byte metadata block (IP.BIN) at the start of
the boot area. The menu entry for a game is made of six fixed-offset,
fixed-width fields of that block. See https://mc.pp.se/dc/ip0000.bin.html
"""

import re
from pathlib import Path

import structlog

from ..models import DiscHeader
from .errors import HeaderError

log = structlog.stdlib.get_logger()

HEADER_SIZE = 0x100

# field name -> (offset, length)
HEADER_FIELDS: dict[str, tuple[int, int]] = {
    "name": (0x80, 128),
    "disc": (0x2B, 3),
    "vga": (0x3D, 1),
    "region": (0x30, 8),
    "version": (0x4A, 6),
    "date": (0x50, 8),
}

# Only spaces and tabs count as blanks; NBSP and other latin-1 spacing is text
BLANKS = " \t"
LINE_BREAK = re.compile(r"[\r\n]")


def read_field(blob: bytes, offset: int, length: int) -> str:
    """Return a byte range as text, one character per byte, NUL bytes dropped."""
    return blob[offset:offset + length].decode("latin-1").replace("\x00", "")


def clean_name(raw: str) -> str:
    """Keep the first line of a name field and trim blanks around it."""
    return LINE_BREAK.split(raw, maxsplit=1)[0].strip(BLANKS)


def compact_region(raw: str) -> str:
    """Drop every blank from a region field, e.g. ``J U E`` becomes ``JUE``."""
    return "".join(c for c in raw if c not in BLANKS)


def parse_header(blob: bytes, source: str = "<bytes>") -> DiscHeader:
    """Extract the menu fields from a disc header blob.

    Args:
        blob: At least 256 bytes starting at the beginning of the header
        source: Description of where the blob came from, for error messages

    Returns:
        The six header fields with the name trimmed and the region compacted

    Raises:
        HeaderError: If the blob is shorter than a full header
    """
    if len(blob) < HEADER_SIZE:
        raise HeaderError(source, len(blob))

    fields = {
        field: read_field(blob, offset, length)
        for field, (offset, length) in HEADER_FIELDS.items()
    }

    return DiscHeader(
        name=clean_name(fields["name"]),
        disc=fields["disc"],
        vga=fields["vga"],
        region=compact_region(fields["region"]),
        version=fields["version"],
        date=fields["date"],
    )


def read_header(path: Path) -> DiscHeader:
    """Read and parse the header at the start of a file.

    Raises:
        HeaderError: If the file holds less than a full header
    """
    with open(path, "rb") as f:
        blob = f.read(HEADER_SIZE)

    header = parse_header(blob, source=str(path))
    log.debug("Disc header parsed", path=str(path), name=header.name, region=header.region)
    return header
