"""Shared fixtures: disc header blobs, game archives and a fake toolchain."""

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from dc_card_maker.services.tools import (
    ArchiveExtractor,
    DiscRipper,
    HeaderDumper,
    ImageAuthor,
    ImageConverter,
    Toolchain,
)


def build_header_blob(
    name: str = "GAME",
    disc: str = "1/1",
    vga: str = "1",
    region: str = "JUE",
    version: str = "V1.000",
    date: str = "19990909",
) -> bytes:
    """Build a 256-byte disc header with the given field values."""
    blob = bytearray(b" " * 0x100)
    blob[0x00:0x10] = b"SEGA SEGAKATANA "
    blob[0x2B:0x2E] = disc.encode("latin-1").ljust(3)[:3]
    blob[0x30:0x38] = region.encode("latin-1").ljust(8)[:8]
    blob[0x3D:0x3E] = vga.encode("latin-1")[:1]
    blob[0x4A:0x50] = version.encode("latin-1").ljust(6)[:6]
    blob[0x50:0x58] = date.encode("latin-1").ljust(8)[:8]
    blob[0x80:0x100] = name.encode("latin-1").ljust(128)[:128]
    return bytes(blob)


class FakeHeaderDumper(HeaderDumper):
    """Writes an ip.bin whose name is the text stored in the fake .gdi file."""

    def __init__(self) -> None:
        super().__init__("fake-gditools")
        self.dumped: list[Path] = []

    def resolve(self) -> str | None:
        return self.command

    def dump(self, image: Path, file_name: str = "ip.bin") -> Path:
        self.dumped.append(image)
        output = image.parent / file_name
        output.write_bytes(build_header_blob(name=image.read_text().strip(), region="JUE"))
        return output


class FakeRipper(DiscRipper):
    """Writes an audio track and two data tracks; only the last holds the real header."""

    def __init__(self) -> None:
        super().__init__("fake-cdirip")
        self.ripped: list[Path] = []

    def resolve(self) -> str | None:
        return self.command

    def rip(self, image: Path, destination: Path) -> list[Path]:
        self.ripped.append(image)
        (destination / "taudio01.wav").write_bytes(b"\x00" * 16)
        (destination / "tdata02.iso").write_bytes(build_header_blob(name="SESSION ONE"))
        (destination / "tdata03.iso").write_bytes(
            build_header_blob(name=image.read_text().strip(), region="E", vga="0")
        )
        return sorted(destination.iterdir())


class FakeImageAuthor(ImageAuthor):
    """Records the menu ini it was given and writes a stand-in ISO."""

    def __init__(self) -> None:
        super().__init__("fake-genisoimage")
        self.menu_texts: list[str] = []
        self.calls: list[dict[str, object]] = []

    def resolve(self) -> str | None:
        return self.command

    def author(self, output: Path, boot_sector: Path, files: list[Path], volume_id: str = "GDMENU") -> Path:
        self.calls.append({"output": output, "boot_sector": boot_sector, "files": files, "volume_id": volume_id})
        self.menu_texts.append(files[-1].read_text(encoding="iso8859-1"))
        output.write_bytes(b"ISO")
        return output


class FakeImageConverter(ImageConverter):
    def __init__(self) -> None:
        super().__init__("fake-cdi4dc")

    def resolve(self) -> str | None:
        return self.command

    def convert(self, iso: Path, output: Path) -> Path:
        output.write_bytes(b"CDI" + iso.read_bytes())
        return output


@pytest.fixture
def header_blob() -> Callable[..., bytes]:
    """Factory for 256-byte disc headers."""
    return build_header_blob


@pytest.fixture
def make_archive() -> Callable[[Path, str, dict[str, str | bytes]], Path]:
    """Factory writing a ZIP archive with the given members."""

    def _make(source_dir: Path, identity: str, members: dict[str, str | bytes]) -> Path:
        archive = source_dir / identity
        with zipfile.ZipFile(archive, "w") as zf:
            for name, content in members.items():
                zf.writestr(name, content)
        return archive

    return _make


@pytest.fixture
def fake_toolchain() -> Toolchain:
    """Real archive extraction with fake external disc tools."""
    return Toolchain(
        extractor=ArchiveExtractor(),
        header_dumper=FakeHeaderDumper(),
        ripper=FakeRipper(),
        image_author=FakeImageAuthor(),
        image_converter=FakeImageConverter(),
    )


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Directory with stand-ins for the bundled GDMenu files."""
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "ip.bin").write_bytes(build_header_blob(name="GDMenu"))
    (directory / "1ST_READ.BIN").write_bytes(b"\x00" * 64)
    (directory / "GDEMU.ini").write_text("open_time = 150\n")
    return directory


@pytest.fixture
def card_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """Empty source and target directories."""
    source = tmp_path / "source"
    target = tmp_path / "target"
    source.mkdir()
    target.mkdir()
    return source, target
