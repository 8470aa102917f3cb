"""Collaborators that wrap archive extraction and the external disc tools.

Every collaborator either returns normally or raises a typed error
(``ExtractionError`` for archives, ``ToolError`` for external commands),
so the card maker can be driven by fakes in tests.
"""

import os
import shutil
import subprocess
import zipfile
from dataclasses import dataclass
from pathlib import Path

import py7zr
import structlog

from ..models import AppConfig
from .errors import ExtractionError, MissingDependencyError, ToolError

log = structlog.stdlib.get_logger()


class ArchiveExtractor:
    """Extracts ZIP and 7z game archives into a directory."""

    def detect_archive_type(self, path: Path) -> str | None:
        """Detect the archive type by reading file magic bytes.

        Args:
            path: Path to the file to check

        Returns:
            Archive type string ('zip', '7z') or None if not an archive
        """
        with open(path, "rb") as f:
            magic_bytes = f.read(8)

        # ZIP magic: PK (0x50 0x4B)
        if magic_bytes[:2] == b'PK':
            return "zip"

        # 7z magic: 7z¼¯' (0x37 0x7A 0xBC 0xAF 0x27 0x1C)
        if magic_bytes[:6] == b'7z\xbc\xaf\x27\x1c':
            return "7z"

        # Check file extension as fallback
        suffix = path.suffix.lower()
        if suffix == '.zip':
            return "zip"
        elif suffix == '.7z':
            return "7z"

        return None

    def extract(self, archive: Path, destination: Path) -> list[str]:
        """Extract an archive into a destination directory.

        Args:
            archive: ZIP or 7z archive
            destination: Directory to extract into (created if missing)

        Returns:
            Names of the archive members

        Raises:
            ExtractionError: If the archive is unreadable or extraction fails
        """
        log.info("Extracting archive", archive=str(archive), destination=str(destination))

        try:
            archive_type = self.detect_archive_type(archive)
            destination.mkdir(parents=True, exist_ok=True)

            if archive_type == "zip":
                with zipfile.ZipFile(archive, 'r') as zf:
                    names = zf.namelist()
                    zf.extractall(destination)
            elif archive_type == "7z":
                with py7zr.SevenZipFile(archive, mode='r') as sz:
                    names = sz.getnames()
                    sz.extractall(path=destination)
            else:
                raise ExtractionError(archive)

        except (zipfile.BadZipFile, py7zr.Bad7zFile, OSError) as e:
            log.error("Failed to extract archive", archive=str(archive), error=str(e))
            raise ExtractionError(archive, e) from e

        log.info("Archive extracted", archive=str(archive), files_extracted=len(names))
        return names


class ExternalTool:
    """A command line program looked up on the search path."""

    def __init__(self, command: str, search_path: str | None = None) -> None:
        """Initialize the tool wrapper.

        Args:
            command: Program name or path
            search_path: PATH-style lookup list (defaults to the process PATH)
        """
        self.command: str = command
        self._search_path: str | None = search_path

    def resolve(self) -> str | None:
        """Full path of the program, or None if it is not installed."""
        return shutil.which(self.command, path=self._search_path)

    def run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Run the program and wait for it to finish.

        Raises:
            ToolError: If the program cannot be started or exits non-zero
        """
        cmd = [self.resolve() or self.command, *args]
        log.debug("Running external command", command=" ".join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            log.error("Failed to start external command", command=cmd[0], error=str(e))
            raise ToolError(cmd, original_error=e) from e

        if result.returncode != 0:
            log.error(
                "External command failed",
                command=" ".join(cmd),
                returncode=result.returncode,
                stderr=result.stderr.strip()[:500],
            )
            raise ToolError(cmd, result.returncode, result.stderr)

        return result


class HeaderDumper(ExternalTool):
    """gditools.py: dumps the IP.BIN of a GDI image next to the image."""

    def dump(self, image: Path, file_name: str = "ip.bin") -> Path:
        """Write the boot header of a GDI image into the image's directory.

        Returns:
            Path of the dumped header file
        """
        _ = self.run(["-i", str(image), "-b", file_name])
        dumped = image.parent / file_name
        if not dumped.is_file():
            raise ToolError([self.command, "-i", str(image), "-b", file_name], stderr=f"{dumped} was not written")
        return dumped


class DiscRipper(ExternalTool):
    """cdirip: splits a CDI image into per-track files."""

    def rip(self, image: Path, destination: Path) -> list[Path]:
        """Extract the tracks of a CDI image into a directory.

        Returns:
            The files written to the destination, sorted by name
        """
        _ = self.run([str(image), str(destination)])
        return sorted(p for p in destination.iterdir() if p.is_file())


class ImageAuthor(ExternalTool):
    """genisoimage: authors the bootable menu ISO."""

    def author(
        self,
        output: Path,
        boot_sector: Path,
        files: list[Path],
        volume_id: str = "GDMENU",
    ) -> Path:
        """Build an ISO holding the given files, booting from the given sector blob."""
        _ = self.run([
            "-C", "0,11702",
            "-V", volume_id,
            "-G", str(boot_sector),
            "-r", "-J", "-l",
            "-input-charset", "iso8859-1",
            "-o", str(output),
            *[str(f) for f in files],
        ])
        return output


class ImageConverter(ExternalTool):
    """cdi4dc: converts a raw ISO into a self-booting CDI image."""

    def convert(self, iso: Path, output: Path) -> Path:
        _ = self.run([str(iso), str(output)])
        return output


def build_search_path(tools_directory: Path | None) -> str:
    """PATH with the configured tools directory, if any, searched first."""
    path = os.environ.get("PATH", os.defpath)
    if tools_directory is None:
        return path
    return os.pathsep.join([str(tools_directory), path])


@dataclass
class Toolchain:
    """All collaborators a card building run needs."""
    extractor: ArchiveExtractor
    header_dumper: HeaderDumper
    ripper: DiscRipper
    image_author: ImageAuthor
    image_converter: ImageConverter

    @classmethod
    def from_config(cls, config: AppConfig) -> "Toolchain":
        """Create the real toolchain from the configured command names."""
        search_path = build_search_path(config.tools_directory)
        return cls(
            extractor=ArchiveExtractor(),
            header_dumper=HeaderDumper(config.gditools_command, search_path),
            ripper=DiscRipper(config.cdirip_command, search_path),
            image_author=ImageAuthor(config.genisoimage_command, search_path),
            image_converter=ImageConverter(config.cdi4dc_command, search_path),
        )

    def external_tools(self) -> list[ExternalTool]:
        return [self.image_author, self.image_converter, self.ripper, self.header_dumper]

    def check_available(self) -> None:
        """Verify every external program can be found.

        Raises:
            MissingDependencyError: Naming every program that is missing
        """
        missing = [tool.command for tool in self.external_tools() if tool.resolve() is None]
        if missing:
            log.error("Required external tools not found", missing=missing)
            raise MissingDependencyError(missing, kind="tool")
        log.debug("All external tools found")
