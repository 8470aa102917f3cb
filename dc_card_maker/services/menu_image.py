"""Builds the bootable GDMenu disc and places it in slot 01."""

import tempfile
from pathlib import Path

import structlog

from .errors import MissingDependencyError
from .filesystem import FileSystemService
from .slots import MENU_SLOT, slot_dir_name
from .tools import ImageAuthor, ImageConverter

log = structlog.stdlib.get_logger()

BOOT_SECTOR_FILE = "ip.bin"
MENU_PROGRAM_FILE = "1ST_READ.BIN"
DEVICE_CONFIG_FILE = "GDEMU.ini"
MENU_INI_FILE = "GDMENU.INI"
MENU_IMAGE_FILE = "gdmenu.cdi"

REQUIRED_DATA_FILES: tuple[str, ...] = (BOOT_SECTOR_FILE, MENU_PROGRAM_FILE, DEVICE_CONFIG_FILE)


def check_data_files(data_directory: Path) -> None:
    """Verify the bundled GDMenu files are present.

    Raises:
        MissingDependencyError: Naming every missing file
    """
    missing = [name for name in REQUIRED_DATA_FILES if not (data_directory / name).is_file()]
    if missing:
        log.error("GDMenu data files not found", data_directory=str(data_directory), missing=missing)
        raise MissingDependencyError([str(data_directory / name) for name in missing], kind="data file")


class MenuImageBuilder:
    """Authors the menu disc from the bundled boot files and the generated ini."""

    def __init__(
        self,
        data_directory: Path,
        image_author: ImageAuthor,
        image_converter: ImageConverter,
        filesystem: FileSystemService,
        volume_id: str = "GDMENU",
    ) -> None:
        self._data_directory: Path = data_directory
        self._image_author: ImageAuthor = image_author
        self._image_converter: ImageConverter = image_converter
        self._filesystem: FileSystemService = filesystem
        self._volume_id: str = volume_id

    def build(self, menu_text: str, target_root: Path) -> Path:
        """Create ``01/gdmenu.cdi`` in the target root.

        Args:
            menu_text: Rendered GDMENU ini content
            target_root: Root of the SD card layout

        Returns:
            Path of the placed menu image
        """
        log.info("Building GDMenu disc image")

        with tempfile.TemporaryDirectory(prefix="dc-card-maker-") as temp_dir:
            work = Path(temp_dir)
            ini = work / MENU_INI_FILE
            _ = ini.write_text(menu_text, encoding="iso8859-1", errors="replace")

            iso = self._image_author.author(
                output=work / "gdmenu.iso",
                boot_sector=self._data_directory / BOOT_SECTOR_FILE,
                files=[self._data_directory / MENU_PROGRAM_FILE, ini],
                volume_id=self._volume_id,
            )
            cdi = self._image_converter.convert(iso, work / MENU_IMAGE_FILE)

            menu_dir = target_root / slot_dir_name(MENU_SLOT)
            self._filesystem.ensure_directory(menu_dir)
            destination = menu_dir / MENU_IMAGE_FILE
            self._filesystem.move(cdi, destination)

        log.info("GDMenu disc image placed", path=str(destination))
        return destination

    def install_device_config(self, target_root: Path) -> Path:
        """Copy the default GDEMU.ini into the target root."""
        log.info("Copying GDEMU configuration")
        return self._filesystem.install_file(self._data_directory / DEVICE_CONFIG_FILE, target_root)
