"""Configuration data models."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    data_directory: Path  # Holds ip.bin, 1ST_READ.BIN and GDEMU.ini
    log_level: str
    tools_directory: Path | None = None  # Prepended to PATH when looking up tools
    gditools_command: str = "gditools.py"
    cdirip_command: str = "cdirip"
    genisoimage_command: str = "genisoimage"
    cdi4dc_command: str = "cdi4dc"
    menu_volume_id: str = "GDMENU"
