"""GDMenu configuration text."""

import structlog

from ..models import DiscHeader
from .slots import MENU_SLOT, slot_dir_name

log = structlog.stdlib.get_logger()

SECTION_HEADER = "[GDMENU]"

# Matches the ip.bin of the bundled GDMenu build; update together with data/ip.bin
MENU_PROGRAM_HEADER = DiscHeader(
    name="GDMenu",
    disc="1/1",
    vga="1",
    region="JUE",
    version="V0.6.0",
    date="20160812",
)


def format_entry(slot_name: str, header: DiscHeader) -> list[str]:
    """Render the key lines of one menu entry."""
    return [
        f"{slot_name}.name={header.name}",
        f"{slot_name}.disc={header.disc}",
        f"{slot_name}.vga={header.vga}",
        f"{slot_name}.region={header.region}",
        f"{slot_name}.version={header.version}",
        f"{slot_name}.date={header.date}",
    ]


class MenuBuilder:
    """Accumulates menu entries in slot order."""

    def __init__(self) -> None:
        self._entries: list[tuple[str, DiscHeader]] = [
            (slot_dir_name(MENU_SLOT), MENU_PROGRAM_HEADER),
        ]

    def add_entry(self, slot_name: str, header: DiscHeader) -> None:
        log.debug("Adding menu entry", slot=slot_name, name=header.name)
        self._entries.append((slot_name, header))

    def render(self) -> str:
        """The complete ini text, one blank line after every entry."""
        lines = [SECTION_HEADER]
        for slot_name, header in self._entries:
            lines.extend(format_entry(slot_name, header))
            lines.append("")
        return "\n".join(lines) + "\n"
