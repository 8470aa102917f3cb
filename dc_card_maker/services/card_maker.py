"""Card maker service: builds the SD card layout from a game list.

A run goes through these steps:
- refuse to start if a previous run was interrupted
- rename existing slot directories aside so they can be reclaimed
- place every listed game in the next free slot, either by reclaiming the
  directory a previous run built for it or by extracting its archive
- read each game's disc header into a menu entry
- build the menu disc into slot 01 and report unclaimed directories
"""

import tempfile
from pathlib import Path

import structlog

from ..models import RunReport, SkippedGame, SlotEntry
from .errors import ArchiveNotFoundError, DiscImageNotFoundError, handle_error
from .filesystem import FileSystemService
from .materializer import GameMaterializer
from .menu import MenuBuilder
from .menu_image import MenuImageBuilder
from .metadata import DiscMetadataService
from .session import SessionGuard
from .slots import SlotAllocator, SlotDirectoryResolver
from .tools import Toolchain

log = structlog.stdlib.get_logger()

GAME_LIST_FILE = "game_list.txt"


def read_game_list(path: Path) -> list[str]:
    """Archive names listed in a game list file, one per line.

    Surrounding whitespace is ignored and blank lines are skipped.
    """
    text = path.read_text(encoding="utf-8", errors="surrogateescape")
    return [line.strip() for line in text.splitlines() if line.strip()]


class _RunContext:
    """State threaded through the per-game loop of one run."""

    def __init__(
        self,
        target_root: Path,
        allocator: SlotAllocator,
        menu: MenuBuilder,
        resolver: SlotDirectoryResolver,
        materializer: GameMaterializer,
        report: RunReport,
    ) -> None:
        self.target_root: Path = target_root
        self.allocator: SlotAllocator = allocator
        self.menu: MenuBuilder = menu
        self.resolver: SlotDirectoryResolver = resolver
        self.materializer: GameMaterializer = materializer
        self.report: RunReport = report
        self.game_list: Path = target_root / GAME_LIST_FILE


class CardMakerService:
    """Orchestrates a complete card building run."""

    def __init__(
        self,
        toolchain: Toolchain,
        filesystem: FileSystemService,
        data_directory: Path,
        menu_volume_id: str = "GDMENU",
    ) -> None:
        """Initialize the card maker.

        Args:
            toolchain: Archive extractor and external tool collaborators
            filesystem: File system service
            data_directory: Directory holding the bundled GDMenu files
            menu_volume_id: Volume label of the menu disc
        """
        self._toolchain: Toolchain = toolchain
        self._filesystem: FileSystemService = filesystem
        self._metadata: DiscMetadataService = DiscMetadataService(
            header_dumper=toolchain.header_dumper,
            ripper=toolchain.ripper,
            filesystem=filesystem,
        )
        self._menu_image: MenuImageBuilder = MenuImageBuilder(
            data_directory=data_directory,
            image_author=toolchain.image_author,
            image_converter=toolchain.image_converter,
            filesystem=filesystem,
            volume_id=menu_volume_id,
        )

    def run(self, game_list: Path, source_dir: Path, target_root: Path) -> RunReport:
        """Build the card layout in the target root.

        Args:
            game_list: Text file naming one archive per line
            source_dir: Directory holding the archives
            target_root: Root of the SD card

        Returns:
            What was placed, skipped and left over

        Raises:
            LeftoverSessionError: Before any change, if a previous run was interrupted
            AppError: On any fatal error; partially built state is left in place
        """
        games = read_game_list(game_list)
        log.info("Starting card build", games=len(games), source=str(source_dir), target=str(target_root))

        guard = SessionGuard(target_root, self._filesystem)
        guard.check_preflight()
        _ = guard.mark_existing_slots()

        output_list = target_root / GAME_LIST_FILE
        _ = self._filesystem.backup_file(output_list)

        scratch_dir = Path(tempfile.mkdtemp(prefix="dc-card-maker-"))
        log.info("Created temporary directory for extracting archives", path=str(scratch_dir))

        context = _RunContext(
            target_root=target_root,
            allocator=SlotAllocator(),
            menu=MenuBuilder(),
            resolver=SlotDirectoryResolver(target_root, self._filesystem),
            materializer=GameMaterializer(
                source_dir=source_dir,
                target_root=target_root,
                scratch_dir=scratch_dir,
                extractor=self._toolchain.extractor,
                filesystem=self._filesystem,
            ),
            report=RunReport(),
        )

        for identity in games:
            self._place_game(identity, context)

        report = context.report
        report.menu_image = self._menu_image.build(context.menu.render(), target_root)
        _ = self._menu_image.install_device_config(target_root)

        _ = guard.restore_old_menu()
        self._filesystem.remove_tree(scratch_dir)
        report.leftovers = guard.report_leftovers()

        log.info(
            "Card build finished",
            placed=len(report.placed),
            restored=report.restored_count,
            extracted=report.extracted_count,
            skipped=len(report.skipped),
            leftovers=len(report.leftovers),
        )
        return report

    def _place_game(self, identity: str, context: _RunContext) -> None:
        """Fill the next slot with one game, or record why it was skipped."""
        log.info("Processing game", game=identity)
        slot_name = context.allocator.current_name

        try:
            disc_type = context.resolver.restore(identity, slot_name)
            restored = disc_type is not None
            if disc_type is None:
                disc_type = context.materializer.materialize(identity, slot_name)
        except (ArchiveNotFoundError, DiscImageNotFoundError) as e:
            _ = handle_error(e, operation="place_game", component="card_maker", context={"game": identity})
            context.report.skipped.append(SkippedGame(identity=identity, reason=e.message))
            return

        self._filesystem.append_line(context.game_list, identity)
        log.info("Game has been placed in directory", game=identity, slot=slot_name, restored=restored)

        header = self._metadata.read_metadata(context.target_root / slot_name, disc_type)
        context.menu.add_entry(slot_name, header)
        _ = context.allocator.advance()

        context.report.placed.append(
            SlotEntry(slot_name=slot_name, identity=identity, disc_type=disc_type, restored=restored)
        )
