"""End-to-end tests for card building runs with fake disc tools."""

import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from dc_card_maker.models import DiscType, RunReport, SlotEntry
from dc_card_maker.services.card_maker import GAME_LIST_FILE, CardMakerService, read_game_list
from dc_card_maker.services.errors import ExtractionError, LeftoverSessionError, SlotLimitError
from dc_card_maker.services.filesystem import FileSystemService
from dc_card_maker.services.metadata import HEADER_CACHE_FILE, NAME_FILE
from dc_card_maker.services.slots import ARCHIVE_FILE, MAX_SLOT, SlotAllocator
from dc_card_maker.services.tools import Toolchain

MakeArchive = Callable[[Path, str, dict[str, str | bytes]], Path]

MENU_BLOCK = (
    "01.name=GDMenu\n"
    "01.disc=1/1\n"
    "01.vga=1\n"
    "01.region=JUE\n"
    "01.version=V0.6.0\n"
    "01.date=20160812\n"
)


def names(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir())


def write_list(path: Path, games: list[str]) -> Path:
    path.write_text("".join(game + "\n" for game in games))
    return path


class CardRun:
    """A source directory, a target card and a service wired with fakes."""

    def __init__(self, root: Path, toolchain: Toolchain, data_dir: Path, make_archive: MakeArchive) -> None:
        self.source = root / "source"
        self.target = root / "target"
        self.source.mkdir(exist_ok=True)
        self.target.mkdir(exist_ok=True)
        self.toolchain = toolchain
        self.make_archive = make_archive
        self.service = CardMakerService(toolchain, FileSystemService(), data_dir)
        self.list_path = root / "games.txt"

    def add_gdi(self, identity: str, title: str) -> None:
        _ = self.make_archive(self.source, identity, {f"{title}.gdi": title, "track01.bin": b"\x00" * 8})

    def add_cdi(self, identity: str, title: str) -> None:
        _ = self.make_archive(self.source, identity, {f"{title}.cdi": title})

    def run(self, games: list[str]) -> RunReport:
        return self.service.run(write_list(self.list_path, games), self.source, self.target)

    @property
    def menu_text(self) -> str:
        return self.toolchain.image_author.menu_texts[-1]


@pytest.fixture
def card(tmp_path: Path, fake_toolchain: Toolchain, data_dir: Path, make_archive: MakeArchive) -> CardRun:
    return CardRun(tmp_path, fake_toolchain, data_dir, make_archive)


class TestFreshCard:
    """Building a card from archives only."""

    def test_games_fill_consecutive_slots(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")

        report = card.run(["GameA.zip", "GameB.zip"])

        assert names(card.target) == ["01", "02", "03", "GDEMU.ini", GAME_LIST_FILE]
        assert names(card.target / "01") == ["gdmenu.cdi"]
        assert names(card.target / "02") == [ARCHIVE_FILE, "disc.gdi", HEADER_CACHE_FILE, NAME_FILE, "track01.bin"]
        assert names(card.target / "03") == [ARCHIVE_FILE, "disc.cdi", HEADER_CACHE_FILE, NAME_FILE]
        assert (card.target / "02" / ARCHIVE_FILE).read_text() == "GameA.zip\n"
        assert (card.target / GAME_LIST_FILE).read_text() == "GameA.zip\nGameB.zip\n"
        assert report.placed == [
            SlotEntry("02", "GameA.zip", DiscType.GDI, restored=False),
            SlotEntry("03", "GameB.zip", DiscType.CDI, restored=False),
        ]
        assert report.menu_image == card.target / "01" / "gdmenu.cdi"
        assert report.skipped == []
        assert report.leftovers == []

    def test_menu_lists_every_game(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")

        _ = card.run(["GameA.zip", "GameB.zip"])

        assert card.menu_text == (
            "[GDMENU]\n"
            + MENU_BLOCK
            + "\n"
            "02.name=GAME A\n"
            "02.disc=1/1\n"
            "02.vga=1\n"
            "02.region=JUE\n"
            "02.version=V1.000\n"
            "02.date=19990909\n"
            "\n"
            "03.name=GAME B\n"
            "03.disc=1/1\n"
            "03.vga=0\n"
            "03.region=E\n"
            "03.version=V1.000\n"
            "03.date=19990909\n"
            "\n"
        )

    def test_empty_list_builds_menu_only(self, card: CardRun) -> None:
        report = card.run([])

        assert names(card.target) == ["01", "GDEMU.ini"]
        assert card.menu_text == "[GDMENU]\n" + MENU_BLOCK + "\n"
        assert report.placed == []

    def test_missing_games_are_skipped(self, card: CardRun, make_archive: MakeArchive) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")
        _ = make_archive(card.source, "Soundtrack.zip", {"track01.mp3": b"\x00"})

        report = card.run(["Missing.zip", "GameA.zip", "Soundtrack.zip", "GameB.zip"])

        assert [entry.slot_name for entry in report.placed] == ["02", "03"]
        assert [entry.identity for entry in report.placed] == ["GameA.zip", "GameB.zip"]
        assert [skipped.identity for skipped in report.skipped] == ["Missing.zip", "Soundtrack.zip"]
        assert names(card.target) == ["01", "02", "03", "GDEMU.ini", GAME_LIST_FILE]
        assert (card.target / GAME_LIST_FILE).read_text() == "GameA.zip\nGameB.zip\n"

    def test_corrupt_archive_stops_the_run(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        (card.source / "Broken.zip").write_bytes(b"PK\x03\x04 not a real archive")

        with pytest.raises(ExtractionError):
            _ = card.run(["GameA.zip", "Broken.zip"])

        # Work done before the failure stays in place
        assert (card.target / "02" / "disc.gdi").exists()
        assert not (card.target / "01").exists()

    @given(layout=st.lists(st.sampled_from(["gdi", "cdi", "missing"]), max_size=8))
    @settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_slots_are_contiguous(
        self, fake_toolchain: Toolchain, data_dir: Path, make_archive: MakeArchive, layout: list[str]
    ) -> None:
        """N placed games always occupy 02..N+1 with nothing in between."""
        with tempfile.TemporaryDirectory() as temp_dir:
            card = CardRun(Path(temp_dir), fake_toolchain, data_dir, make_archive)
            games = []
            for index, kind in enumerate(layout):
                identity = f"Game{index}.zip"
                games.append(identity)
                if kind == "gdi":
                    card.add_gdi(identity, f"GAME {index}")
                elif kind == "cdi":
                    card.add_cdi(identity, f"GAME {index}")

            report = card.run(games)

            placed = len(layout) - layout.count("missing")
            expected_slots = [f"{slot:02d}" for slot in range(2, placed + 2)]
            assert [entry.slot_name for entry in report.placed] == expected_slots
            slot_dirs = [name for name in names(card.target) if name.isdigit()]
            assert slot_dirs == ["01", *expected_slots]


class TestRerun:
    """Building again over a card made by an earlier run."""

    def test_games_are_restored_without_archives(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")
        _ = card.run(["GameA.zip", "GameB.zip"])
        first_menu = card.menu_text
        for archive in card.source.iterdir():
            archive.unlink()

        report = card.run(["GameA.zip", "GameB.zip"])

        assert report.restored_count == 2
        assert report.extracted_count == 0
        assert report.skipped == []
        assert card.menu_text == first_menu
        # Cached headers mean no disc tool ran again
        assert len(card.toolchain.header_dumper.dumped) == 1
        assert len(card.toolchain.ripper.ripped) == 1
        assert (card.target / f"{GAME_LIST_FILE}.bak").read_text() == "GameA.zip\nGameB.zip\n"
        # The previous menu slot is handed back for the operator to delete
        assert report.leftovers == [card.target / "01_"]
        assert (card.target / "01_" / "gdmenu.cdi").exists()

    def test_reordered_list_moves_games(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")
        _ = card.run(["GameA.zip", "GameB.zip"])
        report = card.run(["GameB.zip", "GameA.zip"])

        assert report.placed == [
            SlotEntry("02", "GameB.zip", DiscType.CDI, restored=True),
            SlotEntry("03", "GameA.zip", DiscType.GDI, restored=True),
        ]
        assert (card.target / "02" / "disc.cdi").read_text() == "GAME B"
        assert "02.name=GAME B\n" in card.menu_text

    def test_dropped_games_are_reported(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")
        _ = card.run(["GameA.zip", "GameB.zip"])

        report = card.run(["GameB.zip"])

        assert report.placed == [SlotEntry("02", "GameB.zip", DiscType.CDI, restored=True)]
        assert report.leftovers == [card.target / "01_", card.target / "02_"]
        assert (card.target / "02_" / ARCHIVE_FILE).read_text() == "GameA.zip\n"

    def test_new_games_mix_with_restored(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        _ = card.run(["GameA.zip"])
        card.add_cdi("GameB.zip", "GAME B")

        report = card.run(["GameB.zip", "GameA.zip"])

        assert [(e.slot_name, e.identity, e.restored) for e in report.placed] == [
            ("02", "GameB.zip", False),
            ("03", "GameA.zip", True),
        ]

    def test_duplicates_each_get_a_slot(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        first = card.run(["GameA.zip", "GameA.zip"])

        second = card.run(["GameA.zip", "GameA.zip"])

        assert [entry.slot_name for entry in first.placed] == ["02", "03"]
        assert [(e.slot_name, e.restored) for e in second.placed] == [("02", True), ("03", True)]

    def test_edited_name_is_kept(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        _ = card.run(["GameA.zip"])
        (card.target / "02" / NAME_FILE).write_text("Game A (My Favourite)\n")

        _ = card.run(["GameA.zip"])

        assert "02.name=Game A (My Favourite)\n" in card.menu_text

    def test_restorable_slot_without_image_is_skipped(self, card: CardRun) -> None:
        broken = card.target / "02"
        broken.mkdir()
        (broken / ARCHIVE_FILE).write_text("GameA.zip\n")
        card.add_gdi("GameA.zip", "GAME A")

        report = card.run(["GameA.zip"])

        assert [skipped.identity for skipped in report.skipped] == ["GameA.zip"]
        assert report.placed == []
        assert report.leftovers == [card.target / "02_"]


class TestSlotLimit:
    """Runs that reach the last slot the device shows."""

    @pytest.fixture(autouse=True)
    def last_slot_next(self) -> Iterator[None]:
        with patch("dc_card_maker.services.card_maker.SlotAllocator", lambda: SlotAllocator(start=MAX_SLOT)):
            yield

    def test_skipped_games_past_the_last_slot_are_fine(self, card: CardRun, make_archive: MakeArchive) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        _ = make_archive(card.source, "Soundtrack.zip", {"track01.mp3": b"\x00"})

        report = card.run(["GameA.zip", "Missing.zip", "Soundtrack.zip"])

        assert [entry.slot_name for entry in report.placed] == [str(MAX_SLOT)]
        assert [skipped.identity for skipped in report.skipped] == ["Missing.zip", "Soundtrack.zip"]
        assert report.menu_image is not None

    def test_placing_past_the_last_slot_is_fatal(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        card.add_cdi("GameB.zip", "GAME B")

        with pytest.raises(SlotLimitError):
            _ = card.run(["GameA.zip", "Missing.zip", "GameB.zip"])

        assert (card.target / str(MAX_SLOT)).is_dir()
        assert not (card.target / str(MAX_SLOT + 1)).exists()


class TestInterruptedSession:
    def test_leftovers_abort_before_any_change(self, card: CardRun) -> None:
        card.add_gdi("GameA.zip", "GAME A")
        (card.target / "02").mkdir()
        (card.target / "05_").mkdir()
        (card.target / GAME_LIST_FILE).write_text("Old.zip\n")
        before = sorted(str(p.relative_to(card.target)) for p in card.target.rglob("*"))

        with pytest.raises(LeftoverSessionError) as exc_info:
            _ = card.run(["GameA.zip"])

        assert exc_info.value.directories == [card.target / "05_"]
        assert sorted(str(p.relative_to(card.target)) for p in card.target.rglob("*")) == before
        assert card.toolchain.image_author.menu_texts == []


class TestReadGameList:
    def test_blank_lines_and_whitespace(self, tmp_path: Path) -> None:
        path = tmp_path / "games.txt"
        path.write_text("GameA.zip\r\n\n   \n  Game B (USA).7z  \nGameC.zip")

        assert read_game_list(path) == ["GameA.zip", "Game B (USA).7z", "GameC.zip"]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "games.txt"
        path.write_text("")

        assert read_game_list(path) == []
