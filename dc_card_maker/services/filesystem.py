"""File system service for slot directories and their sidecar files."""

import json
import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

log = structlog.stdlib.get_logger()


class FileSystemService:
    """Service for file system operations with logging and validation."""

    def save_json(self, data: dict[str, Any], path: Path) -> None:
        """Save data as JSON to the specified path.

        Args:
            data: Dictionary to save as JSON
            path: Path to save the file

        Raises:
            OSError: If file cannot be written
            ValueError: If data cannot be serialized to JSON
        """
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self.ensure_directory(path.parent)

            log.debug("Saving JSON data", path=str(path), temp_path=str(temp_path))

            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)

            # Atomic move to final location
            temp_path.replace(path)

        except OSError as e:
            log.error("Failed to save JSON data", path=str(path), error=str(e))
            temp_path.unlink(missing_ok=True)
            raise
        except (TypeError, ValueError) as e:
            log.error("Failed to serialize data to JSON", path=str(path), error=str(e))
            temp_path.unlink(missing_ok=True)
            raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    def load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON data from the specified path.

        Raises:
            FileNotFoundError: If file does not exist
            ValueError: If file contains invalid JSON or is not an object
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            log.error("Invalid JSON in file", path=str(path), error=str(e))
            raise ValueError(f"Invalid JSON in file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Expected JSON object (dict), got {type(data).__name__}")

        return data

    def read_first_line(self, path: Path) -> str:
        """Return the first line of a text file without its line ending."""
        with open(path, 'r', encoding='utf-8', errors='surrogateescape') as f:
            return f.readline().rstrip("\r\n")

    def read_text(self, path: Path) -> str:
        """Return a text file's content with trailing line endings removed."""
        return path.read_text(encoding='utf-8', errors='surrogateescape').rstrip("\r\n")

    def write_text(self, path: Path, text: str) -> None:
        """Write a single line of text, terminated by a newline."""
        log.debug("Writing text file", path=str(path))
        path.write_text(text + "\n", encoding='utf-8', errors='surrogateescape')

    def append_line(self, path: Path, line: str) -> None:
        """Append a single line to a text file, creating it if needed."""
        with open(path, 'a', encoding='utf-8', errors='surrogateescape') as f:
            f.write(line + "\n")

    def ensure_directory(self, path: Path) -> None:
        """Ensure that a directory exists, creating it if necessary.

        Raises:
            OSError: If the path exists but is not a directory, or cannot be created
        """
        if path.exists():
            if not path.is_dir():
                log.error("Path exists but is not a directory", path=str(path))
                raise OSError(f"Path exists but is not a directory: {path}")
            return

        log.debug("Creating directory", path=str(path))
        path.mkdir(parents=True, exist_ok=True)

    def list_directories(
        self,
        directory: Path,
        predicate: Callable[[str], bool] | None = None,
    ) -> list[Path]:
        """List immediate subdirectories whose names satisfy a predicate.

        Args:
            directory: Directory to scan (not recursive)
            predicate: Test applied to each subdirectory name (default: accept all)

        Returns:
            Matching directories sorted by name
        """
        entries = [
            entry for entry in directory.iterdir()
            if entry.is_dir() and (predicate is None or predicate(entry.name))
        ]
        return sorted(entries, key=lambda p: p.name)

    def find_files(self, directory: Path, suffix: str) -> list[Path]:
        """Find files below a directory with the given extension, ignoring case.

        Returns:
            Matching files sorted by path
        """
        suffix = suffix.lower()
        return sorted(
            p for p in directory.rglob("*")
            if p.is_file() and p.suffix.lower() == suffix
        )

    def move(self, source: Path, destination: Path) -> None:
        """Move or rename a file or directory.

        Raises:
            FileNotFoundError: If source does not exist
            FileExistsError: If destination already exists
            OSError: If the move fails
        """
        if not source.exists():
            log.error("Source not found for move", source=str(source))
            raise FileNotFoundError(f"Source not found: {source}")

        if destination.exists():
            log.error("Destination already exists", destination=str(destination))
            raise FileExistsError(f"Destination already exists: {destination}")

        try:
            log.debug("Moving path", source=str(source), destination=str(destination))
            shutil.move(str(source), str(destination))
        except OSError as e:
            log.error("Failed to move path", source=str(source), destination=str(destination), error=str(e))
            raise

    def backup_file(self, path: Path, suffix: str = ".bak") -> Path | None:
        """Rename an existing file aside, replacing any previous backup.

        Returns:
            The backup path, or None if there was nothing to back up
        """
        if not path.exists():
            return None

        backup = path.with_name(path.name + suffix)
        path.replace(backup)
        log.info("Existing file backed up", path=str(path), backup=str(backup))
        return backup

    def install_file(self, source: Path, directory: Path, mode: int = 0o644) -> Path:
        """Copy a file into a directory and set its permission bits."""
        destination = directory / source.name
        shutil.copyfile(source, destination)
        os.chmod(destination, mode)
        log.debug("File installed", source=str(source), destination=str(destination))
        return destination

    def delete_file(self, path: Path) -> None:
        """Delete a file.

        Raises:
            OSError: If the path is not a file or cannot be deleted
        """
        if not path.is_file():
            log.error("Attempted to delete non-file", path=str(path))
            raise OSError(f"Path is not a file: {path}")

        log.debug("Deleting file", path=str(path))
        path.unlink()

    def remove_tree(self, path: Path) -> None:
        """Recursively delete a scratch directory if it exists."""
        if path.exists():
            log.debug("Removing directory tree", path=str(path))
            shutil.rmtree(path)
