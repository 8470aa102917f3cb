"""Error handling module for the Dreamcast SD card maker.

This module provides:
- Custom exception classes for the failure modes of a card building run
  (preconditions, leftover sessions, per-game problems, fatal mid-run errors)
- The process exit code each error maps to
- User-friendly error message generation with suggested actions
- Centralized error handling service
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

import structlog

log = structlog.stdlib.get_logger()


class ExitCode(IntEnum):
    """Process exit codes reported by the command line tool."""
    OK = 0
    USAGE = 1
    GAME_LIST_MISSING = 2
    SOURCE_MISSING = 3
    TARGET_MISSING = 4
    DEPENDENCY_MISSING = 5
    LEFTOVER_SESSION = 6
    FATAL = 7
    INTERRUPTED = 130


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    PRECONDITION = "precondition"
    SESSION = "session"
    ARCHIVE = "archive"
    DISC_IMAGE = "disc_image"
    FILE_SYSTEM = "file_system"
    EXTERNAL_TOOL = "external_tool"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Context information for an error."""
    operation: str
    component: str
    details: dict[str, Any]


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True
    exit_code: int = ExitCode.FATAL


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = False,
        context: ErrorContext | None = None,
        exit_code: int = ExitCode.FATAL,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context
        self.exit_code = exit_code

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
            exit_code=self.exit_code,
        )


class PreconditionError(AppError):
    """Exception for missing inputs detected before anything is changed."""

    def __init__(
        self,
        message: str,
        exit_code: int,
        path: Path | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.PRECONDITION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=["Check the command line arguments"],
            technical_details=f"Path: {path}" if path else None,
            exit_code=exit_code,
        )
        self.path = path


class MissingDependencyError(AppError):
    """Exception for required external tools or data files that are absent."""

    def __init__(self, missing: list[str], kind: str = "tool") -> None:
        if kind == "data file":
            # The GDMenu boot files are not shipped with the package
            suggested_actions = [
                "Copy ip.bin and 1ST_READ.BIN from a GDMenu release into the data directory",
                "Or set data_directory in the configuration file to a directory holding them",
                "See README for details",
            ]
        else:
            suggested_actions = [
                f"Install the missing {kind}s or put them in the tools directory",
                "See README for details",
            ]

        super().__init__(
            message=f"This program requires {', '.join(missing)}",
            category=ErrorCategory.PRECONDITION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=f"Missing {kind}s: {', '.join(missing)}",
            exit_code=ExitCode.DEPENDENCY_MISSING,
        )
        self.missing = missing
        self.kind = kind


class LeftoverSessionError(AppError):
    """Exception raised when marker directories from an interrupted run exist."""

    def __init__(self, directories: list[Path]) -> None:
        super().__init__(
            message="Following directories from previous session found",
            category=ErrorCategory.SESSION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=["Remove these directories and run the program again"],
            technical_details="\n".join(str(d) for d in directories),
            exit_code=ExitCode.LEFTOVER_SESSION,
        )
        self.directories = directories


class ArchiveNotFoundError(AppError):
    """Exception for a listed game whose archive is not in the source directory."""

    def __init__(self, identity: str, path: Path) -> None:
        super().__init__(
            message=f"Game archive not found: \"{path}\", skipping",
            category=ErrorCategory.ARCHIVE,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Check the spelling of the archive name in the game list"],
            technical_details=f"Path: {path}",
            recoverable=True,
        )
        self.identity = identity
        self.path = path


class DiscImageNotFoundError(AppError):
    """Exception for an archive or slot that holds no GDI or CDI image."""

    def __init__(self, identity: str, location: Path) -> None:
        super().__init__(
            message=f"Couldn't find any GDI or CDI file in {location}, skipping",
            category=ErrorCategory.DISC_IMAGE,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Make sure the archive contains a .gdi or .cdi image"],
            technical_details=f"Location: {location}",
            recoverable=True,
        )
        self.identity = identity
        self.location = location


class ExtractionError(AppError):
    """Exception for an archive that could not be extracted."""

    def __init__(self, archive: Path, original_error: Exception | None = None) -> None:
        technical_details = f"Archive: {archive}"
        if original_error:
            technical_details += f"\n{type(original_error).__name__}: {original_error}"

        super().__init__(
            message=f"Error extracting archive: {archive}",
            category=ErrorCategory.ARCHIVE,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=[
                "Free up disk space",
                "Check that the archive is not corrupted",
            ],
            technical_details=technical_details,
        )
        self.archive = archive
        self.original_error = original_error


class FileSystemError(AppError):
    """Exception for file system-related errors."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        suggested_actions = self._get_suggested_actions(original_error)

        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {str(original_error)}"
        if path:
            technical_details = f"Path: {path}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.FILE_SYSTEM,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
        )
        self.original_error = original_error
        self.path = path
        self.operation = operation

    @staticmethod
    def _get_suggested_actions(original_error: Exception | None) -> list[str]:
        """Get suggested actions based on error type."""
        if isinstance(original_error, PermissionError):
            return [
                "Check file/directory permissions",
                "Try running with appropriate permissions",
            ]
        elif isinstance(original_error, FileNotFoundError):
            return [
                "Verify the file path is correct",
                "Check if the file was moved or deleted",
            ]
        elif isinstance(original_error, OSError):
            error_str = str(original_error).lower()
            if "no space" in error_str or "disk full" in error_str:
                return [
                    "Free up space on the SD card",
                    "Remove some games from the game list",
                ]
            elif "read-only" in error_str:
                return [
                    "The SD card is mounted read-only",
                    "Check the write-protect switch",
                ]

        return [
            "Check the file path and permissions",
            "Ensure sufficient disk space",
        ]


class RelocationError(FileSystemError):
    """Exception for a prepared game that could not be moved into its slot."""

    def __init__(
        self,
        source: Path,
        destination: Path,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=f"Could not move game from {source} to {destination}",
            original_error=original_error,
            path=str(destination),
            operation="relocate",
        )
        self.source = source
        self.destination = destination


class ToolError(AppError):
    """Exception for an external command that failed."""

    def __init__(
        self,
        command: list[str],
        returncode: int | None = None,
        stderr: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        technical_details = f"Command: {' '.join(command)}"
        if returncode is not None:
            technical_details += f"\nExit status: {returncode}"
        if stderr:
            technical_details += f"\nStderr: {stderr.strip()[:500]}"
        if original_error:
            technical_details += f"\n{type(original_error).__name__}: {original_error}"

        super().__init__(
            message=f"Error when executing {command[0]}",
            category=ErrorCategory.EXTERNAL_TOOL,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=[
                "Run the command by hand to see its full output",
                "Check that the disc image is not corrupted",
            ],
            technical_details=technical_details,
        )
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class HeaderError(AppError):
    """Exception for a disc header that is too short to hold all fields."""

    def __init__(self, source: str, size: int) -> None:
        super().__init__(
            message=f"Disc header in {source} is truncated ({size} bytes)",
            category=ErrorCategory.DISC_IMAGE,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=["Check that the disc image is not corrupted"],
            technical_details=f"Source: {source}\nSize: {size}",
        )
        self.source = source
        self.size = size


class SlotLimitError(AppError):
    """Exception for a game list that needs more slots than the device has."""

    def __init__(self, slot: int, maximum: int) -> None:
        super().__init__(
            message=f"Slot {slot} exceeds the maximum of {maximum} slots",
            category=ErrorCategory.PRECONDITION,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=["Shorten the game list"],
            technical_details=f"Slot: {slot}",
        )
        self.slot = slot
        self.maximum = maximum


class ErrorHandlingService:
    """Centralized error handling service.

    This service provides:
    - Error classification and user-friendly message generation
    - Error logging with technical details
    """

    def __init__(self) -> None:
        """Initialize the error handling service."""
        log.debug("Error handling service initialized")

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
        details_shown: bool = False,
    ) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information
            details_shown: The caller prints the technical details itself,
                so the log record leaves them out

        Returns:
            User-friendly error representation
        """
        app_error = self._convert_to_app_error(error, operation, component, context)

        self._log_error(app_error, operation, component, context, details_shown)

        return app_error.to_user_friendly()

    def _convert_to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        # File system errors
        if isinstance(error, PermissionError):
            return FileSystemError(
                message="Permission denied. You don't have access to this file or directory.",
                original_error=error,
                path=context.get("path") if context else None,
                operation=operation,
            )
        elif isinstance(error, FileNotFoundError):
            return FileSystemError(
                message="The file or directory was not found.",
                original_error=error,
                path=context.get("path") if context else None,
                operation=operation,
            )
        elif isinstance(error, OSError):
            return FileSystemError(
                message=f"A file system error occurred: {str(error)}",
                original_error=error,
                path=context.get("path") if context else None,
                operation=operation,
            )

        return AppError(
            message="An unexpected error occurred.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.CRITICAL,
            technical_details=f"{type(error).__name__}: {str(error)}",
            context=ErrorContext(
                operation=operation,
                component=component,
                details=context or {},
            ),
        )

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
        details_shown: bool = False,
    ) -> None:
        """Log error with full technical details."""
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error

        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=None if details_shown else error.technical_details,
            recoverable=error.recoverable,
            context=context,
        )

    def create_user_message(
        self,
        error: UserFriendlyError,
        include_suggestions: bool = True,
        include_details: bool = False,
    ) -> str:
        """Create a formatted user message from an error.

        Args:
            error: The user-friendly error
            include_suggestions: Whether to include suggested actions
            include_details: Whether to include the technical details

        Returns:
            Formatted message string
        """
        parts = [error.message]

        if include_details and error.technical_details:
            parts.append(error.technical_details)

        if include_suggestions and error.suggested_actions:
            parts.append("\nSuggested actions:")
            for action in error.suggested_actions[:3]:  # Limit to 3 suggestions
                parts.append(f"  • {action}")

        return "\n".join(parts)


# Global error handling service instance
_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> UserFriendlyError:
    """Convenience function to handle errors using the global service.

    Args:
        error: The exception that occurred
        operation: The operation being performed
        component: The component where the error occurred
        context: Additional context information

    Returns:
        User-friendly error representation
    """
    return get_error_service().handle_error(error, operation, component, context)
