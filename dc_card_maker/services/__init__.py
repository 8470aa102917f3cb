"""Service layer: slot management, disc metadata and external tools."""

from .card_maker import CardMakerService, read_game_list
from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    ArchiveNotFoundError,
    DiscImageNotFoundError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    ExitCode,
    ExtractionError,
    FileSystemError,
    HeaderError,
    LeftoverSessionError,
    MissingDependencyError,
    PreconditionError,
    RelocationError,
    SlotLimitError,
    ToolError,
    UserFriendlyError,
    get_error_service,
    handle_error,
)
from .filesystem import FileSystemService
from .header import HEADER_FIELDS, HEADER_SIZE, parse_header, read_header
from .materializer import GameMaterializer
from .menu import MENU_PROGRAM_HEADER, MenuBuilder
from .menu_image import MenuImageBuilder
from .metadata import DiscMetadataService
from .session import SessionGuard
from .slots import SlotAllocator, SlotDirectoryResolver
from .tools import Toolchain

__all__ = [
    "AppError",
    "ArchiveNotFoundError",
    "CardMakerService",
    "ConfigurationService",
    "DiscImageNotFoundError",
    "DiscMetadataService",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "ExitCode",
    "ExtractionError",
    "FileSystemError",
    "FileSystemService",
    "GameMaterializer",
    "HEADER_FIELDS",
    "HEADER_SIZE",
    "HeaderError",
    "LeftoverSessionError",
    "MENU_PROGRAM_HEADER",
    "MenuBuilder",
    "MenuImageBuilder",
    "MissingDependencyError",
    "PreconditionError",
    "RelocationError",
    "SessionGuard",
    "SlotAllocator",
    "SlotDirectoryResolver",
    "SlotLimitError",
    "Toolchain",
    "ToolError",
    "UserFriendlyError",
    "ValidationResult",
    "get_error_service",
    "handle_error",
    "parse_header",
    "read_game_list",
    "read_header",
]
