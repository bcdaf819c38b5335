from __future__ import annotations


class EagleSiftError(Exception):
    """Base class for errors raised outside the rule engine."""


class SmartFolderNotFound(EagleSiftError, LookupError):
    """Raised when a smart folder id is not part of the library."""

    def __init__(self, folder_id: str) -> None:
        super().__init__(f"Smart folder not found: {folder_id}")
        self.folder_id = folder_id


class LibraryDataError(EagleSiftError):
    """Raised when an exported library file cannot be read."""
