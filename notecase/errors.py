"""
Exception taxonomy for notecase.

File-local errors (ParseError, StoreError) are caught by the import
orchestrator and turned into per-file error entries. ArchiveError is fatal
to a whole import. The CLI catches NotecaseError at the top level.
"""


class NotecaseError(Exception):
    """Base class for every error raised by notecase."""


class StoreError(NotecaseError, RuntimeError):
    """
    A Supabase request failed.

    `code` carries the Postgres / PostgREST error code when one is known
    (e.g. "23505" for a unique violation).
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class UniqueViolationError(StoreError):
    """An insert collided with a unique index."""


class NotFoundError(StoreError):
    """A row addressed by id does not exist for this owner."""


class ParseError(NotecaseError, ValueError):
    """Input text could not be turned into a usable note."""


class MissingTitleError(ParseError):
    """A Markdown file has no `title` in its frontmatter."""


class BackupFormatError(ParseError):
    """A JSON backup document does not have the expected structure."""


class ArchiveError(NotecaseError):
    """The uploaded ZIP archive is corrupt or unreadable."""
