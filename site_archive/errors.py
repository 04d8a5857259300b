"""Exception types raised by the archiving pipeline."""

from typing import Optional


class ArchiveError(Exception):
    """Base class for all site-archive errors."""


class UnsupportedScheme(ArchiveError, ValueError):
    """A reference uses a scheme that cannot be archived (data:, blob:)."""


class MalformedReference(ArchiveError, ValueError):
    """A reference could not be parsed as a URL."""


class FetchFailure(ArchiveError):
    """A page or asset could not be fetched."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class StorageFailure(ArchiveError):
    """A blob store operation failed."""


class InvalidKey(StorageFailure):
    """A storage key cannot name an object (empty, dot or reserved segments)."""


class ArchiveFailure(ArchiveError):
    """An archive run could not be completed."""

    def __init__(self, seed_url: str, cause: object):
        self.seed_url = seed_url
        self.cause = cause
        super().__init__(f"Failed to archive {seed_url}: {cause}")
