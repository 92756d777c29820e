"""Errors raised while building or reading the element-set archive."""


class ArchiveError(ValueError):
    """Base class for archive errors."""


class MissingCatalogIdError(ArchiveError):
    """A raw record has no NORAD catalog number. Fatal: the record has no identity."""


class EpochOrderError(ArchiveError):
    """Epochs went backwards. Fatal: thinning and bucketing depend on epoch order."""


class MalformedRowError(ArchiveError):
    """A row could not be parsed. Recoverable: readers skip the row."""
