class HomeBookError(Exception):
    """Base class for errors raised by the note persistence layer."""


class ValidationError(HomeBookError):
    """A draft note failed a content rule (empty title or content after trimming)."""


class CorruptDataError(HomeBookError):
    """The stored note collection could not be deserialized."""


class StorageError(HomeBookError):
    """The backing key-value store failed to read or write."""


class MalformedNavigationPayload(HomeBookError):
    """A note handed between surfaces could not be parsed."""
