"""Custom exceptions for cuentame-sync."""


class CuentameError(Exception):
    """Base exception for all cuentame-sync errors."""

    pass


class FeedError(CuentameError):
    """Feed retrieval and parsing errors."""

    pass


class FeedFetchError(FeedError):
    """The feed could not be downloaded."""

    pass


class FeedParseError(FeedError):
    """The feed text has no usable channel structure."""

    pass


class StoreError(CuentameError):
    """Key-value store errors."""

    pass


class IndexWriteError(StoreError):
    """The episodes index could not be persisted."""

    pass
