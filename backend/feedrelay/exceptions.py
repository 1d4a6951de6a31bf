"""Exception hierarchy for feedrelay.

Store errors are fatal to the current driver invocation. Collaborator errors
(feed, content, oracle, publish) are transient: drivers turn them into a
deferred transition and keep going on the next invocation.
"""

from __future__ import annotations


class FeedRelayError(Exception):
    """Base exception for feedrelay."""

    pass


class StoreError(FeedRelayError):
    """Persistent storage failed; the transaction was rolled back."""

    pass


class DuplicateIdentityError(StoreError):
    """An item with the same identity already exists."""

    def __init__(self, identity: str):
        super().__init__(f"item already exists: {identity}")
        self.identity = identity


class FeedFetchError(FeedRelayError):
    """The feed could not be downloaded or parsed."""

    pass


class ContentFetchError(FeedRelayError):
    """The item page could not be fetched or extracted."""

    pass


class ContentNotFoundError(ContentFetchError):
    pass


class ContentNetworkError(ContentFetchError):
    pass


class ContentParseError(ContentFetchError):
    pass


class OracleError(FeedRelayError):
    """The judgment or generation oracle failed after its retries."""

    pass


class PublishError(FeedRelayError):
    """The publish sink rejected or failed to deliver a post."""

    pass


class DriverFaultError(FeedRelayError):
    """Unexpected fault caught at a driver boundary."""

    pass
