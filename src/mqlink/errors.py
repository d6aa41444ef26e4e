"""Exceptions raised by mqlink.

:class:`MessagingError` covers everything a caller may reasonably retry:
configuration lookups that failed, and transport failures. :class:`UsageError`
is deliberately outside that hierarchy, it flags a programming error.
"""


class MessagingError(Exception):
    """Base class for recoverable mqlink errors."""


class ConfigResolutionError(MessagingError):
    """A naming or configuration lookup could not be satisfied."""


class TransportError(MessagingError):
    """Base class for all transport-layer errors."""


class TransportTimeout(TransportError):
    """A transport operation did not complete in time."""


class TransportConnectionError(TransportError):
    """The transport could not establish or maintain a connection."""


class UsageError(RuntimeError):
    """An API was called out of order."""
