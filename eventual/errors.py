"""Errors raised by the eventual package itself.

Rejection payloads are opaque: a Deferred can be rejected with any object.
The classes below are only used when the library has to raise something on
its own.
"""

import builtins


class DeferredError(Exception):
    """Base class of all errors raised by the eventual package."""
    pass


class PendingError(DeferredError):
    """The Deferred is not settled yet, its outcome is not available."""
    pass


class RejectionError(DeferredError):
    """A Deferred was rejected with a value who is not an exception.

    Attributes:
        reason: the rejection payload, as given to `reject()`.
    """

    def __init__(self, reason):
        DeferredError.__init__(self, 'Deferred rejected with %r' % (reason,))
        self.reason = reason


class TimeoutError(DeferredError, builtins.TimeoutError):
    """An operation could not be executed within the time allowed."""
    pass


class StalledError(DeferredError):
    """The scheduler has no more work but the awaited Deferred is pending.

    Running the loop further would never settle it.
    """
    pass
