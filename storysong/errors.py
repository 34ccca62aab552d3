class StorysongError(Exception):
    """Base class for errors raised by storysong."""


class StoreUnavailable(StorysongError):
    """The shared key-value store could not be reached.

    Raised by the job store for any backend failure. Callers must not assume
    that any part of the attempted mutation happened.
    """


class HandlerError(StorysongError):
    """A job handler could not produce a result (rejected input or upstream failure)."""
