# src/bithab/errors.py
class BitHabError(Exception):
    """Base class for BitHab errors."""


class InvalidDateKey(BitHabError, ValueError):
    """A date key that does not name a real calendar day."""


class DocumentStoreError(BitHabError):
    """The remote document store could not be read or written."""


class SessionNotOpen(BitHabError):
    """No session is open for the given user."""
