"""Exception hierarchy shared by the horoscope engine."""

from __future__ import annotations


class HoroscopeError(Exception):
    """Base class for every failure raised inside the engine."""


class ContentError(HoroscopeError):
    """Content bank could not serve a request."""


class ContentUnavailable(ContentError):
    """Requested locale and the fallback locale both failed to load."""


class ContentMalformed(ContentError):
    """A loaded content bank lacks the data needed for a selection."""


class PersistenceFailure(HoroscopeError):
    """Reading store read or write failed."""


class UnknownSign(HoroscopeError, ValueError):
    """Identifier does not name one of the twelve signs."""
