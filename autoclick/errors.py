"""
autoclick/errors.py - Things that go wrong.

Only ConfigurationError is fatal. Everything else gets logged and the loop
keeps going.
"""


class AutoClickError(Exception):
    """Base class for everything this package raises on purpose."""


class ConfigurationError(AutoClickError):
    # Reference image given but missing/unreadable. Loop never starts.
    pass


class CaptureError(AutoClickError):
    # A single screen grab failed. The tick is dropped, the next one retries.
    pass
