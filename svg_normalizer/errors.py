"""
Fatal error kinds.

Only these ever reach the caller; every other anomaly in a document is
absorbed by a local fallback while converting.
"""


class NormalizeError(Exception):
    """Base class for all fatal normalization errors."""


class ParseError(NormalizeError):
    """The input is not well-formed XML."""


class InvalidRootError(NormalizeError):
    """The root element is missing or is not an <svg> element."""


class InvalidSizeError(InvalidRootError):
    """The root <svg> resolves to an unusable size or viewBox."""


class OptionsError(NormalizeError):
    """A configuration value is outside its domain."""
