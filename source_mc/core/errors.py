"""Exceptions raised on invalid source definitions or sampling parameters."""


class SourceError(ValueError):
    """Base class for all source_mc errors."""


class InvalidSpectrum(SourceError):
    """Empty spectrum, non-positive total intensity or malformed entries."""


class InvalidGeometry(SourceError):
    """Box extents that the samplers cannot work with (e.g. detector not inside air)."""


class InvalidParameter(SourceError):
    """Sampling parameter outside its allowed range."""


class ConfigError(SourceError):
    """Malformed configuration file."""
