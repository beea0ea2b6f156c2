"""
Exceptions raised by the cyclequant pipeline.

All failures are data or configuration problems; nothing is retried.
"""


class CycleQuantError(Exception):
    """Base exception for cyclequant pipeline errors."""
    pass


class MalformedInputError(CycleQuantError):
    """Input table has the wrong shape, non-numeric values, or duplicate keys."""
    pass


class InsufficientReplicatesError(CycleQuantError):
    """A group has fewer than 2 finite values at testing time."""
    pass


class DegenerateNormalizationError(CycleQuantError):
    """A sample column sums to zero and cannot be scaled."""
    pass


class ConfigError(CycleQuantError, ValueError):
    """Invalid configuration value."""
    pass
