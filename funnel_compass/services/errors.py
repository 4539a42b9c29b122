"""
Exception hierarchy for the Funnel Compass analytics core.

Only input malformation is raised. Degenerate arithmetic is absorbed with
documented sentinels inside each service, and collaborator failures are
isolated per advisor / per platform.
"""


class FunnelCompassError(Exception):
    """Base class for all errors raised by the analytics core."""


class MalformedSnapshotError(FunnelCompassError, ValueError):
    """
    Raised when snapshots cannot be compared under a funnel schema.

    Examples: a stage metric that appears in neither snapshot under any of
    its declared sources, or current/previous snapshots describing different
    entities.
    """


class UnsupportedFunnelError(FunnelCompassError, KeyError):
    """Raised when the catalog has no funnel or benchmarks for a combination."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ''


class SnapshotNotFoundError(FunnelCompassError, LookupError):
    """Raised by a snapshot provider that has no data for the requested window."""
