"""
Snapshot providers.

A provider turns (platform, entity, time range, funnel) into a MetricSnapshot.
Real providers wrap platform API clients and live outside this package; the
runner only depends on the SnapshotProvider protocol.

InMemorySnapshotProvider serves pre-loaded snapshots. The HTTP surface uses it
for snapshots posted inline, and tests use it to script platform failures.
"""

import asyncio
import logging
from typing import Dict, Iterable, Optional, Protocol, Set, Tuple

from funnel_compass.models import (
    EntityLevel,
    FunnelSchema,
    MetricSnapshot,
    PlatformType,
    TimeRange,
)
from funnel_compass.services.errors import SnapshotNotFoundError

logger = logging.getLogger(__name__)

SnapshotKey = Tuple[PlatformType, str, str, str]


class SnapshotProvider(Protocol):
    """Source of metric snapshots for the multi-platform runner."""

    async def fetch_snapshot(
        self,
        platform: PlatformType,
        entity_id: str,
        entity_level: EntityLevel,
        time_range: TimeRange,
        funnel: FunnelSchema,
    ) -> MetricSnapshot:
        ...

    async def fetch_comparison_snapshots(
        self,
        platform: PlatformType,
        entity_id: str,
        entity_level: EntityLevel,
        current: TimeRange,
        previous: TimeRange,
        funnel: FunnelSchema,
    ) -> Tuple[MetricSnapshot, MetricSnapshot]:
        ...


def _key(platform: PlatformType, entity_id: str, since, until) -> SnapshotKey:
    return (PlatformType(platform), entity_id, str(since), str(until))


class InMemorySnapshotProvider:
    """
    Provider backed by a dict keyed by (platform, entityId, since, until).

    Platforms listed in `failing_platforms` raise SnapshotNotFoundError on
    every fetch, which lets callers exercise partial-failure handling.
    """

    def __init__(
        self,
        snapshots: Optional[Dict[PlatformType, Iterable[MetricSnapshot]]] = None,
        failing_platforms: Optional[Iterable[PlatformType]] = None,
    ):
        self._snapshots: Dict[SnapshotKey, MetricSnapshot] = {}
        self._failing: Set[PlatformType] = set(failing_platforms or [])
        for platform, items in (snapshots or {}).items():
            for snapshot in items:
                self.add(platform, snapshot)

    def add(self, platform: PlatformType, snapshot: MetricSnapshot) -> None:
        """Register a snapshot under its own entity and period."""
        key = _key(platform, snapshot.entityId, snapshot.periodStart, snapshot.periodEnd)
        self._snapshots[key] = snapshot

    def __len__(self) -> int:
        return len(self._snapshots)

    async def fetch_snapshot(
        self,
        platform: PlatformType,
        entity_id: str,
        entity_level: EntityLevel,
        time_range: TimeRange,
        funnel: FunnelSchema,
    ) -> MetricSnapshot:
        if platform in self._failing:
            raise SnapshotNotFoundError(f"{PlatformType(platform).value} is unavailable")

        snapshot = self._snapshots.get(_key(platform, entity_id, time_range.since, time_range.until))
        if snapshot is None:
            raise SnapshotNotFoundError(
                f"No {PlatformType(platform).value} snapshot for {entity_id} "
                f"from {time_range.since} to {time_range.until}"
            )
        if snapshot.entityLevel != entity_level:
            logger.warning(
                f"Snapshot for {entity_id} is {snapshot.entityLevel.value}-level, "
                f"requested {EntityLevel(entity_level).value}"
            )
        return snapshot

    async def fetch_comparison_snapshots(
        self,
        platform: PlatformType,
        entity_id: str,
        entity_level: EntityLevel,
        current: TimeRange,
        previous: TimeRange,
        funnel: FunnelSchema,
    ) -> Tuple[MetricSnapshot, MetricSnapshot]:
        current_snapshot, previous_snapshot = await asyncio.gather(
            self.fetch_snapshot(platform, entity_id, entity_level, current, funnel),
            self.fetch_snapshot(platform, entity_id, entity_level, previous, funnel),
        )
        return current_snapshot, previous_snapshot
