"""Refresh cycle orchestration: fetch, normalize, reduce, classify."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from datastore.sources import RoomStatsSource, build_source
from models.records import ReadingRecord, RoomSnapshot
from services.classifier import OccupancyClassifier, build_profile
from services.errors import FailureKind, FailureReason, FetchError
from services.freshness import DEFAULT_STALE_AFTER, describe_freshness
from services.normalizer import FieldAliases, ReadingNormalizer
from services.reducer import LatestPerRoomReducer
from services.summary import DashboardSummary, SnapshotSummarizer
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshState(str, Enum):
    idle = "idle"
    fetching = "fetching"


class RefreshStatus(str, Enum):
    """Outcome of a single ``refresh()`` call."""

    succeeded = "succeeded"
    empty = "empty"
    failed = "failed"
    skipped = "skipped"


@dataclass(frozen=True)
class RefreshConfig:
    row_limit: int = 500
    stale_after: timedelta = DEFAULT_STALE_AFTER
    display_tz: Optional[tzinfo] = None


@dataclass(frozen=True)
class RefreshSession:
    """Read-only view of the orchestrator state, replaced on every transition."""

    state: RefreshState = RefreshState.idle
    last_result: Optional[Tuple[RoomSnapshot, ...]] = None
    last_failure: Optional[FailureReason] = None
    last_refreshed_at: Optional[datetime] = None
    last_attempted_at: Optional[datetime] = None
    rejected_rows: int = 0

    @property
    def in_flight(self) -> bool:
        return self.state is RefreshState.fetching


@dataclass(frozen=True)
class RefreshOutcome:
    status: RefreshStatus
    rooms: Tuple[RoomSnapshot, ...] = ()
    failure: Optional[FailureReason] = None
    refreshed_at: Optional[datetime] = None
    rejected_rows: int = 0

    @property
    def ok(self) -> bool:
        return self.status in (RefreshStatus.succeeded, RefreshStatus.empty)


class RefreshOrchestrator:
    """Runs at most one fetch-normalize-reduce-classify cycle at a time.

    A call to :meth:`refresh` made while a fetch is in flight is dropped and
    reports ``RefreshStatus.skipped``; it is never queued. The fetch itself
    runs as an ``asyncio.Task`` so it can be cancelled on shutdown.
    """

    def __init__(
        self,
        source: RoomStatsSource,
        config: Optional[RefreshConfig] = None,
        normalizer: Optional[ReadingNormalizer] = None,
        reducer: Optional[LatestPerRoomReducer] = None,
        classifier: Optional[OccupancyClassifier] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self.source = source
        self.config = config or RefreshConfig()
        self.normalizer = normalizer or ReadingNormalizer()
        self.reducer = reducer or LatestPerRoomReducer()
        self.classifier = classifier or OccupancyClassifier()
        self.summarizer = SnapshotSummarizer(self.classifier.tiers)
        self._clock = clock
        self._session = RefreshSession()
        self._task: Optional[asyncio.Task[List[Mapping[str, Any]]]] = None
        self._cancel_requested = False

    @property
    def session(self) -> RefreshSession:
        return self._session

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    def summarize(self, rooms: Tuple[RoomSnapshot, ...]) -> DashboardSummary:
        return self.summarizer.summarize(rooms)

    async def refresh(self) -> RefreshOutcome:
        if self.in_flight:
            logger.info("Refresh already in flight; request dropped")
            return RefreshOutcome(
                status=RefreshStatus.skipped,
                rooms=self._session.last_result or (),
                failure=self._session.last_failure,
                refreshed_at=self._session.last_refreshed_at,
                rejected_rows=self._session.rejected_rows,
            )

        # No await between the in-flight check and storing the task.
        task = asyncio.ensure_future(self.source.fetch_recent(self.config.row_limit))
        self._task = task
        self._cancel_requested = False
        self._session = replace(
            self._session,
            state=RefreshState.fetching,
            last_attempted_at=self._clock(),
        )

        try:
            rows = await task
        except FetchError as exc:
            outcome = self._fail(exc.reason)
        except asyncio.CancelledError:
            if not self._cancel_requested:
                self._session = replace(self._session, state=RefreshState.idle)
                raise
            outcome = self._fail(FailureReason(FailureKind.cancelled, "Refresh was cancelled."))
        except Exception as exc:
            logger.exception("Unexpected error while fetching readings")
            outcome = self._fail(
                FailureReason(FailureKind.unexpected, str(exc) or type(exc).__name__)
            )
        else:
            outcome = self._complete(rows)
        finally:
            # Cleared only once the session has been updated for this cycle.
            if self._task is task:
                self._task = None

        return outcome

    def cancel_in_flight(self) -> bool:
        """Cancel the running fetch, if any. Returns whether one was cancelled."""
        if self._task is None or self._task.done():
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    def build_snapshots(
        self, rows: List[Mapping[str, Any]], now: datetime
    ) -> Tuple[Tuple[RoomSnapshot, ...], int]:
        """Turn fetched rows into one snapshot per room plus the rejected row count."""
        report = self.normalizer.normalize_rows(rows)
        for rejection in report.rejections:
            logger.debug(
                "Dropped reading row",
                extra={
                    "row_number": rejection.row_number,
                    "room_id": rejection.room_id,
                    "reason": rejection.reason,
                },
            )

        latest = self.reducer.reduce(report.records)
        snapshots = tuple(self._snapshot(record, now) for record in latest.values())
        return snapshots, len(report.rejections)

    def _snapshot(self, record: ReadingRecord, now: datetime) -> RoomSnapshot:
        capacity = self.classifier.capacity_for(record.room_id)
        freshness = describe_freshness(
            record.observed_at,
            now,
            stale_after=self.config.stale_after,
            tz=self.config.display_tz,
        )
        return RoomSnapshot(
            room_id=record.room_id,
            count=record.count,
            tier=self.classifier.classify(record.count, capacity),
            observed_at=record.observed_at,
            is_stale=freshness.is_stale,
            relative_label=freshness.relative_label,
            capacity=capacity,
        )

    def _complete(self, rows: List[Mapping[str, Any]]) -> RefreshOutcome:
        now = self._clock()
        snapshots, rejected = self.build_snapshots(rows, now)
        status = RefreshStatus.succeeded if snapshots else RefreshStatus.empty

        self._session = replace(
            self._session,
            state=RefreshState.idle,
            last_result=snapshots,
            last_failure=None,
            last_refreshed_at=now,
            rejected_rows=rejected,
        )
        log = logger.warning if rejected else logger.info
        log(
            "Refresh completed",
            extra={
                "status": status.value,
                "row_count": len(rows),
                "room_count": len(snapshots),
                "rejected_count": rejected,
            },
        )
        return RefreshOutcome(
            status=status,
            rooms=snapshots,
            refreshed_at=now,
            rejected_rows=rejected,
        )

    def _fail(self, reason: FailureReason) -> RefreshOutcome:
        self._session = replace(
            self._session,
            state=RefreshState.idle,
            last_failure=reason,
        )
        logger.error(
            "Refresh failed: %s",
            reason.message,
            extra={"failure_kind": reason.kind.value, "status_code": reason.status_code},
        )
        return RefreshOutcome(status=RefreshStatus.failed, failure=reason)


def _resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown display timezone %r; using local time", name)
        return None


def build_orchestrator(
    settings: Settings,
    source: Optional[RoomStatsSource] = None,
) -> RefreshOrchestrator:
    """Wire an orchestrator from explicit settings."""
    profile = build_profile(
        settings.occupancy_profile,
        boundaries=settings.tier_boundaries,
        mode=settings.classification_mode,
        default_capacity=settings.default_capacity,
    )
    aliases = FieldAliases(
        room_id=settings.room_id_fields,
        count=settings.count_fields,
        timestamp=settings.timestamp_fields,
    )
    config = RefreshConfig(
        row_limit=settings.fetch_row_limit,
        stale_after=timedelta(seconds=settings.stale_after_seconds),
        display_tz=_resolve_timezone(settings.display_timezone),
    )
    return RefreshOrchestrator(
        source=source if source is not None else build_source(settings),
        config=config,
        normalizer=ReadingNormalizer(aliases),
        classifier=OccupancyClassifier(profile, settings.room_capacities),
    )


@lru_cache
def build_default_orchestrator() -> RefreshOrchestrator:
    """Factory that wires the orchestrator from environment settings."""
    return build_orchestrator(get_settings())
