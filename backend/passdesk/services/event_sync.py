"""
Event directory sync: mirror the upstream event catalog into the events table.

Catalog document:
    {"data": [{"id": 12, "attributes": {"name": ..., "department": "CSE",
                                         "class": "technical", "cost": 250}}]}

Rules:
  - `class` selects the event type: technical / non-technical / workshop.
    Anything else, or an entry missing its fields, is skipped and logged.
  - Department codes go through DEPARTMENT_MAPPING; workshops always belong to
    the WORKSHOP department. Unmapped codes and departments missing from the
    table are skipped and logged.
  - Cost: technical events are free (null); workshops and non-technical
    events take a numeric `cost` from the catalog, else the configured price.
  - Each event is upserted by id inside its own savepoint, so one bad row
    does not abort the batch. `registrations` is never written here.

Overlapping runs:
  A run that takes longer than the schedule period must not overlap the
  next one. Runs are single-flight: an in-process asyncio.Lock is tested
  without waiting, and when Redis is available a non-blocking Redis lock
  extends the guard across processes. A run that cannot take the guard is
  skipped, not queued. If Redis errors while acquiring, the guard fails open
  and only the in-process lock applies; the upsert is idempotent, so an
  overlap costs duplicate work, not corrupt data.

A failed run logs and returns; the scheduler loop also survives anything a
run raises unexpectedly.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from redis.exceptions import LockError, RedisError
from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from passdesk.core.config import Settings
from passdesk.core.logging import get_logger
from passdesk.core.metrics import event_sync_runs, events_synced
from passdesk.infrastructure.catalog_client import CatalogClient, CatalogFetchError
from passdesk.models.department import Department
from passdesk.models.event import Event, EVENT_TYPES

logger = get_logger(__name__)

DEPARTMENT_MAPPING = {
    "CSE": "CSE_SSN",
    "SNU_CSE": "CSE_SNU",
    "IT": "IT",
    "ECE": "ECE",
    "EEE": "EEE",
    "CHEM": "CHEM",
    "MECH": "MECH",
    "CIVIL": "CIVIL",
    "BME": "BME",
    "COM": "COM",
}
WORKSHOP_DEPARTMENT = "WORKSHOP"
SYNC_LOCK_KEY = "passdesk:sync-events"


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    name: str
    event_type: str
    department_code: Optional[str]
    cost: Optional[float]


@dataclass
class SyncReport:
    status: str  # success, failed, skipped
    started_at: datetime
    finished_at: Optional[datetime] = None
    fetched: int = 0
    upserted: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


def parse_entry(raw: Any) -> Optional[CatalogEntry]:
    """Validate one catalog item. Returns None for anything malformed."""
    if not isinstance(raw, dict):
        return None
    attributes = raw.get("attributes")
    if not isinstance(attributes, dict):
        return None

    raw_id = raw.get("id")
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, str) and raw_id.isdigit():
        raw_id = int(raw_id)
    if not isinstance(raw_id, int):
        return None

    name = attributes.get("name")
    event_type = attributes.get("class")
    if not isinstance(name, str) or not name.strip() or event_type not in EVENT_TYPES:
        return None

    department = attributes.get("department")
    cost = attributes.get("cost")
    return CatalogEntry(
        id=raw_id,
        name=name.strip(),
        event_type=event_type,
        department_code=department if isinstance(department, str) else None,
        cost=cost if isinstance(cost, (int, float)) and not isinstance(cost, bool) else None,
    )


def department_name_for(entry: CatalogEntry) -> Optional[str]:
    if entry.event_type == "workshop":
        return WORKSHOP_DEPARTMENT
    if entry.department_code is None:
        return None
    return DEPARTMENT_MAPPING.get(entry.department_code)


def cost_for(entry: CatalogEntry, settings: Settings) -> Optional[float]:
    if entry.event_type == "technical":
        return None
    if entry.cost is not None:
        return entry.cost
    if entry.event_type == "workshop":
        return settings.WORKSHOP_PRICE
    return settings.NON_TECH_DEFAULT_PRICE


class EventCatalogSync:
    """Periodic catalog sync job. One instance per application."""

    def __init__(self, session_factory, catalog: Optional[CatalogClient], settings: Settings, redis=None):
        self.session_factory = session_factory
        self.catalog = catalog
        self.settings = settings
        self.redis = redis
        self.consecutive_failures = 0
        self.last_successful_sync: Optional[datetime] = None
        self.last_report: Optional[SyncReport] = None
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def status(self) -> dict:
        return {
            "enabled": self.catalog is not None,
            "running": self.running,
            "consecutive_failures": self.consecutive_failures,
            "last_successful_sync": self.last_successful_sync.isoformat() if self.last_successful_sync else None,
            "last_status": self.last_report.status if self.last_report else None,
        }

    async def run(self) -> SyncReport:
        """Run one sync unless another run holds the guard."""
        started = datetime.now(timezone.utc)
        if self._lock.locked():
            return self._skipped(started, "a sync run is already in progress in this process")

        async with self._lock:
            async with self._distributed_guard() as acquired:
                if not acquired:
                    return self._skipped(started, "a sync run is already in progress in another process")
                report = await self._run_once(started)

        self.last_report = report
        event_sync_runs.labels(status=report.status).inc()
        return report

    async def run_forever(self, interval_seconds: float) -> None:
        """Scheduler loop. Stops between runs once stop() is called."""
        logger.info("event_sync_scheduled", interval_seconds=interval_seconds)
        while not self._stop.is_set():
            try:
                await self.run()
            except Exception:
                # The loop outlives any single run
                self.consecutive_failures += 1
                event_sync_runs.labels(status="failed").inc()
                logger.exception("event_sync_crashed", consecutive_failures=self.consecutive_failures)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("event_sync_stopped")

    def stop(self) -> None:
        self._stop.set()

    def _skipped(self, started: datetime, reason: str) -> SyncReport:
        logger.warning("event_sync_skipped", reason=reason)
        event_sync_runs.labels(status="skipped").inc()
        return SyncReport(status="skipped", started_at=started, finished_at=started, error=reason)

    @asynccontextmanager
    async def _distributed_guard(self) -> AsyncIterator[bool]:
        if self.redis is None:
            yield True
            return

        lock = self.redis.lock(SYNC_LOCK_KEY, timeout=self.settings.SYNC_LOCK_TTL_SECONDS, blocking=False)
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.warning("event_sync_lock_unavailable", error=str(e))
            yield True
            return

        if not acquired:
            yield False
            return
        try:
            yield True
        finally:
            try:
                await lock.release()
            except (LockError, RedisError) as e:
                # Expired under a slow run, or Redis went away
                logger.warning("event_sync_lock_release_failed", error=str(e))

    async def _run_once(self, started: datetime) -> SyncReport:
        report = SyncReport(status="success", started_at=started)
        if self.catalog is None:
            report.status = "skipped"
            report.error = "EVENTS_API_URL is not configured"
            report.finished_at = datetime.now(timezone.utc)
            logger.warning("event_sync_not_configured")
            return report

        logger.info("event_sync_started")
        try:
            payload = await self.catalog.fetch()
        except CatalogFetchError as e:
            return self._failed(report, str(e))

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            return self._failed(report, "catalog response does not contain a data array")
        report.fetched = len(data)

        try:
            await self._upsert_all(data, report)
        except (SQLAlchemyError, OSError) as e:
            # OSError: asyncpg connect failures are not wrapped by SQLAlchemy
            logger.exception("event_sync_storage_error")
            return self._failed(report, f"storage error: {type(e).__name__}")

        report.finished_at = datetime.now(timezone.utc)
        self.consecutive_failures = 0
        self.last_successful_sync = report.finished_at
        events_synced.labels(outcome="upserted").inc(report.upserted)
        events_synced.labels(outcome="skipped").inc(report.skipped)
        events_synced.labels(outcome="failed").inc(report.failed)
        logger.info(
            "event_sync_completed",
            fetched=report.fetched,
            upserted=report.upserted,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report

    async def _upsert_all(self, data: list, report: SyncReport) -> None:
        async with self.session_factory() as db:
            department_ids = dict((await db.execute(select(Department.name, Department.id))).all())

            for raw in data:
                entry = parse_entry(raw)
                if entry is None:
                    report.skipped += 1
                    logger.error("catalog_entry_malformed", entry=repr(raw)[:200])
                    continue

                department_name = department_name_for(entry)
                if department_name is None:
                    report.skipped += 1
                    logger.error("catalog_department_unmapped", event_id=entry.id, department=entry.department_code)
                    continue

                department_id = department_ids.get(department_name)
                if department_id is None:
                    report.skipped += 1
                    logger.error("catalog_department_missing", event_id=entry.id, department=department_name)
                    continue

                statement = insert(Event).values(
                    id=entry.id,
                    name=entry.name,
                    department_id=department_id,
                    event_type=entry.event_type,
                    cost=cost_for(entry, self.settings),
                )
                statement = statement.on_conflict_do_update(
                    index_elements=[Event.id],
                    set_={
                        "name": statement.excluded.name,
                        "department_id": statement.excluded.department_id,
                        "event_type": statement.excluded.event_type,
                        "cost": statement.excluded.cost,
                        "updated_at": func.now(),
                    },
                )
                try:
                    async with db.begin_nested():
                        await db.execute(statement)
                except SQLAlchemyError as e:
                    report.failed += 1
                    logger.error("catalog_entry_upsert_failed", event_id=entry.id, name=entry.name, error=str(e))
                    continue

                report.upserted += 1
                logger.debug("catalog_entry_synced", event_id=entry.id, event_type=entry.event_type)

            await db.commit()

    def _failed(self, report: SyncReport, error: str) -> SyncReport:
        self.consecutive_failures += 1
        report.status = "failed"
        report.error = error
        report.finished_at = datetime.now(timezone.utc)
        since = (
            round((report.finished_at - self.last_successful_sync).total_seconds())
            if self.last_successful_sync
            else None
        )
        logger.error(
            "event_sync_failed",
            error=error,
            consecutive_failures=self.consecutive_failures,
            seconds_since_last_success=since,
        )
        return report
