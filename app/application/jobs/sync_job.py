# app/application/jobs/sync_job.py
from __future__ import annotations

import os
import time
import asyncio
import logging
import datetime as dt
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from app.application.sync_use_case import SyncProductsUseCase
from app.domain.models import SyncResult
from app.domain.ports import RunGuardPort

logger = logging.getLogger("suppadvisor.jobs.sync")

SYNC_AT = os.getenv("VADEMECUM_SYNC_AT", "03:00")           # daily, local time in SYNC_TZ
SYNC_TZ = os.getenv("TZ", "Europe/Istanbul")


def parse_hhmm(value: str) -> dt.time:
    try:
        hh, mm = value.strip().split(":", 1)
        return dt.time(int(hh), int(mm))
    except (ValueError, AttributeError) as e:
        raise ValueError(f"invalid VADEMECUM_SYNC_AT {value!r}, expected HH:MM") from e


def next_run_after(now: dt.datetime, at: dt.time) -> dt.datetime:
    """Next wall-clock occurrence of `at` strictly after `now` (tz-aware)."""
    candidate = now.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += dt.timedelta(days=1)
    return candidate


class VademecumSyncJob:
    """
    Daily trigger for the catalog sync.

    `run_once()` is the only way a sync starts (scheduler, admin endpoint,
    CLI) and holds the run guard for the whole run: a second call while one
    is in flight logs a warning and returns None without touching the vendor.
    """

    def __init__(
        self,
        use_case: SyncProductsUseCase,
        guard: RunGuardPort,
        at: str = SYNC_AT,
        tz: str = SYNC_TZ,
        now: Optional[Callable[[], dt.datetime]] = None,
    ):
        self.use_case = use_case
        self.guard = guard
        self.at = parse_hhmm(at)
        self.tz = ZoneInfo(tz)
        self._now = now or (lambda: dt.datetime.now(self.tz))
        self._task: Optional[asyncio.Task] = None

    @property
    def scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[SyncResult]:
        if not await self.guard.acquire():
            logger.warning("Vademecum sync job is already running, skipping this execution")
            return None

        started = time.monotonic()
        logger.info("Starting Vademecum product sync run")
        try:
            result = await self.use_case.sync_products_to_database()
        except Exception:
            logger.exception("Vademecum sync job error after %.2fs", time.monotonic() - started)
            raise
        finally:
            await self.guard.release()

        duration = time.monotonic() - started
        if result.success:
            logger.info("Vademecum sync completed successfully in %.2fs stats=%s", duration, result.stats.model_dump())
        else:
            logger.error(
                "Vademecum sync finished with failures in %.2fs stats=%s errors=%s",
                duration, result.stats.model_dump(), result.errors[:20],
            )
        return result

    async def _loop(self) -> None:
        while True:
            now = self._now()
            nxt = next_run_after(now, self.at)
            delay = (nxt - now).total_seconds()
            logger.info("Next Vademecum sync at %s (in %.0fs)", nxt.isoformat(), delay)
            await asyncio.sleep(delay)
            try:
                await self.run_once()
            except Exception:
                # already logged in run_once; the schedule keeps going
                pass

    def start(self) -> None:
        if self.scheduled:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="vademecum-sync-job")
        logger.info("Vademecum sync job scheduled: daily at %s (%s)", self.at.strftime("%H:%M"), self.tz.key)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Vademecum sync job stopped")
