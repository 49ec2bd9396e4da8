"""Sync scheduler — runs the sync engine on a fixed interval."""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from contentsync.sync.errors import SyncInProgressError

if TYPE_CHECKING:
    from contentsync.sync.engine import SyncEngine

log = structlog.get_logger(__name__)


class SyncScheduler:
    """Schedules periodic sync runs with support for a manual trigger.

    Runs happen inside a single loop task, so one tick never starts while the
    previous run is still going; a tick that finds the engine busy with a run
    started elsewhere is skipped.
    """

    def __init__(
        self,
        engine: SyncEngine,
        interval_minutes: int = 24 * 60,
        *,
        run_on_start: bool = False,
    ) -> None:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self._engine = engine
        self._interval = interval_minutes * 60  # seconds
        self._run_on_start = run_on_start
        self._stop_event = asyncio.Event()
        self._trigger_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._in_run = False
        self._last_sync_at: datetime | None = None
        self._next_sync_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_run(self) -> bool:
        return self._in_run

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop())
        log.info("scheduler_started", interval_minutes=self._interval // 60)

    async def stop(self, *, cancel: bool = False) -> None:
        """Stop the scheduler.

        An in-progress sync is allowed to finish unless *cancel* is set, in
        which case it is cancelled and recorded as such by the engine.
        """
        if not self.is_running:
            return
        self._stop_event.set()
        self._trigger_event.set()  # wake up if sleeping
        if self._task:
            if cancel:
                self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        log.info("scheduler_stopped")

    def trigger_now(self) -> None:
        """Trigger an immediate sync."""
        self._trigger_event.set()

    def get_status(self) -> dict:
        return {
            "running": self.is_running,
            "in_run": self._in_run,
            "interval_minutes": self._interval // 60,
            "last_sync_at": self._last_sync_at.isoformat() if self._last_sync_at else None,
            "next_sync_at": self._next_sync_at.isoformat() if self._next_sync_at else None,
        }

    async def _loop(self) -> None:
        first_run = self._run_on_start
        while not self._stop_event.is_set():
            if first_run:
                first_run = False
                self._next_sync_at = datetime.now(UTC).replace(microsecond=0)
            else:
                self._next_sync_at = datetime.now(UTC).replace(microsecond=0) + timedelta(seconds=self._interval)

                # Interruptible sleep
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(
                        self._wait_for_trigger_or_stop(),
                        timeout=self._interval,
                    )

            if self._stop_event.is_set():
                break

            self._trigger_event.clear()
            await self._tick()

    async def _tick(self) -> None:
        if self._engine.is_syncing:
            log.warning("sync_skipped_overlap")
            return

        self._in_run = True
        try:
            await self._engine.run_sync()
            self._last_sync_at = datetime.now(UTC)
        except SyncInProgressError:
            log.warning("sync_skipped_overlap")
        except Exception as exc:
            log.error("scheduled_sync_failed", error=str(exc))
        finally:
            self._in_run = False

    async def _wait_for_trigger_or_stop(self) -> None:
        """Wait until either trigger or stop event is set."""
        trigger_task = asyncio.create_task(self._trigger_event.wait())
        stop_task = asyncio.create_task(self._stop_event.wait())
        try:
            await asyncio.wait(
                {trigger_task, stop_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for t in (trigger_task, stop_task):
                if not t.done():
                    t.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await t
