# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic in-process tasks.

Uses APScheduler's AsyncIOScheduler to run coroutine functions on a fixed
interval inside the API process. The assessment activation sweep is the
default job.

Example:
    from src.infrastructure.background.scheduler import PeriodicScheduler

    scheduler = PeriodicScheduler()
    await scheduler.start()

    # Add interval job (runs every 60 seconds, first run now)
    scheduler.add_interval_task(
        name="Assessment Activation Sweep",
        func=activation_service.sweep,
        seconds=60,
        start_immediately=True,
    )

    await scheduler.stop()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from src.core.config.settings import Settings
    from src.domains.assessment.activation import ActivationService

logger = logging.getLogger(__name__)

TaskFunc = Callable[[], Awaitable[Any]]

ACTIVATION_TASK_NAME = "Assessment Activation Sweep"


@dataclass
class ScheduledTask:
    """Configuration and run statistics of a periodic task.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        func: Coroutine function run on each tick.
        interval_seconds: Seconds between runs.
        start_immediately: Run once as soon as the task is scheduled.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        last_result: Value returned by the last successful run.
        run_count: Total number of successful runs.
        error_count: Number of failed runs.
    """

    name: str
    func: TaskFunc
    interval_seconds: int
    start_immediately: bool = False
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    last_result: Any = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        last_result = self.last_result
        if hasattr(last_result, "to_dict"):
            last_result = last_result.to_dict()
        return {
            "id": self.id,
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": last_result,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class PeriodicScheduler:
    """Runs coroutine functions on fixed intervals.

    Features:
    - Interval-based scheduling with at most one run per task at a time
    - Job management (add, remove, enable, disable)
    - Statistics tracking
    - Cancellation of in-flight runs on stop

    Attributes:
        _scheduler: APScheduler instance.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
        _in_flight: asyncio tasks currently executing a run.
    """

    def __init__(self) -> None:
        """Initialize the scheduler."""
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False
        self._in_flight: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def add_interval_task(
        self,
        name: str,
        func: TaskFunc,
        seconds: int = 0,
        minutes: int = 0,
        hours: int = 0,
        enabled: bool = True,
        start_immediately: bool = False,
    ) -> ScheduledTask:
        """Add an interval-scheduled task.

        Tasks added before start() are scheduled when the scheduler starts.

        Args:
            name: Task name.
            func: Coroutine function to run.
            seconds: Interval seconds.
            minutes: Interval minutes.
            hours: Interval hours.
            enabled: Whether task is enabled.
            start_immediately: Run immediately on start.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the interval is not positive.
        """
        interval_seconds = seconds + minutes * 60 + hours * 3600
        if interval_seconds <= 0:
            raise ValueError("Interval must be positive")

        task = ScheduledTask(
            name=name,
            func=func,
            interval_seconds=interval_seconds,
            start_immediately=start_immediately,
            enabled=enabled,
        )
        self._tasks[task.id] = task

        if self._scheduler:
            self._schedule(task)

        logger.info("Added interval task: %s (every %ds)", name, interval_seconds)
        return task

    def _schedule(self, task: ScheduledTask) -> None:
        next_run = datetime.now(timezone.utc) if task.start_immediately else None

        self._scheduler.add_job(
            self._execute_task,
            trigger=IntervalTrigger(seconds=task.interval_seconds),
            args=[task.id],
            id=task.id,
            name=task.name,
            max_instances=1,
            coalesce=True,
            **({"next_run_time": next_run} if next_run else {}),
        )
        if not task.enabled:
            self._scheduler.pause_job(task.id)

    async def _execute_task(self, task_id: str) -> None:
        """Execute a scheduled task.

        Errors are counted and logged so one failing run does not stop
        later ticks.

        Args:
            task_id: ID of the task to execute.
        """
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        current = asyncio.current_task()
        if current is not None:
            self._in_flight.add(current)
        try:
            task.last_result = await task.func()
            task.last_run = datetime.now(timezone.utc)
            task.run_count += 1
        except asyncio.CancelledError:
            logger.info("Scheduled task %s cancelled", task.name)
            raise
        except Exception:
            task.error_count += 1
            logger.exception("Scheduled task %s failed", task.name)
        finally:
            if current is not None:
                self._in_flight.discard(current)

    def remove_task(self, task_id: str) -> bool:
        """Remove a scheduled task.

        Args:
            task_id: Task ID to remove.

        Returns:
            True if removed.
        """
        if task_id not in self._tasks:
            return False

        if self._scheduler:
            try:
                self._scheduler.remove_job(task_id)
            except JobLookupError:
                logger.debug("Job %s was not scheduled", task_id)

        del self._tasks[task_id]
        logger.info("Removed scheduled task: %s", task_id)
        return True

    def enable_task(self, task_id: str) -> bool:
        """Enable a scheduled task.

        Args:
            task_id: Task ID to enable.

        Returns:
            True if enabled.
        """
        task = self._tasks.get(task_id)
        if not task:
            return False

        task.enabled = True
        if self._scheduler:
            self._scheduler.resume_job(task_id)

        return True

    def disable_task(self, task_id: str) -> bool:
        """Disable a scheduled task.

        Args:
            task_id: Task ID to disable.

        Returns:
            True if disabled.
        """
        task = self._tasks.get(task_id)
        if not task:
            return False

        task.enabled = False
        if self._scheduler:
            self._scheduler.pause_job(task_id)

        return True

    def get_task(self, task_id: str) -> ScheduledTask | None:
        """Get a scheduled task by ID."""
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler and schedule tasks added so far."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        for task in self._tasks.values():
            self._schedule(task)
        self._scheduler.start()
        self._running = True

        logger.info("Periodic scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler and cancel runs still in progress."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        in_flight = list(self._in_flight)
        for running in in_flight:
            running.cancel()
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
        self._in_flight.clear()

        self._running = False
        logger.info("Periodic scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics.

        Returns:
            Statistics dictionary.
        """
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "enabled_count": sum(1 for t in self._tasks.values() if t.enabled),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


# Singleton instance
_scheduler: PeriodicScheduler | None = None


def get_scheduler() -> PeriodicScheduler:
    """Get the singleton scheduler instance.

    Returns:
        PeriodicScheduler instance.
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = PeriodicScheduler()
    return _scheduler


async def start_scheduler(
    settings: "Settings",
    activation_service: "ActivationService",
) -> PeriodicScheduler:
    """Start the scheduler and register the activation sweep.

    Args:
        settings: Application settings.
        activation_service: Service whose sweep runs on each tick.

    Returns:
        Started scheduler instance.
    """
    scheduler = get_scheduler()
    await scheduler.start()

    scheduler.add_interval_task(
        name=ACTIVATION_TASK_NAME,
        func=activation_service.sweep,
        seconds=settings.scheduler.activation_interval_seconds,
        start_immediately=True,
    )

    logger.info("Registered %d scheduled tasks", len(scheduler.list_tasks()))
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
