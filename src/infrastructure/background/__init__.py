# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure.

Periodic jobs run inside the API process on an APScheduler AsyncIOScheduler.

Scheduler:
    from src.infrastructure.background import start_scheduler, stop_scheduler

    # Start scheduler with the activation sweep
    await start_scheduler(settings, activation_service)

    # Stop at shutdown
    await stop_scheduler()
"""

from src.infrastructure.background.scheduler import (
    ACTIVATION_TASK_NAME,
    PeriodicScheduler,
    ScheduledTask,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "ACTIVATION_TASK_NAME",
    "PeriodicScheduler",
    "ScheduledTask",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
