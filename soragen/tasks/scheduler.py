"""Periodic driver for the admission, reconciliation and retention loops.

Each job is a named handler fired on its own interval. Tests skip ``start``
and call ``run_once`` instead, pairing it with an injected clock.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[], Awaitable[Any]]


@dataclass
class PeriodicJob:
    """A handler and the number of seconds between its runs."""

    name: str
    interval: float
    handler: Handler


class Scheduler:
    """Runs periodic jobs as independent asyncio loops."""

    def __init__(self, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self._jobs: dict[str, PeriodicJob] = {}
        self._loops: dict[str, asyncio.Task] = {}
        self._sleep = sleep

    def add(self, name: str, interval: float, handler: Handler) -> None:
        if interval <= 0:
            raise ValueError(f"Interval for {name} must be positive")
        if name in self._jobs:
            raise ValueError(f"Duplicate job name: {name}")
        self._jobs[name] = PeriodicJob(name=name, interval=interval, handler=handler)

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    @property
    def running(self) -> bool:
        return any(not loop.done() for loop in self._loops.values())

    async def run_once(self, name: str) -> Any:
        """Fire one tick of ``name`` and return the handler's result."""
        job = self._jobs.get(name)
        if job is None:
            raise KeyError(f"Unknown job: {name}")
        return await job.handler()

    def start(self) -> None:
        """Start one loop per job on the running event loop."""
        for job in self._jobs.values():
            if job.name in self._loops and not self._loops[job.name].done():
                continue
            self._loops[job.name] = asyncio.create_task(
                self._run(job), name=f"scheduler-{job.name}"
            )
        logger.info("Scheduler started: %s", ", ".join(self._jobs) or "no jobs")

    async def stop(self) -> None:
        loops = list(self._loops.values())
        for loop in loops:
            loop.cancel()
        await asyncio.gather(*loops, return_exceptions=True)
        self._loops.clear()

    async def _run(self, job: PeriodicJob) -> None:
        while True:
            await self._sleep(job.interval)
            try:
                await job.handler()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic job %s failed", job.name)
