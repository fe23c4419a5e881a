"""
Automatic snapshot scheduling.

The scheduler handle is owned by whoever starts it (usually an editing
session). Starting replaces any running schedule; stopping cancels it if
present.
"""

import asyncio
import logging
from typing import Optional

from ..config import config
from .engine import BackupEngine


class AutoSnapshotter:
    """
    Runs BackupEngine.create_snapshot now and then every interval.
    """

    def __init__(self, engine: BackupEngine, interval_minutes: Optional[float] = None):
        """
        Initialize the scheduler.

        Args:
            engine: Engine taking the snapshots
            interval_minutes: Period between snapshots (defaults to config value)
        """
        self.engine = engine
        self.interval_minutes = interval_minutes or config.snapshot_interval_minutes
        self.cycles = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """
        Start snapshotting; must be called from a running event loop.

        A schedule that is already running is cancelled first.
        """
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logging.info(f"Automatic snapshots every {self.interval_minutes:g} minutes")

    def stop(self) -> None:
        """Cancel the schedule if one is running."""
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            self._task = None

    async def aclose(self) -> None:
        """Cancel the schedule and wait for the task to finish."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def run_cycle(self) -> Optional[str]:
        """
        Take one snapshot.

        Returns:
            The snapshot key, or None if the attempt failed
        """
        try:
            key = await self.engine.create_snapshot()
        except Exception as e:
            self.failures += 1
            logging.error(f"Auto-backup failed: {e}", exc_info=True)
            return None
        self.cycles += 1
        logging.info(f"Auto-backup created: {key}")
        return key

    async def _run(self) -> None:
        while True:
            await self.run_cycle()
            await asyncio.sleep(self.interval_seconds)
