from __future__ import annotations

import asyncio
import logging
from typing import Optional

from application.common.contracts import ConversionJob, ConversionResult, ConversionState
from application.common.errors import ConversionRejected, ProcessStartupError
from application.common.interfaces import ProcessLauncher

logger = logging.getLogger(__name__)


class ConversionTracker:
    """
    Lifecycle of a single job.

    IDLE -> RUNNING -> SUCCEEDED | FAILED
    IDLE -> STARTUP_ERROR

    The first terminal transition wins; later ones are ignored so a job can
    never be reported twice.
    """

    def __init__(self, job: ConversionJob):
        self.job = job
        self.state = ConversionState.IDLE
        self.exit_code: Optional[int] = None

    def mark_running(self) -> None:
        if self.state is not ConversionState.IDLE:
            raise RuntimeError(f"Job {self.job.job_id} cannot start from {self.state.value}")
        self.state = ConversionState.RUNNING

    def finish(self, state: ConversionState, exit_code: Optional[int] = None) -> bool:
        if not state.terminal:
            raise ValueError(f"{state.value} is not a terminal state")
        if self.state.terminal:
            logger.warning(
                f"Job {self.job.job_id} already {self.state.value}, ignoring {state.value}"
            )
            return False

        expected = ConversionState.IDLE if state is ConversionState.STARTUP_ERROR else ConversionState.RUNNING
        if self.state is not expected:
            raise RuntimeError(f"Job {self.job.job_id} cannot go from {self.state.value} to {state.value}")

        self.state = state
        self.exit_code = exit_code
        return True

    def result(self) -> ConversionResult:
        return ConversionResult(
            job_id=self.job.job_id,
            state=self.state,
            exit_code=self.exit_code,
            output_path=self.job.output_path,
        )


class ConversionRunner:
    """
    Runs conversion jobs with at most ``max_concurrent`` child processes.

    Up to ``max_pending`` further jobs wait for a slot; anything beyond that
    is rejected with ConversionRejected before a process is spawned.
    """

    def __init__(self, launcher: ProcessLauncher, *, max_concurrent: int = 2, max_pending: int = 4):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.launcher = launcher
        self.max_concurrent = max_concurrent
        self.max_pending = max_pending
        self._slots = asyncio.Semaphore(max_concurrent)
        self._admitted = 0

    @property
    def admitted(self) -> int:
        return self._admitted

    async def run(self, job: ConversionJob) -> ConversionResult:
        if self._admitted >= self.max_concurrent + self.max_pending:
            raise ConversionRejected(
                f"Rejected job {job.job_id}: {self._admitted} jobs admitted "
                f"(max_concurrent={self.max_concurrent}, max_pending={self.max_pending})"
            )

        self._admitted += 1
        try:
            async with self._slots:
                return await self._execute(job)
        finally:
            self._admitted -= 1

    async def _execute(self, job: ConversionJob) -> ConversionResult:
        tracker = ConversionTracker(job)

        logger.info(f"Starting conversion {job.job_id}: {' '.join(job.command)}")
        try:
            process = await self.launcher.start(job)
        except ProcessStartupError as err:
            logger.error(f"Failed to start conversion process for {job.job_id}: {err}")
            tracker.finish(ConversionState.STARTUP_ERROR)
            return tracker.result()

        tracker.mark_running()
        try:
            exit_code = await process.wait()
        except Exception:
            logger.exception(f"Lost track of conversion process {job.job_id}")
            tracker.finish(ConversionState.FAILED)
            return tracker.result()

        logger.info(f"Conversion process {job.job_id} exited with code {exit_code}")
        state = ConversionState.SUCCEEDED if exit_code == 0 else ConversionState.FAILED
        tracker.finish(state, exit_code)
        return tracker.result()
