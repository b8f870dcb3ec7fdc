from __future__ import annotations

import asyncio
import logging
import re
from contextlib import suppress
from typing import Optional

from application.common.contracts import ConversionJob
from application.common.errors import ProcessStartupError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
MAX_LINE_LENGTH = 8 * 1024

# progress bars redraw with a bare carriage return
_LINE_BREAK = re.compile(rb'\r\n|\r|\n')


class StreamedProcess:
    """A spawned converter whose stdout/stderr are forwarded to the log line by line.

    Output is read in fixed-size chunks, so an endless line never stalls or
    breaks the reader; anything longer than ``MAX_LINE_LENGTH`` is logged in
    pieces.
    """

    def __init__(self, job_id: str, process: asyncio.subprocess.Process):
        self.job_id = job_id
        self.process = process
        self.pid: Optional[int] = process.pid

    def _emit(self, level: int, name: str, raw: bytes) -> None:
        text = raw.decode(errors='replace').rstrip()
        if text:
            logger.log(level, f"[{self.job_id}] {name}: {text}")

    async def _pump(self, stream: Optional[asyncio.StreamReader], level: int, name: str) -> None:
        if stream is None:
            return
        pending = b''
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                break
            *lines, pending = _LINE_BREAK.split(pending + chunk)
            for line in lines:
                self._emit(level, name, line)
            while len(pending) > MAX_LINE_LENGTH:
                self._emit(level, name, pending[:MAX_LINE_LENGTH])
                pending = pending[MAX_LINE_LENGTH:]
        self._emit(level, name, pending)

    async def wait(self) -> int:
        try:
            await asyncio.gather(
                self._pump(self.process.stdout, logging.INFO, 'stdout'),
                self._pump(self.process.stderr, logging.WARNING, 'stderr'),
            )
        except BaseException:
            if self.process.returncode is None:
                logger.warning(f"[{self.job_id}] output reader failed, killing pid {self.pid}")
                with suppress(ProcessLookupError):
                    self.process.kill()
            await self.process.wait()
            raise
        return await self.process.wait()


class SubprocessLauncher:
    async def start(self, job: ConversionJob) -> StreamedProcess:
        try:
            process = await asyncio.create_subprocess_exec(
                *job.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessStartupError(f"{job.executable_path}: {e}") from e

        logger.info(f"Spawned conversion {job.job_id} as pid {process.pid}")
        return StreamedProcess(job.job_id, process)
