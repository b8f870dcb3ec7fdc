from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Optional

from application.common.contracts import ConversionJob, ConversionState, ConverterOptions
from application.common.errors import (
    ProcessExitError,
    ProcessStartupError,
    ValidationError,
    store_failure_message,
)
from application.common.interfaces import ObjectStore
from application.conversion.runner import ConversionRunner
from application.storage.content_types import determine_content_type
from application.storage.paths import join_key, normalize_path, safe_segment
from application.storage.use_case import IncomingFile

logger = logging.getLogger(__name__)

POINT_CLOUD_SUFFIXES = {'.las', '.laz'}


def build_conversion_job(
    options: ConverterOptions,
    *,
    job_id: str,
    input_path: Path,
    output_path: Path,
    page_name: Optional[str] = None,
) -> ConversionJob:
    page = safe_segment(page_name or input_path.stem)
    return ConversionJob(
        job_id=job_id,
        input_path=str(input_path),
        output_path=str(output_path),
        executable_path=options.executable_path,
        arguments=[str(input_path), '-o', str(output_path), '--generate-page', page],
    )


@dataclass
class ConvertUploadUseCase:
    runner: ConversionRunner
    options: ConverterOptions
    store: Optional[ObjectStore] = None

    async def execute(
        self,
        upload: Optional[IncomingFile],
        *,
        page_name: Optional[str] = None,
        output_prefix: Optional[str] = None,
    ) -> dict[str, Any]:
        if upload is None or not upload.data:
            raise ValidationError('Conversion request without a point cloud', public_message='No file uploaded.')

        filename = PurePosixPath(upload.filename.replace('\\', '/')).name
        if PurePosixPath(filename).suffix.lower() not in POINT_CLOUD_SUFFIXES:
            raise ValidationError(
                f'Unsupported point cloud {upload.filename!r}',
                public_message='Only .las and .laz files can be converted.',
            )

        prefix = normalize_path(output_prefix) if output_prefix else None
        if prefix is not None and self.store is None:
            raise ValidationError('No object store configured for outputs', public_message='Output upload unavailable.')

        job_id = uuid.uuid4().hex
        work_dir = self.options.work_dir / job_id
        input_path = work_dir / 'input' / filename
        output_path = work_dir / 'output'
        job = build_conversion_job(
            self.options, job_id=job_id, input_path=input_path, output_path=output_path, page_name=page_name,
        )

        keep_output = False
        try:
            await asyncio.to_thread(self._prepare, input_path, output_path, upload.data)
            result = await self.runner.run(job)

            if result.state is ConversionState.STARTUP_ERROR:
                raise ProcessStartupError(f'Job {job_id}: could not launch {self.options.executable_path}')
            if result.state is not ConversionState.SUCCEEDED:
                raise ProcessExitError(f'Job {job_id} exited with code {result.exit_code}', exit_code=result.exit_code)

            uploaded = 0
            location = str(output_path)
            if prefix is not None:
                with store_failure_message('Failed to upload converted files.'):
                    uploaded = await self._publish(output_path, prefix)
                location = prefix
            else:
                keep_output = True
        finally:
            # the work dir survives only as the local result of a successful job
            if not keep_output:
                await asyncio.to_thread(shutil.rmtree, work_dir, True)

        return {
            'message': 'Conversion completed successfully.',
            'job_id': job_id,
            'output_path': location,
            'uploaded': uploaded,
        }

    @staticmethod
    def _prepare(input_path: Path, output_path: Path, data: bytes) -> None:
        input_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.mkdir(parents=True, exist_ok=True)
        input_path.write_bytes(data)

    async def _publish(self, output_path: Path, prefix: str) -> int:
        count = 0
        for local in sorted(p for p in output_path.rglob('*') if p.is_file()):
            key = join_key(prefix, local.relative_to(output_path).as_posix())
            await asyncio.to_thread(
                self.store.upload_file, key, str(local), content_type=determine_content_type(local.name),
            )
            count += 1
        logger.info(f"Published {count} converted files under {prefix}/")
        return count
