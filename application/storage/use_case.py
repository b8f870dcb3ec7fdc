from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Optional, Sequence

from application.common.contracts import UploadOutcome, UploadStatus
from application.common.errors import NotFoundError, StoreError, ValidationError, store_failure_message
from application.common.interfaces import ObjectStore
from application.storage.archive import is_zip_upload, iter_zip_entries
from application.storage.content_types import determine_content_type
from application.storage.paths import folder_prefix, join_key, normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    data: bytes


@dataclass
class FolderUseCase:
    store: ObjectStore

    async def create(self, path: str) -> dict[str, Any]:
        folder = normalize_path(path)
        with store_failure_message('Failed to create folder.'):
            await asyncio.to_thread(self.store.put_object, folder_prefix(folder), b'')
        logger.info(f"Created folder placeholder {folder_prefix(folder)}")
        return {'message': f'Folder "{folder}" created.'}

    async def delete(self, path: str) -> dict[str, Any]:
        folder = normalize_path(path)
        prefix = folder_prefix(folder)

        with store_failure_message('Failed to delete folder and its contents.'):
            keys = await self._collect_keys(prefix)
            if not keys:
                raise NotFoundError(f'Nothing under {prefix}', public_message='Folder is empty or does not exist.')
            deleted = await asyncio.to_thread(self.store.delete_objects, keys)
        logger.info(f"Deleted {deleted} objects under {prefix}")
        return {
            'message': f'Folder "{folder}" and its contents have been deleted.',
            'deleted': deleted,
        }

    async def _collect_keys(self, prefix: str) -> list[str]:
        keys: list[str] = []
        token: Optional[str] = None
        while True:
            page = await asyncio.to_thread(
                self.store.list_page, prefix, delimiter=None, continuation_token=token,
            )
            keys.extend(f.key for f in page.files)
            token = page.next_token
            if not token:
                return keys


def _basename(filename: str) -> str:
    """Last path segment of a client-supplied filename, either separator."""
    name = PurePosixPath(filename.replace('\\', '/')).name
    if not name or name == '..':
        raise ValidationError(f'Unusable filename {filename!r}', public_message='Uploaded file has no name.')
    return name


@dataclass
class FileUseCase:
    store: ObjectStore
    signed_url_ttl: int = 300
    max_files: int = 10

    async def upload(self, path: str, files: Sequence[IncomingFile]) -> dict[str, Any]:
        target = normalize_path(path, allow_root=True)
        if not files:
            raise ValidationError('No files in request', public_message='No file uploaded.')
        if len(files) > self.max_files:
            raise ValidationError(
                f'{len(files)} files exceed the limit of {self.max_files}',
                public_message=f'At most {self.max_files} files per request.',
            )

        outcomes: list[UploadOutcome] = []
        for incoming in files:
            if not incoming.filename:
                raise ValidationError('Upload without a filename', public_message='Uploaded file has no name.')
            if is_zip_upload(incoming.filename, incoming.data):
                for name, content in iter_zip_entries(incoming.data):
                    key = join_key(target, name)
                    if content is None:
                        outcomes.append(UploadOutcome(
                            key=key, content_type=determine_content_type(name), status=UploadStatus.SKIPPED,
                        ))
                        continue
                    outcomes.append(await self._put(key, name, content))
            else:
                name = _basename(incoming.filename)
                outcomes.append(await self._put(join_key(target, name), name, incoming.data))

        uploaded = sum(1 for o in outcomes if o.status is UploadStatus.UPLOADED)
        if uploaded == 0 and any(o.status is UploadStatus.FAILED for o in outcomes):
            raise StoreError(f'All uploads to {target or "/"} failed', public_message='Failed to upload file.')

        return {
            'message': f'{uploaded} file(s) uploaded to "{target or "/"}".',
            'uploaded': uploaded,
            'files': [o.model_dump(mode='json') for o in outcomes],
        }

    async def _put(self, key: str, name: str, data: bytes) -> UploadOutcome:
        content_type = determine_content_type(name)
        try:
            await asyncio.to_thread(self.store.put_object, key, data, content_type=content_type)
        except StoreError as err:
            logger.error(f"Upload of {key} failed: {err}", exc_info=True)
            return UploadOutcome(key=key, content_type=content_type, status=UploadStatus.FAILED, size=len(data))
        logger.info(f"Uploaded {key} ({len(data)} bytes, {content_type})")
        return UploadOutcome(key=key, content_type=content_type, status=UploadStatus.UPLOADED, size=len(data))

    async def signed_url(self, path: str) -> dict[str, Any]:
        key = normalize_path(path)
        with store_failure_message('Failed to retrieve file.'):
            size = await asyncio.to_thread(self.store.head_object, key)
            if size is None:
                raise NotFoundError(f'No object {key}', public_message='File not found.')
            url = self.store.presign_get(key, self.signed_url_ttl)
        return {'url': url, 'size': size}

    async def delete(self, path: str) -> dict[str, Any]:
        key = normalize_path(path)
        with store_failure_message('Failed to delete file.'):
            await asyncio.to_thread(self.store.delete_object, key)
        logger.info(f"Deleted {key}")
        return {'message': f'File "{key}" deleted successfully.'}
