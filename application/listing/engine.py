from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from application.common.contracts import ListingResult, StorageFile
from application.common.interfaces import ObjectStore

logger = logging.getLogger(__name__)

DELIMITER = '/'


@dataclass
class ListingEngine:
    store: ObjectStore
    max_depth: int = 32
    max_prefixes: int = 10_000

    async def list_all_contents(self, prefix: str) -> ListingResult:
        """
        List one level under ``prefix``, following continuation tokens
        until the store reports no further pages.

        The placeholder object of the prefix itself is not reported as a file.
        """
        files: dict[str, StorageFile] = {}
        folders: dict[str, None] = {}
        token: Optional[str] = None
        pages = 0

        while True:
            page = await asyncio.to_thread(
                self.store.list_page,
                prefix,
                delimiter=DELIMITER,
                continuation_token=token,
            )
            pages += 1

            for item in page.files:
                if item.key != prefix:
                    files.setdefault(item.key, item)
            for folder in page.folders:
                if folder != prefix:
                    folders.setdefault(folder, None)

            token = page.next_token
            if not token:
                break

        logger.debug(f"Listed {prefix!r}: {len(files)} files, {len(folders)} folders in {pages} page(s)")
        return ListingResult(files=list(files.values()), folders=list(folders))

    async def get_folder_contents(self, folder_path: str) -> ListingResult:
        """
        Expand ``folder_path`` and every sub-prefix below it.

        Descent is breadth-first over an explicit queue. A prefix is listed at
        most once. Folders beyond ``max_depth`` levels, or found after
        ``max_prefixes`` listings, are reported without being expanded and the
        result is marked truncated.
        """
        files: dict[str, StorageFile] = {}
        folders: dict[str, None] = {}
        visited: set[str] = set()
        pending: deque[tuple[str, int]] = deque([(folder_path, 0)])
        truncated = False

        while pending:
            prefix, depth = pending.popleft()
            if prefix in visited:
                continue
            if len(visited) >= self.max_prefixes:
                truncated = True
                break
            visited.add(prefix)

            level = await self.list_all_contents(prefix)

            for item in level.files:
                files.setdefault(item.key, item)

            for folder in level.folders:
                if folder in folders or folder in visited:
                    continue
                folders[folder] = None
                if depth + 1 > self.max_depth:
                    truncated = True
                    continue
                pending.append((folder, depth + 1))

        if truncated:
            logger.warning(
                f"Listing of {folder_path!r} truncated after {len(visited)} prefixes "
                f"(max_depth={self.max_depth}, max_prefixes={self.max_prefixes})"
            )

        return ListingResult(files=list(files.values()), folders=list(folders), truncated=truncated)
