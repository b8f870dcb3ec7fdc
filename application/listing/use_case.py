from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from application.common.contracts import ListingResult
from application.common.errors import store_failure_message
from application.common.interfaces import ObjectStore
from application.listing.engine import ListingEngine
from application.listing.formatting import format_file_size
from application.storage.paths import folder_prefix, normalize_path

logger = logging.getLogger(__name__)


@dataclass
class BrowseFolderUseCase:
    store: ObjectStore
    engine: ListingEngine
    signed_url_ttl: int = 300

    async def execute(self, path: str, *, recursive: bool = False) -> dict[str, Any]:
        prefix = folder_prefix(normalize_path(path, allow_root=True))

        with store_failure_message('Failed to retrieve folder contents.'):
            if recursive:
                listing = await self.engine.get_folder_contents(prefix)
            else:
                listing = await self.engine.list_all_contents(prefix)

        logger.info(
            f"Browsed {prefix or '/'} recursive={recursive}: "
            f"{len(listing.files)} files, {len(listing.folders)} folders"
        )
        return self._to_payload(listing)

    def _to_payload(self, listing: ListingResult) -> dict[str, Any]:
        # presign_get is local signing, no round trip per file
        files = [
            {
                'file': item.key,
                'size': item.size,
                'signed_url': self.store.presign_get(item.key, self.signed_url_ttl),
            }
            for item in listing.files
        ]
        total = listing.total_size
        return {
            'files': files,
            'folders': listing.folders,
            'total_size': format_file_size(total),
            'total_size_bytes': total,
            'truncated': listing.truncated,
        }
