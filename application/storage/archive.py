from __future__ import annotations

import io
import logging
import zipfile
from typing import Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


def is_zip_upload(filename: str, data: bytes) -> bool:
    return filename.lower().endswith('.zip') and zipfile.is_zipfile(io.BytesIO(data))


def iter_zip_entries(data: bytes) -> Iterator[Tuple[str, Optional[bytes]]]:
    """
    Yield ``(name, content)`` for every non-directory entry of the archive.

    Entries whose name is absolute or climbs out of the archive yield
    ``None`` as content so the caller can report them as skipped.
    """
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            name = info.filename.replace('\\', '/')
            parts = [p for p in name.split('/') if p not in {'', '.'}]
            if name.startswith('/') or '..' in parts or not parts:
                logger.warning(f"Skipping unsafe archive entry {info.filename!r}")
                yield info.filename, None
                continue
            yield '/'.join(parts), archive.read(info)
