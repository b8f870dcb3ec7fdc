from __future__ import annotations

import re
import unicodedata

from application.common.errors import ValidationError

_ALLOWED = re.compile(r"[^a-zA-Z0-9._-]+")


def normalize_path(path: str, *, allow_root: bool = False) -> str:
    """Strip surrounding slashes, collapse empty and '.' segments, refuse '..'."""
    parts = [p for p in (path or '').strip().split('/') if p not in {'', '.'}]
    if any(p == '..' for p in parts):
        raise ValidationError(f'Path escapes its root: {path!r}', public_message='Invalid path.')
    if not parts and not allow_root:
        raise ValidationError('Empty path', public_message='A path is required.')
    return '/'.join(parts)


def folder_prefix(path: str) -> str:
    """'a/b' -> 'a/b/', '' -> '' (bucket root)."""
    return f"{path}/" if path else ''


def join_key(prefix: str, name: str) -> str:
    prefix = prefix.rstrip('/')
    return f"{prefix}/{name}" if prefix else name


def safe_segment(s: str) -> str:
    s = unicodedata.normalize('NFKC', s).strip()
    s = _ALLOWED.sub('_', s)
    return s.strip('_') or 'na'
