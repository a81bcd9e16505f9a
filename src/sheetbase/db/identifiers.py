"""SQL identifier derivation for provisioned tables and their columns.

Identifiers are lower-case ``[a-z0-9_]`` only, so they never need quoting and
cannot carry injected SQL. Table names embed a short hash of the raw target id,
which keeps them distinct even when two target ids sanitize to the same text.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata
from collections.abc import Iterable, Sequence

ROW_ID_COLUMN = "_row_id"
RESERVED_COLUMNS = frozenset({ROW_ID_COLUMN})
TABLE_HASH_LENGTH = 10

_INVALID_CHARS = re.compile(r"[^a-z0-9_]+")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


def sanitize_identifier(value: str, *, fallback: str = "column") -> str:
    """Fold ``value`` to ``[a-z0-9_]``; identifiers never start with a digit."""
    folded = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    text = _INVALID_CHARS.sub("_", folded.strip().lower())
    text = _REPEATED_UNDERSCORES.sub("_", text).strip("_")
    if not text:
        text = fallback
    if text[0].isdigit():
        text = f"c_{text}"
    return text


def target_hash(target_id: str) -> str:
    return hashlib.sha256(target_id.encode("utf-8")).hexdigest()[:TABLE_HASH_LENGTH]


def table_name_for(target_id: str, *, prefix: str = "dt_", max_length: int = 63) -> str:
    """Deterministic table name: ``<prefix><sanitized id>_<hash>``."""
    digest = target_hash(target_id)
    room = max_length - len(prefix) - len(digest) - 1
    if room < 1:
        raise ValueError(f"max_length {max_length} leaves no room for the target id with prefix {prefix!r}")
    body = sanitize_identifier(target_id, fallback="target")[:room].rstrip("_") or "t"
    return f"{prefix}{body}_{digest}"


def column_names_for(
    headers: Sequence[str],
    *,
    max_length: int = 63,
    reserved: Iterable[str] = RESERVED_COLUMNS,
) -> list[str]:
    """Sanitized column name per header; clashes get ``_2``, ``_3``... in header order."""
    taken = set(reserved)
    names: list[str] = []
    for header in headers:
        base = sanitize_identifier(header)[:max_length].rstrip("_") or "column"
        candidate = base
        n = 2
        while candidate in taken:
            suffix = f"_{n}"
            candidate = f"{base[: max_length - len(suffix)]}{suffix}"
            n += 1
        taken.add(candidate)
        names.append(candidate)
    return names


__all__ = [
    "RESERVED_COLUMNS",
    "ROW_ID_COLUMN",
    "column_names_for",
    "sanitize_identifier",
    "table_name_for",
    "target_hash",
]
