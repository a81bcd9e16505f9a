"""Blob storage for uploaded spreadsheets."""

from __future__ import annotations

import hashlib
import json
import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from sheetbase.exceptions import NotFoundError, StorageError, UploadRejectedError

CHUNK_SIZE = 1024 * 1024
_REF_PATTERN = re.compile(r"^[0-9a-f]{32}$")


@dataclass(slots=True)
class StoredBlob:
    """Metadata describing an uploaded file held by a blob store."""

    ref: str
    filename: str
    sha256: str
    byte_size: int
    stored_at: str


class BlobStore(ABC):
    """Resolves uploaded file references to bytes."""

    @abstractmethod
    def put(self, filename: str, stream: BinaryIO) -> StoredBlob:
        """Persist ``stream`` and return its descriptor."""

    @abstractmethod
    def open(self, ref: str) -> BinaryIO:
        """Open the blob for reading; raises :class:`NotFoundError` if unknown."""

    @abstractmethod
    def describe(self, ref: str) -> StoredBlob:
        """Return metadata for ``ref``."""

    @abstractmethod
    def delete(self, ref: str) -> None:
        """Remove the blob if it exists."""

    def exists(self, ref: str) -> bool:
        try:
            self.describe(ref)
        except NotFoundError:
            return False
        return True


def check_upload_name(filename: str, allowed_extensions: Sequence[str]) -> str:
    """Return the lower-cased suffix of ``filename`` if uploads of that type are allowed."""
    name = Path(filename or "").name
    if not name:
        raise UploadRejectedError("Upload has no filename")
    suffix = Path(name).suffix.lower()
    if suffix not in {ext.lower() for ext in allowed_extensions}:
        allowed = ", ".join(sorted(allowed_extensions))
        raise UploadRejectedError(f"File type '{suffix or name}' is not supported (allowed: {allowed})")
    return suffix


class FilesystemBlobStore(BlobStore):
    """Store blobs as ``<root>/<ref><suffix>`` with a JSON sidecar for metadata."""

    def __init__(
        self,
        root: Path,
        *,
        max_bytes: int | None = None,
        allowed_extensions: Sequence[str] = (".xlsx", ".xlsm", ".csv"),
    ) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.allowed_extensions = tuple(allowed_extensions)

    def _meta_path(self, ref: str) -> Path:
        if not _REF_PATTERN.match(ref):
            raise NotFoundError(f"Unknown upload reference '{ref}'")
        return self.root / f"{ref}.json"

    def put(self, filename: str, stream: BinaryIO) -> StoredBlob:
        suffix = check_upload_name(filename, self.allowed_extensions)
        ref = uuid.uuid4().hex
        target = self.root / f"{ref}{suffix}"
        partial = target.with_name(f"{target.name}.part")
        digest = hashlib.sha256()
        size = 0

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with partial.open("wb") as handle:
                while chunk := stream.read(CHUNK_SIZE):
                    size += len(chunk)
                    if self.max_bytes is not None and size > self.max_bytes:
                        raise UploadRejectedError(
                            f"{Path(filename).name} exceeds the maximum upload size of {self.max_bytes} bytes"
                        )
                    digest.update(chunk)
                    handle.write(chunk)
            partial.replace(target)
        except UploadRejectedError:
            partial.unlink(missing_ok=True)
            raise
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise StorageError(f"Failed to store upload {filename}: {exc}") from exc

        blob = StoredBlob(
            ref=ref,
            filename=Path(filename).name,
            sha256=digest.hexdigest(),
            byte_size=size,
            stored_at=datetime.now(timezone.utc).isoformat(),
        )
        self._meta_path(ref).write_text(json.dumps(asdict(blob)), encoding="utf-8")
        return blob

    def describe(self, ref: str) -> StoredBlob:
        meta = self._meta_path(ref)
        try:
            return StoredBlob(**json.loads(meta.read_text(encoding="utf-8")))
        except FileNotFoundError as exc:
            raise NotFoundError(f"Unknown upload reference '{ref}'") from exc

    def open(self, ref: str) -> BinaryIO:
        blob = self.describe(ref)
        path = self.root / f"{ref}{Path(blob.filename).suffix.lower()}"
        try:
            return path.open("rb")
        except FileNotFoundError as exc:
            raise NotFoundError(f"Upload '{ref}' has no stored content") from exc

    def delete(self, ref: str) -> None:
        meta = self._meta_path(ref)
        if not meta.exists():
            return
        blob = self.describe(ref)
        (self.root / f"{ref}{Path(blob.filename).suffix.lower()}").unlink(missing_ok=True)
        meta.unlink(missing_ok=True)


__all__ = ["BlobStore", "FilesystemBlobStore", "StoredBlob", "check_upload_name"]
