import hashlib
import io
from pathlib import Path

import pytest

from sheetbase.exceptions import NotFoundError, UploadRejectedError
from sheetbase.io.blob import FilesystemBlobStore


def test_put_open_and_describe(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path / "blobs")
    payload = b"a,b\n1,2\n"

    blob = store.put("people.CSV", io.BytesIO(payload))

    assert blob.filename == "people.CSV"
    assert blob.byte_size == len(payload)
    assert blob.sha256 == hashlib.sha256(payload).hexdigest()
    assert store.exists(blob.ref)
    assert store.describe(blob.ref) == blob
    with store.open(blob.ref) as handle:
        assert handle.read() == payload


def test_rejects_unsupported_extension(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path)

    with pytest.raises(UploadRejectedError):
        store.put("notes.txt", io.BytesIO(b"x"))


def test_rejects_oversized_upload_without_leaving_files(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path / "blobs", max_bytes=4)

    with pytest.raises(UploadRejectedError):
        store.put("big.csv", io.BytesIO(b"0123456789"))

    assert list((tmp_path / "blobs").iterdir()) == []


def test_unknown_and_malformed_refs(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path)

    assert not store.exists("0" * 32)
    with pytest.raises(NotFoundError):
        store.open("../../etc/passwd")


def test_delete(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path)
    blob = store.put("a.csv", io.BytesIO(b"a\n1\n"))

    store.delete(blob.ref)
    store.delete(blob.ref)

    assert not store.exists(blob.ref)
    assert list(tmp_path.iterdir()) == []
