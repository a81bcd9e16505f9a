from sheetbase.io.blob import BlobStore, FilesystemBlobStore, StoredBlob
from sheetbase.io.workbook import SpreadsheetReader, SpreadsheetWriter

__all__ = ["BlobStore", "FilesystemBlobStore", "SpreadsheetReader", "SpreadsheetWriter", "StoredBlob"]
