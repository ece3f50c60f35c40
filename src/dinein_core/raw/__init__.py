"""Raw (Bronze) layer: CSV decoding and the blob store collaborator."""

from dinein_core.raw.blob_store import BlobStore, StoredFile, UploadResult
from dinein_core.raw.csv_reader import parse_csv_text, read_csv_rows

__all__ = [
    "BlobStore",
    "StoredFile",
    "UploadResult",
    "parse_csv_text",
    "read_csv_rows",
]
