"""Raw (Bronze) layer: blob store client for uploaded CSV exports.

The store is an opaque HTTP blob service:

- ``GET <base_url>`` lists blobs as ``{"blobs": [{"pathname", "url", "size", "uploadedAt"}]}``
- ``PUT <base_url>/<pathname>`` stores the request body and answers ``{"url": ...}``
- ``GET <blob url>`` downloads a stored file

Listing never raises: network, HTTP and payload errors are logged and turn
into an empty list, and entries that are not objects are skipped. Uploads
report failure through ``UploadResult``. Downloads raise ``StorageError``
since the caller cannot continue without the file.

Environment:
    DINEIN_BLOB_URL: Root URL of the store (required)
    DINEIN_BLOB_TOKEN: Bearer token (optional)
    DINEIN_BLOB_TIMEOUT=60   # seconds
    DINEIN_BLOB_RETRIES=3
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any
from urllib.parse import quote

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from dinein_core.config import DEFAULT_RETRIES, DEFAULT_TIMEOUT, BlobStoreConfig
from dinein_core.exceptions import StorageError

logger = logging.getLogger(__name__)

CSV_SUFFIX = ".csv"


@dataclass(frozen=True)
class StoredFile:
    filename: str
    url: str
    size: int
    uploaded_at: str


@dataclass(frozen=True)
class UploadResult:
    """Outcome of an upload; ``error`` is set when ``success`` is False."""

    success: bool
    filename: str
    url: str | None = None
    uploaded_at: str | None = None
    error: str | None = None


def make_session(
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    token: str | None = None,
) -> requests.Session:
    """Create a requests Session with retry logic and default timeout.

    Configures the session with:
    - Retry adapter for HTTP/HTTPS with exponential backoff
    - Retries on 429, 500, 502, 503, 504 status codes
    - Default timeout for all requests
    - Bearer authorization when a token is given

    Args:
        timeout: Default timeout in seconds for all requests.
        retries: Number of retry attempts.
        token: Optional bearer token.

    Returns:
        Configured requests.Session object.
    """
    s = requests.Session()
    if token:
        s.headers.update({"Authorization": f"Bearer {token}"})
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=0.8,  # 0.8, 1.6, 3.2, ...
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "PUT", "HEAD", "OPTIONS"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    # Default timeouts via a wrapper
    orig_request = s.request

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


def ensure_ok(resp: requests.Response, msg: str) -> None:
    """Raise StorageError unless the response status is 2xx."""
    if not (200 <= resp.status_code < 300):
        raise StorageError(f"{msg}. HTTP {resp.status_code}: {resp.text[:400]}")


def dated_filename(filename: str, today: date | None = None) -> str:
    """Prefix a filename with the upload date.

    Examples:
        >>> dated_filename("orders.csv", date(2024, 1, 6))
        '2024-01-06_orders.csv'
    """
    today = today or datetime.now(timezone.utc).date()
    return f"{today.isoformat()}_{filename}"


class BlobStore:
    """Thin client over the blob store HTTP API."""

    def __init__(self, config: BlobStoreConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session or make_session(config.timeout, config.retries, config.token)

    @classmethod
    def from_env(cls) -> BlobStore:
        return cls(BlobStoreConfig.from_env())

    def list_files(self) -> list[StoredFile]:
        """List stored CSV files, newest first. Returns [] on any failure."""
        try:
            resp = self.session.get(self.config.base_url)
            ensure_ok(resp, "Blob listing failed")
            blobs = resp.json()["blobs"]
            files = [
                StoredFile(
                    filename=str(b["pathname"]),
                    url=str(b["url"]),
                    size=int(b.get("size") or 0),
                    uploaded_at=str(b.get("uploadedAt") or ""),
                )
                for b in blobs
                if isinstance(b, dict) and str(b.get("pathname", "")).endswith(CSV_SUFFIX)
            ]
        except (requests.RequestException, StorageError, ValueError, KeyError, TypeError) as e:
            logger.error("Could not list stored files: %s", e)
            return []

        # Unparseable timestamps sort last
        uploaded = pd.Series([f.uploaded_at for f in files], dtype=object)
        stamps = pd.to_datetime(uploaded, format="ISO8601", errors="coerce", utc=True)
        order = stamps.sort_values(ascending=False, na_position="last", kind="mergesort").index
        files = [files[i] for i in order]
        logger.info("Found %d stored CSV file(s)", len(files))
        return files

    def upload(self, filename: str, data: bytes, today: date | None = None) -> UploadResult:
        """Store ``data`` as ``<YYYY-MM-DD>_<filename>`` with public access."""
        pathname = dated_filename(filename, today)
        url = f"{self.config.base_url}/{quote(pathname)}"
        headers = {
            "x-access": "public",
            "x-add-random-suffix": "0",
            "content-type": "text/csv",
        }
        try:
            resp = self.session.put(url, data=data, headers=headers)
            ensure_ok(resp, f"Upload of {pathname} failed")
            stored_url = str(resp.json()["url"])
        except (requests.RequestException, StorageError, ValueError, KeyError, TypeError) as e:
            logger.error("Upload of %s failed: %s", pathname, e)
            return UploadResult(success=False, filename=pathname, error=str(e))

        uploaded_at = datetime.now(timezone.utc).isoformat()
        logger.info("Uploaded %s (%d bytes)", pathname, len(data))
        return UploadResult(success=True, filename=pathname, url=stored_url, uploaded_at=uploaded_at)

    def download(self, url: str) -> bytes:
        """Fetch a stored file.

        Raises:
            StorageError: On network failure or a non-2xx answer.
        """
        try:
            resp = self.session.get(url)
        except requests.RequestException as e:
            raise StorageError(f"Download of {url} failed: {e}") from e
        ensure_ok(resp, f"Download of {url} failed")
        logger.info("Downloaded %d bytes from %s", len(resp.content), url)
        return resp.content
