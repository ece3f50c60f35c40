"""Blob store configuration for the dine-in analytics package.

The aggregation pipeline itself needs no configuration beyond a
FilterState (see ``dinein_core.core.filters``). This module only covers the
storage collaborator used to persist and retrieve uploaded CSV exports.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dinein_core.exceptions import ConfigError

ENV_BLOB_URL = "DINEIN_BLOB_URL"
ENV_BLOB_TOKEN = "DINEIN_BLOB_TOKEN"
ENV_BLOB_TIMEOUT = "DINEIN_BLOB_TIMEOUT"
ENV_BLOB_RETRIES = "DINEIN_BLOB_RETRIES"

DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRIES = 3


@dataclass
class BlobStoreConfig:
    """Connection settings for the blob store.

    Attributes:
        base_url: Root URL of the store. Listing is a GET on this URL,
            uploads are a PUT on ``<base_url>/<pathname>``.
        token: Optional bearer token sent on every request.
        timeout: Default timeout in seconds for every request.
        retries: Number of retry attempts for transient HTTP failures.
    """

    base_url: str
    token: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> BlobStoreConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            BlobStoreConfig instance.

        Raises:
            ConfigError: If the base URL is missing or a numeric setting
                cannot be parsed.

        Examples:
            >>> cfg = BlobStoreConfig.from_env({"DINEIN_BLOB_URL": "https://blob.example.com"})
            >>> cfg.timeout
            60.0
        """
        env = os.environ if environ is None else environ

        # Strip quotes from values copied out of .env files
        base_url = env.get(ENV_BLOB_URL, "").strip().strip('"').strip("'")
        if not base_url:
            raise ConfigError(f"{ENV_BLOB_URL} must be set to use the blob store")

        token = env.get(ENV_BLOB_TOKEN, "").strip().strip('"').strip("'") or None

        try:
            timeout = float(env.get(ENV_BLOB_TIMEOUT, DEFAULT_TIMEOUT))
            retries = int(env.get(ENV_BLOB_RETRIES, DEFAULT_RETRIES))
        except ValueError as e:
            raise ConfigError(f"Invalid blob store setting: {e}") from e

        return cls(base_url=base_url.rstrip("/"), token=token, timeout=timeout, retries=retries)
