"""
Configuration settings for the location sharing client.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


class Config:
    """Central configuration class for all client settings."""

    def __init__(self) -> None:
        # Scheduling (seconds)
        self.FANOUT_INTERVAL: float = float(
            os.getenv("LOCSHARE_FANOUT_INTERVAL", "20")
        )
        self.RETRIEVAL_INTERVAL: float = float(
            os.getenv("LOCSHARE_RETRIEVAL_INTERVAL", "5")
        )
        self.MAX_BACKOFF: float = float(os.getenv("LOCSHARE_MAX_BACKOFF", "300"))

        # Server interaction
        self.HTTP_TIMEOUT: float = float(os.getenv("LOCSHARE_HTTP_TIMEOUT", "10"))
        self.LOCATION_LIMIT: int = int(os.getenv("LOCSHARE_LOCATION_LIMIT", "1"))

        # Local state
        self.BASE_DIR: Path = Path(
            os.getenv("LOCSHARE_HOME", str(Path.home() / ".locshare"))
        )
        self.STORE_PATH: Path = self.BASE_DIR / "secrets.json"

        # Logging
        self.LOG_LEVEL: int = getattr(
            logging, os.getenv("LOCSHARE_LOG_LEVEL", "INFO").upper(), logging.INFO
        )


# Persisted state keys
PUBLIC_KEY = "publicKey"
PRIVATE_KEY = "privateKey"
TOKEN = "token"
SERVER_URL = "serverUrl"
PUBKEY_CACHE_PREFIX = "pubkey-"
