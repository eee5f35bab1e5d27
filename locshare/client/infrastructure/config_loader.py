"""Infrastructure layer: Configuration loading.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from locshare.client.infrastructure.secret_store import FileSecretStore
from locshare.common import Configurable, setup_logger
from locshare.common.config import Config
from locshare.common.models import ClientConfig

SETTINGS = [
    "store_path",
    "log_level",
    "fanout_interval",
    "retrieval_interval",
    "max_backoff",
    "http_timeout",
    "location_limit",
]


class ConfigLoader(Configurable):
    """Merges a ClientConfig with the environment-driven defaults."""

    store_path: Path
    log_level: int
    fanout_interval: float
    retrieval_interval: float
    max_backoff: float
    http_timeout: float
    location_limit: int

    def __init__(self, client_config: ClientConfig | None = None):
        client_config = client_config or ClientConfig()
        self.config: Config = Config()
        self.apply_overrides(client_config.model_dump(), self.config, SETTINGS)

        self.server_url: str | None = client_config.server_url
        self.on_error_callback: Callable[[Exception], None] | None = (
            client_config.on_error_callback
        )

        if self.location_limit < 1:
            msg = f"location_limit must be positive, got {self.location_limit}"
            raise ValueError(msg)
        if self.fanout_interval <= 0 or self.retrieval_interval <= 0:
            msg = "Scheduler intervals must be positive"
            raise ValueError(msg)

        # Setup logging
        self.logger = setup_logger(logging.getLogger("locshare"), self.log_level)

    def create_store(self) -> FileSecretStore:
        return FileSecretStore(self.store_path)
