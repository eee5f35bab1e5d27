import logging
from pathlib import Path
from typing import Any

import pytest

from locshare.client.infrastructure.config_loader import ConfigLoader
from locshare.client.infrastructure.secret_store import FileSecretStore
from locshare.common.config import Config
from locshare.common.models import ClientConfig


def test_config_defaults(monkeypatch: Any) -> None:
    for var in (
        "LOCSHARE_FANOUT_INTERVAL",
        "LOCSHARE_RETRIEVAL_INTERVAL",
        "LOCSHARE_LOCATION_LIMIT",
        "LOCSHARE_HOME",
        "LOCSHARE_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)

    config = Config()
    assert config.FANOUT_INTERVAL == 20  # noqa: PLR2004
    assert config.RETRIEVAL_INTERVAL == 5  # noqa: PLR2004
    assert config.LOCATION_LIMIT == 1
    assert config.STORE_PATH == Path.home() / ".locshare" / "secrets.json"
    assert config.LOG_LEVEL == logging.INFO


def test_config_environment_overrides(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setenv("LOCSHARE_FANOUT_INTERVAL", "7.5")
    monkeypatch.setenv("LOCSHARE_LOCATION_LIMIT", "25")
    monkeypatch.setenv("LOCSHARE_HOME", str(tmp_path))
    monkeypatch.setenv("LOCSHARE_LOG_LEVEL", "warning")

    config = Config()
    assert config.FANOUT_INTERVAL == 7.5  # noqa: PLR2004
    assert config.LOCATION_LIMIT == 25  # noqa: PLR2004
    assert config.STORE_PATH == tmp_path / "secrets.json"
    assert config.LOG_LEVEL == logging.WARNING


def test_config_loader_prefers_client_config(tmp_path: Path) -> None:
    loader = ConfigLoader(
        ClientConfig(
            store_path=tmp_path / "s.json",
            fanout_interval=3,
            location_limit=10,
            log_level=logging.ERROR,
        )
    )
    assert loader.store_path == tmp_path / "s.json"
    assert loader.fanout_interval == 3  # noqa: PLR2004
    assert loader.location_limit == 10  # noqa: PLR2004
    assert loader.retrieval_interval == Config().RETRIEVAL_INTERVAL
    assert logging.getLogger("locshare").level == logging.ERROR
    assert isinstance(loader.create_store(), FileSecretStore)


def test_config_loader_rejects_bad_values() -> None:
    with pytest.raises(ValueError, match="location_limit"):
        ConfigLoader(ClientConfig(location_limit=0))
    with pytest.raises(ValueError, match="intervals"):
        ConfigLoader(ClientConfig(retrieval_interval=-1))
