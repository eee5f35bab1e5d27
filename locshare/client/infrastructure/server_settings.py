"""Infrastructure layer: persisted server URL."""

from __future__ import annotations

from typing import TYPE_CHECKING

from locshare.common.config import SERVER_URL
from locshare.common.exceptions import ConfigurationError

if TYPE_CHECKING:
    from locshare.common.interfaces import ISecretStore

ALLOWED_SCHEMES = ("http://", "https://")


def validate_server_url(url: str) -> str:
    if not url.startswith(ALLOWED_SCHEMES):
        msg = "URL must start with http:// or https://"
        raise ConfigurationError(msg)
    return url


def save_server_url(store: ISecretStore, url: str) -> None:
    """Persist ``url`` verbatim after checking its scheme."""
    store.set(SERVER_URL, validate_server_url(url))


def get_server_url(store: ISecretStore) -> str | None:
    return store.get(SERVER_URL)


def require_server_url(store: ISecretStore) -> str:
    url = get_server_url(store)
    if not url:
        msg = "Server URL not set. Please set it first."
        raise ConfigurationError(msg)
    return url
