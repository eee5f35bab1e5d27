"""
Application layer: session use cases (login, per-cycle session context).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from locshare.client.domain.entities import SessionContext
from locshare.client.infrastructure import server_settings
from locshare.common.config import TOKEN
from locshare.common.exceptions import ConfigurationError, NotAuthenticated

if TYPE_CHECKING:
    from locshare.client.application.auth_handshake import AuthHandshake
    from locshare.client.application.identity_manager import IdentityManager
    from locshare.client.infrastructure.api import ServerApi
    from locshare.common.interfaces import ISecretStore


class SessionManager:
    """Builds the SessionContext each pipeline cycle runs against."""

    def __init__(
        self,
        store: ISecretStore,
        identity: IdentityManager,
        auth: AuthHandshake,
    ):
        self.store = store
        self.identity = identity
        self.auth = auth

    def login(self, api: ServerApi) -> str:
        """Run the handshake and return the new token."""
        return self.auth.run(api)

    def logout(self) -> None:
        self.store.delete(TOKEN)

    def is_authenticated(self) -> bool:
        return self.store.get(TOKEN) is not None

    def _snapshot(self, server_url: str) -> SessionContext:
        with self.identity.lock:
            token = self.store.get(TOKEN)
            key_pair = self.identity.load_key_pair()
        if not token or key_pair is None:
            msg = "Missing token or private key."
            raise NotAuthenticated(msg)
        return SessionContext(server_url=server_url, token=token, key_pair=key_pair)

    def context_for_fanout(self) -> SessionContext:
        """ConfigurationError without a server URL, else NotAuthenticated."""
        return self._snapshot(server_settings.require_server_url(self.store))

    def context_for_retrieval(self) -> SessionContext:
        """Any missing piece is reported as NotAuthenticated."""
        try:
            server_url = server_settings.require_server_url(self.store)
        except ConfigurationError as e:
            raise NotAuthenticated(str(e)) from e
        return self._snapshot(server_url)
