"""
OOP-based location sharing client.

Wires the identity, handshake, group, fan-out and retrieval components to a
secret store and a crypto engine, and exposes them as user-facing actions.
User-triggered calls raise; the background runner logs and keeps going.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from locshare.client.application.auth_handshake import AuthHandshake
from locshare.client.application.fanout import FanoutPipeline
from locshare.client.application.group_manager import GroupManager
from locshare.client.application.identity_manager import IdentityManager
from locshare.client.application.retrieval import RetrievalPipeline
from locshare.client.application.runner import Runner
from locshare.client.application.session_manager import SessionManager
from locshare.client.infrastructure import server_settings
from locshare.client.infrastructure.api import ServerApi
from locshare.client.infrastructure.config_loader import ConfigLoader
from locshare.common.config import TOKEN
from locshare.common.exceptions import ConfigurationError, NotAuthenticated

if TYPE_CHECKING:
    from locshare.client.domain.entities import (
        FanoutReport,
        RetrievalReport,
        SessionContext,
    )
    from locshare.common.interfaces import (
        ICryptoEngine,
        ILocationProvider,
        IMarkerSink,
        ISecretStore,
    )
    from locshare.common.models import (
        ClientConfig,
        Coordinates,
        Group,
        IdentityOptions,
    )

logger = logging.getLogger(__name__)


class LocationShareClient:
    """Client for sharing live location with group members."""

    def __init__(
        self,
        client_config: ClientConfig | None = None,
        *,
        store: ISecretStore | None = None,
        engine: ICryptoEngine | None = None,
        location_provider: ILocationProvider | None = None,
        marker_sink: IMarkerSink | None = None,
        on_dropped: Callable[[Any, Exception], None] | None = None,
    ):
        self.settings = ConfigLoader(client_config)
        self.store = store or self.settings.create_store()
        if engine is None:
            from locshare.common.crypto import PGPEngine  # noqa: PLC0415

            engine = PGPEngine()
        self.engine = engine
        self.location_provider = location_provider

        if self.settings.server_url:
            self.save_server_url(self.settings.server_url)

        self.identity = IdentityManager(self.store, self.engine)
        self.auth = AuthHandshake(self.identity, self.engine, self.store)
        self.session = SessionManager(self.store, self.identity, self.auth)
        self.groups = GroupManager(self.store, self.engine)
        self.fanout = FanoutPipeline(self.groups, self.engine)
        self.retrieval = RetrievalPipeline(
            self.engine,
            limit=self.settings.location_limit,
            marker_sink=marker_sink,
            on_dropped=on_dropped,
        )
        self.runner = Runner(
            fanout_job=self._scheduled_fanout,
            retrieval_job=self.fetch_locations,
            fanout_interval=self.settings.fanout_interval,
            retrieval_interval=self.settings.retrieval_interval,
            max_backoff=self.settings.max_backoff,
            on_error_callback=self.settings.on_error_callback,
        )

    # Server configuration

    def save_server_url(self, url: str) -> None:
        server_settings.save_server_url(self.store, url)
        logger.info("Server URL saved: %s", url)

    @property
    def server_url(self) -> str | None:
        return server_settings.get_server_url(self.store)

    def _api(self, server_url: str | None = None) -> ServerApi:
        url = server_url or server_settings.require_server_url(self.store)
        return ServerApi(url, timeout=self.settings.http_timeout)

    def _api_for(self, session: SessionContext) -> ServerApi:
        return self._api(session.server_url)

    # Identity and authentication

    def generate_identity(self, options: IdentityOptions | None = None) -> str:
        return self.identity.generate_and_persist_identity(options)

    def load_existing_key_id(self) -> str | None:
        return self.identity.load_existing_key_id()

    def sign_up(self) -> Any:
        return self.identity.register_public_key(self._api())

    def request_token(self) -> str:
        return self.session.login(self._api())

    def is_authenticated(self) -> bool:
        return self.session.is_authenticated()

    def _token(self) -> str:
        token = self.store.get(TOKEN)
        if not token:
            msg = "No token found. Please request a token first."
            raise NotAuthenticated(msg)
        return token

    # Groups

    def list_groups(self) -> list[Group]:
        return self.groups.list_groups(self._api(), self._token())

    def create_group(self, name: str, member_key_ids: str | list[str]) -> dict[str, Any]:
        return self.groups.create_group(self._api(), self._token(), name, member_key_ids)

    def forget_cached_key(self, keyid: str) -> None:
        self.groups.forget_cached_key(keyid)

    # Locations

    def send_location(
        self, coords: Coordinates, timestamp: str | None = None
    ) -> FanoutReport:
        """Encrypt and post ``coords`` to every group."""
        session = self.session.context_for_fanout()
        return self.fanout.run(self._api_for(session), session, coords, timestamp)

    def fetch_locations(self) -> RetrievalReport:
        """Fetch and decrypt the latest updates visible to us."""
        session = self.session.context_for_retrieval()
        return self.retrieval.run(self._api_for(session), session)

    def _scheduled_fanout(self) -> FanoutReport:
        if self.location_provider is None:
            msg = "No location provider configured"
            raise ConfigurationError(msg)
        return self.send_location(self.location_provider())

    def trigger_fanout(self) -> bool:
        """Run a fan-out now unless one is already in flight."""
        return self.runner.fanout_tick()

    # Background loops

    def start_in_thread(self) -> None:
        self.runner.start_in_thread()

    def stop_thread(self, wait: bool = False) -> None:
        self.runner.stop_thread(wait=wait)
