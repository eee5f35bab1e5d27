"""
Application layer: identity (key pair) lifecycle.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from locshare.common.config import PRIVATE_KEY, PUBLIC_KEY
from locshare.common.exceptions import MissingIdentity
from locshare.common.models import IdentityOptions, KeyPair

if TYPE_CHECKING:
    from locshare.client.infrastructure.api import ServerApi
    from locshare.common.interfaces import ICryptoEngine, ISecretStore

logger = logging.getLogger(__name__)


class IdentityManager:
    """Owns key generation, persistence and key id derivation.

    ``lock`` is the identity region: anything that writes or reads both key
    halves as a unit holds it, so a reader never sees a public key from one
    generation and a private key from another.
    """

    def __init__(
        self,
        store: ISecretStore,
        engine: ICryptoEngine,
        lock: threading.RLock | None = None,
    ):
        self.store = store
        self.engine = engine
        self.lock = lock or threading.RLock()

    def generate_and_persist_identity(
        self, options: IdentityOptions | None = None
    ) -> str:
        """Generate a key pair, overwrite any previous one, return its key id."""
        with self.lock:
            key_pair = self.engine.generate_key_pair(options or IdentityOptions())
            self.store.set(PUBLIC_KEY, key_pair.public_key_armored)
            self.store.set(PRIVATE_KEY, key_pair.private_key_armored)
            key_id = self.engine.key_id(key_pair.public_key_armored)
        logger.info("Generated identity %s", key_id)
        return key_id

    def load_existing_key_id(self) -> str | None:
        """Key id of the persisted public key, or None on first run."""
        with self.lock:
            public_key = self.store.get(PUBLIC_KEY)
        if not public_key:
            return None
        try:
            return self.engine.key_id(public_key)
        except ValueError:
            logger.exception("Error loading existing keys")
            return None

    def load_key_pair(self) -> KeyPair | None:
        with self.lock:
            public_key = self.store.get(PUBLIC_KEY)
            private_key = self.store.get(PRIVATE_KEY)
        if not public_key or not private_key:
            return None
        return KeyPair(public_key_armored=public_key, private_key_armored=private_key)

    def register_public_key(self, api: ServerApi) -> Any:
        """Publish the public key so the server can verify our attestations."""
        with self.lock:
            public_key = self.store.get(PUBLIC_KEY)
        if not public_key:
            msg = "No public key found. Please generate keys first."
            raise MissingIdentity(msg)
        result = api.sign_up(public_key)
        logger.info("Public key sent to server")
        return result
