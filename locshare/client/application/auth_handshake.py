"""
Application layer: drives the handshake state machine against the server.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from locshare.client.domain import handshake
from locshare.client.domain.handshake import HandshakeState
from locshare.common.config import TOKEN
from locshare.common.exceptions import AuthFailed, LocShareError, MissingIdentity

if TYPE_CHECKING:
    from locshare.client.application.identity_manager import IdentityManager
    from locshare.client.infrastructure.api import ServerApi
    from locshare.common.interfaces import ICryptoEngine, ISecretStore

logger = logging.getLogger(__name__)


class AuthHandshake:
    """Exchanges proof of key possession for a bearer token."""

    def __init__(
        self,
        identity: IdentityManager,
        engine: ICryptoEngine,
        store: ISecretStore,
    ):
        self.identity = identity
        self.engine = engine
        self.store = store
        self.state = HandshakeState.NO_IDENTITY

    def run(self, api: ServerApi) -> str:
        """Run all steps and persist the token; AuthFailed on any failure.

        Raises MissingIdentity when no key pair exists yet. The token is
        written only after the final step succeeds.
        """
        with self.identity.lock:
            self.state = HandshakeState.NO_IDENTITY
            try:
                current = handshake.begin(self.identity.load_key_pair(), self.engine)
                self.state = current.state
                logger.info("Requesting challenge for %s", current.key_id)

                challenge = api.request_challenge(current.key_id)
                signed = handshake.sign_challenge(current, challenge, self.engine)
                self.state = signed.state

                token_ciphertext = api.submit_attestation(signed.signed_message)
                issued = handshake.redeem(signed, token_ciphertext, self.engine)
            except MissingIdentity:
                raise
            except AuthFailed:
                self._reset()
                raise
            except (LocShareError, ValueError) as e:
                self._reset()
                msg = "Failed to complete token request flow"
                raise AuthFailed(msg) from e

            self.store.set(TOKEN, issued.token)
            self.state = issued.state

        logger.info("Token received and stored for %s", issued.key_id)
        return issued.token

    def _reset(self) -> None:
        if self.state is not HandshakeState.NO_IDENTITY:
            self.state = HandshakeState.AWAITING_CHALLENGE
        logger.warning("Token request failed in state %s", self.state.value)
