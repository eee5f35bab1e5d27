"""Domain layer: challenge/response handshake as an explicit state machine.

Each state is an immutable value and each protocol step is a function from one
state to the next. Only :class:`TokenIssued` carries a token, so the caller can
only persist a token after every step has succeeded.

    NO_IDENTITY -> AWAITING_CHALLENGE -> CHALLENGE_SIGNED -> TOKEN_ISSUED
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from pydantic import ValidationError

from locshare.common.exceptions import AuthFailed, MissingIdentity
from locshare.common.models import TokenEnvelope

if TYPE_CHECKING:
    from locshare.common.interfaces import ICryptoEngine
    from locshare.common.models import KeyPair

SIGNED_MESSAGE_HEADER = "-----BEGIN PGP SIGNED MESSAGE-----\nHash: SHA256\n\n"


def build_signed_message(challenge: str, signature_armored: str) -> str:
    """Header, challenge text, then the detached signature block."""
    return f"{SIGNED_MESSAGE_HEADER}{challenge}\n{signature_armored}"


class HandshakeState(Enum):
    NO_IDENTITY = "no_identity"
    AWAITING_CHALLENGE = "awaiting_challenge"
    CHALLENGE_SIGNED = "challenge_signed"
    TOKEN_ISSUED = "token_issued"


@dataclass(frozen=True)
class AwaitingChallenge:
    key_pair: KeyPair
    key_id: str

    state: ClassVar[HandshakeState] = HandshakeState.AWAITING_CHALLENGE


@dataclass(frozen=True)
class ChallengeSigned:
    key_pair: KeyPair
    key_id: str
    challenge: str
    signed_message: str

    state: ClassVar[HandshakeState] = HandshakeState.CHALLENGE_SIGNED


@dataclass(frozen=True)
class TokenIssued:
    key_id: str
    token: str

    state: ClassVar[HandshakeState] = HandshakeState.TOKEN_ISSUED


def begin(key_pair: KeyPair | None, engine: ICryptoEngine) -> AwaitingChallenge:
    """Leave NO_IDENTITY: requires a local key pair."""
    if key_pair is None:
        msg = "No keys found. Please generate keys first."
        raise MissingIdentity(msg)
    return AwaitingChallenge(
        key_pair=key_pair, key_id=engine.key_id(key_pair.public_key_armored)
    )


def sign_challenge(
    current: AwaitingChallenge, challenge: str, engine: ICryptoEngine
) -> ChallengeSigned:
    """Sign the server's challenge and wrap it in a signed-message block."""
    if not challenge:
        msg = "Server returned an empty challenge"
        raise AuthFailed(msg)
    signature = engine.sign(challenge, current.key_pair.private_key_armored)
    return ChallengeSigned(
        key_pair=current.key_pair,
        key_id=current.key_id,
        challenge=challenge,
        signed_message=build_signed_message(challenge, signature),
    )


def redeem(
    current: ChallengeSigned, token_ciphertext: str, engine: ICryptoEngine
) -> TokenIssued:
    """Decrypt the token envelope, which only the key holder can read."""
    plaintext = engine.decrypt(token_ciphertext, current.key_pair.private_key_armored)
    try:
        envelope = TokenEnvelope.model_validate(json.loads(plaintext))
    except (ValueError, ValidationError) as e:
        msg = "Token envelope is not valid JSON with a token field"
        raise AuthFailed(msg) from e
    return TokenIssued(key_id=current.key_id, token=envelope.token)
