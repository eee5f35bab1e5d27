"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from locshare.common.models import (
        Coordinates,
        IdentityOptions,
        KeyPair,
        PositionMarker,
    )


class ISecretStore(Protocol):
    """Durable string key-value store. No enumeration."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class ICryptoEngine(Protocol):
    """OpenPGP primitive provider.

    ``key_id``, ``sign`` and ``encrypt`` raise ValueError for unusable input,
    whatever the backing library raises; ``decrypt`` raises DecryptFailed.
    """

    def generate_key_pair(self, options: IdentityOptions) -> KeyPair: ...

    def key_id(self, public_key_armored: str) -> str: ...

    def sign(self, message: str, private_key_armored: str) -> str: ...

    def encrypt(self, plaintext: str, public_keys_armored: Sequence[str]) -> str: ...

    def decrypt(self, ciphertext_armored: str, private_key_armored: str) -> str: ...


class IMarkerSink(Protocol):
    """Receives decrypted positions for display."""

    def __call__(self, markers: list[PositionMarker]) -> None: ...


class ILocationProvider(Protocol):
    """Supplies the current device position."""

    def __call__(self) -> Coordinates: ...
