"""OpenPGP engine backed by PGPy.

Implements :class:`locshare.common.interfaces.ICryptoEngine`. All inputs and
outputs are ASCII-armored strings so they can be stored in the secret store
and sent over JSON unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pgpy
from pgpy.constants import (
    CompressionAlgorithm,
    EllipticCurveOID,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from locshare.common.exceptions import DecryptFailed
from locshare.common.models import IdentityOptions, KeyPair

if TYPE_CHECKING:
    from collections.abc import Sequence


_PREFERENCES = {
    "hashes": [HashAlgorithm.SHA256, HashAlgorithm.SHA512],
    "ciphers": [SymmetricKeyAlgorithm.AES256, SymmetricKeyAlgorithm.AES128],
    "compression": [CompressionAlgorithm.ZLIB, CompressionAlgorithm.Uncompressed],
}


class PGPEngine:
    """OpenPGP primitives used by the handshake and the location pipelines."""

    cipher = SymmetricKeyAlgorithm.AES256

    def generate_key_pair(self, options: IdentityOptions | None = None) -> KeyPair:
        options = options or IdentityOptions()
        uid = pgpy.PGPUID.new(
            options.name, comment=options.comment or "", email=options.email or ""
        )

        if options.algorithm == "rsa":
            key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, options.key_bits)
            key.add_uid(
                uid,
                usage={
                    KeyFlags.Sign,
                    KeyFlags.EncryptCommunications,
                    KeyFlags.EncryptStorage,
                },
                **_PREFERENCES,
            )
        else:
            key = pgpy.PGPKey.new(PubKeyAlgorithm.EdDSA, EllipticCurveOID.Ed25519)
            key.add_uid(uid, usage={KeyFlags.Sign, KeyFlags.Certify}, **_PREFERENCES)
            subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.Curve25519)
            key.add_subkey(
                subkey,
                usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
            )

        return KeyPair(
            public_key_armored=str(key.pubkey),
            private_key_armored=str(key),
        )

    @staticmethod
    def _load_key(armored: str) -> pgpy.PGPKey:
        try:
            key, _ = pgpy.PGPKey.from_blob(armored)
        except Exception as e:
            msg = f"Invalid armored key: {e}"
            raise ValueError(msg) from e
        return key

    def _load_private_key(self, armored: str) -> pgpy.PGPKey:
        key = self._load_key(armored)
        if key.is_public:
            msg = "Expected a private key, got a public key"
            raise ValueError(msg)
        if key.is_protected:
            msg = "Passphrase protected keys are not supported"
            raise ValueError(msg)
        return key

    def key_id(self, public_key_armored: str) -> str:
        """Return the 16 hex digit key id of an armored key."""
        return str(self._load_key(public_key_armored).fingerprint.keyid)

    def sign(self, message: str, private_key_armored: str) -> str:
        """Return an armored detached signature over ``message``."""
        key = self._load_private_key(private_key_armored)
        try:
            signature = key.sign(message, hash=HashAlgorithm.SHA256)
        except Exception as e:
            msg = f"Could not sign message: {e}"
            raise ValueError(msg) from e
        return str(signature)

    def encrypt(self, plaintext: str, public_keys_armored: Sequence[str]) -> str:
        """Encrypt once to every recipient using one shared session key.

        Raises ValueError for any recipient key that cannot be used, including
        keys without an encryption-capable subkey.
        """
        if not public_keys_armored:
            msg = "At least one recipient is required"
            raise ValueError(msg)

        recipients = [self._load_key(armored) for armored in public_keys_armored]
        try:
            message = pgpy.PGPMessage.new(plaintext)
            session_key = self.cipher.gen_key()
            for recipient in recipients:
                message = recipient.encrypt(
                    message, cipher=self.cipher, sessionkey=session_key
                )
            del session_key
        except Exception as e:
            msg = f"Could not encrypt message: {e}"
            raise ValueError(msg) from e
        return str(message)

    def decrypt(self, ciphertext_armored: str, private_key_armored: str) -> str:
        """Decrypt an armored message; raises DecryptFailed on any failure."""
        try:
            key = self._load_private_key(private_key_armored)
            message = pgpy.PGPMessage.from_blob(ciphertext_armored)
            plain = key.decrypt(message).message
            if isinstance(plain, (bytes, bytearray)):
                plain = bytes(plain).decode("utf-8")
        except Exception as e:
            msg = f"Could not decrypt message: {e}"
            raise DecryptFailed(msg) from e
        return plain
