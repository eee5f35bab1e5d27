"""Shared fixtures.

``FakeEngine`` stands in for the OpenPGP engine so the pipeline tests run
without PGPy. It is real cryptography (Ed25519 signatures, X25519 key wrapping
and ChaCha20Poly1305), so a message encrypted to one key really cannot be
decrypted with another.
"""

from __future__ import annotations

import base64
import hashlib
import json
import os
from collections.abc import Sequence
from typing import Any

import pytest
import requests
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from locshare.client.infrastructure.secret_store import MemorySecretStore
from locshare.common.exceptions import DecryptFailed
from locshare.common.models import IdentityOptions, KeyPair

RAW = (serialization.Encoding.Raw, serialization.PublicFormat.Raw)


def _armor(kind: str, data: dict[str, Any]) -> str:
    body = base64.b64encode(json.dumps(data, sort_keys=True).encode()).decode()
    return f"-----BEGIN FAKE {kind}-----\n{body}\n-----END FAKE {kind}-----\n"


def _dearmor(kind: str, armored: str) -> dict[str, Any]:
    lines = armored.strip().splitlines()
    if len(lines) != 3 or lines[0] != f"-----BEGIN FAKE {kind}-----":
        msg = f"Not an armored {kind}"
        raise ValueError(msg)
    return json.loads(base64.b64decode(lines[1]))


def _wrap_key(shared: bytes) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=b"wrap").derive(
        shared
    )


class FakeEngine:
    """Deterministic-format engine implementing ICryptoEngine."""

    def generate_key_pair(self, options: IdentityOptions | None = None) -> KeyPair:
        sign = Ed25519PrivateKey.generate()
        kx = X25519PrivateKey.generate()
        public = {
            "sign": sign.public_key().public_bytes(*RAW).hex(),
            "kx": kx.public_key().public_bytes(*RAW).hex(),
            "name": (options or IdentityOptions()).name,
        }
        private = {
            "sign": sign.private_bytes(
                serialization.Encoding.Raw,
                serialization.PrivateFormat.Raw,
                serialization.NoEncryption(),
            ).hex(),
            "kx": kx.private_bytes(
                serialization.Encoding.Raw,
                serialization.PrivateFormat.Raw,
                serialization.NoEncryption(),
            ).hex(),
            "public": public,
        }
        return KeyPair(
            public_key_armored=_armor("PUBLIC KEY", public),
            private_key_armored=_armor("PRIVATE KEY", private),
        )

    @staticmethod
    def _key_id_of(public: dict[str, Any]) -> str:
        digest = hashlib.sha256(bytes.fromhex(public["sign"] + public["kx"]))
        return digest.hexdigest().upper()[-16:]

    def key_id(self, public_key_armored: str) -> str:
        return self._key_id_of(_dearmor("PUBLIC KEY", public_key_armored))

    def sign(self, message: str, private_key_armored: str) -> str:
        private = _dearmor("PRIVATE KEY", private_key_armored)
        key = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(private["sign"]))
        return _armor("SIGNATURE", {"sig": key.sign(message.encode()).hex()})

    def verify(self, message: str, signature_armored: str, public_key_armored: str) -> bool:
        public = _dearmor("PUBLIC KEY", public_key_armored)
        sig = bytes.fromhex(_dearmor("SIGNATURE", signature_armored)["sig"])
        key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public["sign"]))
        try:
            key.verify(sig, message.encode())
        except InvalidSignature:
            return False
        return True

    def encrypt(self, plaintext: str, public_keys_armored: Sequence[str]) -> str:
        if not public_keys_armored:
            msg = "At least one recipient is required"
            raise ValueError(msg)
        content_key = ChaCha20Poly1305.generate_key()
        nonce = os.urandom(12)
        recipients = []
        for armored in public_keys_armored:
            public = _dearmor("PUBLIC KEY", armored)
            eph = X25519PrivateKey.generate()
            shared = eph.exchange(
                X25519PublicKey.from_public_bytes(bytes.fromhex(public["kx"]))
            )
            wrap_nonce = os.urandom(12)
            wrapped = ChaCha20Poly1305(_wrap_key(shared)).encrypt(
                wrap_nonce, content_key, None
            )
            recipients.append(
                {
                    "keyid": self._key_id_of(public),
                    "eph": eph.public_key().public_bytes(*RAW).hex(),
                    "nonce": wrap_nonce.hex(),
                    "wrapped": wrapped.hex(),
                }
            )
        ct = ChaCha20Poly1305(content_key).encrypt(nonce, plaintext.encode(), None)
        return _armor(
            "MESSAGE", {"recipients": recipients, "nonce": nonce.hex(), "ct": ct.hex()}
        )

    def decrypt(self, ciphertext_armored: str, private_key_armored: str) -> str:
        try:
            private = _dearmor("PRIVATE KEY", private_key_armored)
            message = _dearmor("MESSAGE", ciphertext_armored)
            my_id = self._key_id_of(private["public"])
            entry = next(r for r in message["recipients"] if r["keyid"] == my_id)
            kx = X25519PrivateKey.from_private_bytes(bytes.fromhex(private["kx"]))
            shared = kx.exchange(
                X25519PublicKey.from_public_bytes(bytes.fromhex(entry["eph"]))
            )
            content_key = ChaCha20Poly1305(_wrap_key(shared)).decrypt(
                bytes.fromhex(entry["nonce"]), bytes.fromhex(entry["wrapped"]), None
            )
            plain = ChaCha20Poly1305(content_key).decrypt(
                bytes.fromhex(message["nonce"]), bytes.fromhex(message["ct"]), None
            )
        except (ValueError, KeyError, StopIteration, InvalidTag) as e:
            msg = f"Could not decrypt message: {e!r}"
            raise DecryptFailed(msg) from e
        return plain.decode()


class MockResponse:
    def __init__(self, status_code: int, json_data: Any = None) -> None:
        self.status_code = status_code
        self._json = json_data
        self.text = "" if json_data is None else json.dumps(json_data)

    def json(self) -> Any:
        if self._json is None:
            msg = "No JSON body"
            raise ValueError(msg)
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:  # noqa: PLR2004
            msg = f"{self.status_code} Client Error"
            raise requests.HTTPError(msg, response=self)  # type: ignore[arg-type]


@pytest.fixture(scope="session")
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture(scope="session")
def alice_keys(engine: FakeEngine) -> KeyPair:
    return engine.generate_key_pair(IdentityOptions(name="Alice"))


@pytest.fixture(scope="session")
def bob_keys(engine: FakeEngine) -> KeyPair:
    return engine.generate_key_pair(IdentityOptions(name="Bob"))


@pytest.fixture(scope="session")
def carol_keys(engine: FakeEngine) -> KeyPair:
    return engine.generate_key_pair(IdentityOptions(name="Carol"))


@pytest.fixture
def store() -> MemorySecretStore:
    return MemorySecretStore()


class FakeApi:
    """In-memory stand-in for ServerApi used by the pipeline tests."""

    def __init__(self, engine: FakeEngine) -> None:
        self.engine = engine
        self.groups: list[Any] = []
        self.keys: dict[str, str] = {}
        self.key_fetches: list[str] = []
        self.posts: list[tuple[list[Any], str]] = []
        self.records: list[Any] = []
        self.fail_post: dict[Any, Exception] = {}
        self.fail_key: dict[str, Exception] = {}
        self.fail_groups: Exception | None = None

    def publish(self, keys: KeyPair) -> str:
        keyid = self.engine.key_id(keys.public_key_armored)
        self.keys[keyid] = keys.public_key_armored
        return keyid

    def list_groups(self, token: str) -> list[Any]:
        if self.fail_groups:
            raise self.fail_groups
        return list(self.groups)

    def get_public_key(self, token: str, keyid: str) -> str | None:
        self.key_fetches.append(keyid)
        if keyid in self.fail_key:
            raise self.fail_key[keyid]
        return self.keys.get(keyid)

    def post_location(self, token: str, group_ids: list[Any], cipher_text: str) -> Any:
        if group_ids[0] in self.fail_post:
            raise self.fail_post[group_ids[0]]
        self.posts.append((group_ids, cipher_text))
        return {"ok": True}

    def get_locations(self, token: str, limit: int) -> list[Any]:
        return self.records[:limit]


@pytest.fixture
def fake_api(engine: FakeEngine) -> FakeApi:
    return FakeApi(engine)


RELAY_URL = "http://relay.test:8080"


@pytest.fixture
def relay(engine: FakeEngine, monkeypatch: Any) -> Any:
    """Relay server reached through requests.get / requests.post."""
    from fastapi.testclient import TestClient  # noqa: PLC0415
    from relay_app import RelayServer  # noqa: PLC0415

    server = RelayServer(engine)
    test_client = TestClient(server.app)

    def _forward(method: str, url: str, **kwargs: Any) -> MockResponse:
        # Remove base url
        path = url.replace(RELAY_URL, "")
        kwargs.pop("timeout", None)
        response = getattr(test_client, method)(path, **kwargs)
        return MockResponse(response.status_code, response.json())

    monkeypatch.setattr("requests.get", lambda url, **kw: _forward("get", url, **kw))
    monkeypatch.setattr("requests.post", lambda url, **kw: _forward("post", url, **kw))
    return server
