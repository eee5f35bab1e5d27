"""
Pydantic models for wire payloads and persisted records.

Field names are snake_case in Python and camelCase on the wire; dump with
``by_alias=True`` when building request bodies.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyPair(BaseModel):
    public_key_armored: str
    private_key_armored: str


class IdentityOptions(BaseModel):
    name: str = "Location Share User"
    email: str | None = None
    comment: str | None = None
    algorithm: str = Field(default="curve25519", pattern="^(curve25519|rsa)$")
    key_bits: int = Field(default=3072, ge=2048)


class GroupMember(WireModel):
    keyid: str
    full_name: str | None = None


class Group(WireModel):
    id: str | int
    name: str
    members: list[GroupMember] = Field(default_factory=list)
    my_key_id: str | None = None

    def other_members(self) -> list[GroupMember]:
        """Members other than the caller."""
        return [m for m in self.members if m.keyid != self.my_key_id]


class Coordinates(WireModel):
    # Device location objects carry more fields than we name; keep them.
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    altitude: float | None = None
    accuracy: float | None = None
    altitude_accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None


class LocationSample(WireModel):
    group_id: str | int
    timestamp: str
    coords: Coordinates

    def to_plaintext(self) -> str:
        """Compact JSON, the exact bytes that get encrypted."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class LocationUpdateRecord(WireModel):
    id: str | int
    cipher_text: str
    timestamp: str | None = None
    user: Any = None
    group_id: str | int | None = None


class PositionMarker(BaseModel):
    record_id: str | int
    user: Any = None
    group_id: str | int | None = None
    timestamp: str | None = None
    latitude: float
    longitude: float


# Request / response bodies


class SignUpRequest(WireModel):
    pubkey: str


class TokenRequest(WireModel):
    keyid: str


class ChallengeResponse(WireModel):
    challenge: str


class AttestationRequest(WireModel):
    signed_challenge: str


class AttestationResponse(WireModel):
    token_cipher_text: str


class TokenEnvelope(WireModel):
    token: str = Field(min_length=1)


class CreateGroupRequest(WireModel):
    name: str = Field(min_length=1)
    member_key_ids: list[str]


class PublicKeyResponse(WireModel):
    public_key: str | None = None


class LocationPostRequest(WireModel):
    group_ids: list[str | int]
    cipher_text: str


class ClientConfig(BaseModel):
    server_url: str | None = None
    store_path: Path | None = None
    log_level: int | None = None
    on_error_callback: Callable[[Exception], None] | None = None
    fanout_interval: float | None = None
    retrieval_interval: float | None = None
    max_backoff: float | None = None
    http_timeout: float | None = None
    location_limit: int | None = None
