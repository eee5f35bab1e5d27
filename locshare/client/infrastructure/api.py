"""Infrastructure layer: HTTP client for the location relay server.

One method per endpoint. Transport problems and unexpected statuses become
``NetworkFailure``; 401/403 become ``Unauthorized`` so callers can tell a dead
token from a flaky network.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import ValidationError

from locshare.common.exceptions import NetworkFailure, Unauthorized
from locshare.common.models import (
    AttestationRequest,
    AttestationResponse,
    ChallengeResponse,
    CreateGroupRequest,
    Group,
    LocationPostRequest,
    PublicKeyResponse,
    SignUpRequest,
    TokenRequest,
)

HTTP_UNAUTHORIZED = (401, 403)
HTTP_SUCCESS = range(200, 300)

logger = logging.getLogger(__name__)


class ServerApi:
    """Wire contract of the relay server."""

    def __init__(self, server_url: str, timeout: float = 10) -> None:
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout

    @staticmethod
    def _auth_headers(token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _error_text(r: requests.Response) -> str:
        try:
            body = r.json()
        except ValueError:
            return getattr(r, "text", "") or ""
        if isinstance(body, dict) and "error" in body:
            return str(body["error"])
        return str(body)

    def _send(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = f"{self.server_url}{path}"
        headers = self._auth_headers(token)
        logger.debug("%s %s", method, url)
        try:
            if method == "GET":
                r = requests.get(
                    url, headers=headers, params=params, timeout=self.timeout
                )
            else:
                r = requests.post(
                    url, headers=headers, json=body, params=params, timeout=self.timeout
                )
        except requests.RequestException as e:
            msg = f"{method} {path} failed: {e}"
            raise NetworkFailure(msg) from e

        if r.status_code in HTTP_UNAUTHORIZED:
            msg = f"{method} {path} rejected the token ({r.status_code})"
            raise Unauthorized(msg, r.status_code)
        if r.status_code not in HTTP_SUCCESS:
            msg = f"{method} {path} returned {r.status_code}: {self._error_text(r)}"
            raise NetworkFailure(msg, r.status_code)
        return r

    @staticmethod
    def _json(r: requests.Response, path: str) -> Any:
        try:
            return r.json()
        except ValueError as e:
            msg = f"{path} returned a non-JSON body"
            raise NetworkFailure(msg, r.status_code) from e

    @staticmethod
    def _optional_json(r: requests.Response) -> Any:
        try:
            return r.json()
        except ValueError:
            return None

    # Identity and authentication

    def sign_up(self, pubkey: str) -> Any:
        r = self._send(
            "POST", "/api/signUp", body=SignUpRequest(pubkey=pubkey).model_dump()
        )
        return self._optional_json(r)

    def request_challenge(self, keyid: str) -> str:
        path = "/api/requestToken"
        r = self._send("POST", path, body=TokenRequest(keyid=keyid).model_dump())
        try:
            return ChallengeResponse.model_validate(self._json(r, path)).challenge
        except ValidationError as e:
            msg = f"{path} returned no challenge"
            raise NetworkFailure(msg, r.status_code) from e

    def submit_attestation(self, signed_challenge: str) -> str:
        path = "/api/submitAttestation"
        req = AttestationRequest(signed_challenge=signed_challenge)
        r = self._send("POST", path, body=req.model_dump(by_alias=True))
        try:
            resp = AttestationResponse.model_validate(self._json(r, path))
        except ValidationError as e:
            msg = f"{path} returned no token ciphertext"
            raise NetworkFailure(msg, r.status_code) from e
        return resp.token_cipher_text

    # Groups and keys

    def list_groups(self, token: str) -> list[Group]:
        path = "/api/groups"
        r = self._send("GET", path, token=token)
        data = self._json(r, path)
        try:
            return [Group.model_validate(item) for item in data]
        except (TypeError, ValidationError) as e:
            msg = f"{path} returned a malformed group list"
            raise NetworkFailure(msg, r.status_code) from e

    def create_group(
        self, token: str, name: str, member_key_ids: list[str]
    ) -> dict[str, Any]:
        req = CreateGroupRequest(name=name, member_key_ids=member_key_ids)
        r = self._send(
            "POST", "/api/groups", token=token, body=req.model_dump(by_alias=True)
        )
        return self._optional_json(r) or {}

    def get_public_key(self, token: str, keyid: str) -> str | None:
        path = "/api/keys"
        r = self._send("GET", path, token=token, params={"keyId": keyid})
        try:
            return PublicKeyResponse.model_validate(self._json(r, path)).public_key
        except ValidationError as e:
            msg = f"{path} returned a malformed key record"
            raise NetworkFailure(msg, r.status_code) from e

    # Locations

    def post_location(
        self, token: str, group_ids: list[str | int], cipher_text: str
    ) -> Any:
        req = LocationPostRequest(group_ids=group_ids, cipher_text=cipher_text)
        r = self._send(
            "POST", "/api/location", token=token, body=req.model_dump(by_alias=True)
        )
        return self._optional_json(r)

    def get_locations(self, token: str, limit: int) -> list[Any]:
        """Raw update items, newest first.

        Items are left unparsed so one malformed record can be dropped on
        its own by the retrieval pipeline.
        """
        path = "/api/location"
        r = self._send("GET", path, token=token, params={"limit": limit})
        data = self._json(r, path)
        if not isinstance(data, list):
            msg = f"{path} returned a malformed update list"
            raise NetworkFailure(msg, r.status_code)
        return data
