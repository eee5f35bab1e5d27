"""
Application layer: group membership and the recipient public key cache.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from locshare.common.config import PUBKEY_CACHE_PREFIX
from locshare.common.exceptions import (
    GroupCreateFailed,
    NetworkFailure,
    Unauthorized,
    VerificationFailed,
)

if TYPE_CHECKING:
    from locshare.client.infrastructure.api import ServerApi
    from locshare.common.interfaces import ICryptoEngine, ISecretStore
    from locshare.common.models import Group

logger = logging.getLogger(__name__)


def cache_key(keyid: str) -> str:
    return f"{PUBKEY_CACHE_PREFIX}{keyid}"


def parse_member_key_ids(member_key_ids: str | list[str]) -> list[str]:
    """Accept "a, b,c" or a list; strip whitespace and drop blanks."""
    if isinstance(member_key_ids, str):
        member_key_ids = member_key_ids.split(",")
    return [keyid.strip() for keyid in member_key_ids if keyid.strip()]


class GroupManager:
    """Resolves group members to verified recipient public keys.

    Keys are trusted on first fetch: a key is cached only after its own bytes
    derive the key id it was requested under, and is never refreshed after
    that. Two concurrent misses for the same id both verify, so both write
    the same value.
    """

    def __init__(self, store: ISecretStore, engine: ICryptoEngine):
        self.store = store
        self.engine = engine

    def list_groups(self, api: ServerApi, token: str) -> list[Group]:
        return api.list_groups(token)

    def create_group(
        self,
        api: ServerApi,
        token: str,
        name: str,
        member_key_ids: str | list[str],
    ) -> dict[str, Any]:
        keyids = parse_member_key_ids(member_key_ids)
        if not name.strip():
            msg = "Group name is required"
            raise GroupCreateFailed(msg)
        try:
            created = api.create_group(token, name.strip(), keyids)
        except Unauthorized:
            raise
        except NetworkFailure as e:
            msg = f"Failed to create group: {e}"
            raise GroupCreateFailed(msg) from e
        logger.info("Created group %r with %d members", name, len(keyids))
        return created

    def cached_key(self, keyid: str) -> str | None:
        return self.store.get(cache_key(keyid))

    def forget_cached_key(self, keyid: str) -> None:
        """Drop a cached key so the next resolve fetches it again."""
        self.store.delete(cache_key(keyid))
        logger.info("Forgot cached key for %s", keyid)

    def fetch_verified_key(self, api: ServerApi, token: str, keyid: str) -> str:
        """Fetch a member's key, check it derives ``keyid``, then cache it."""
        armored = api.get_public_key(token, keyid)
        if not armored:
            msg = f"Server has no public key for {keyid}"
            raise VerificationFailed(msg, expected=keyid, actual=None)

        try:
            actual = self.engine.key_id(armored)
        except ValueError as e:
            msg = f"Server returned an unreadable key for {keyid}"
            raise VerificationFailed(msg, expected=keyid, actual=None) from e
        if actual != keyid:
            msg = f"Server returned key {actual} when asked for {keyid}"
            raise VerificationFailed(msg, expected=keyid, actual=actual)

        self.store.set(cache_key(keyid), armored)
        return armored

    def resolve_recipient_keys(
        self, api: ServerApi, group: Group, token: str
    ) -> list[str]:
        """Public keys of every other member that can be resolved and verified.

        Members whose key cannot be fetched or fails verification are left
        out. Unauthorized propagates since the token is bad for every member.
        """
        keys: list[str] = []
        for member in group.other_members():
            armored = self.cached_key(member.keyid)
            if armored is None:
                try:
                    armored = self.fetch_verified_key(api, token, member.keyid)
                except Unauthorized:
                    raise
                except VerificationFailed as e:
                    logger.warning("Skipping member %s: %s", member.keyid, e)
                    continue
                except NetworkFailure as e:
                    logger.warning(
                        "Failed to fetch public key for %s: %s", member.keyid, e
                    )
                    continue
            keys.append(armored)

        if not keys:
            logger.info("Group %s has no recipients", group.id)
        return keys
