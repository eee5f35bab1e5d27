"""
Application layer: encrypts one location sample per group and posts it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from locshare.client.domain.entities import FanoutReport
from locshare.common.exceptions import (
    FanoutFailed,
    GroupFetchFailed,
    NetworkFailure,
    Unauthorized,
)
from locshare.common.models import LocationSample

if TYPE_CHECKING:
    from locshare.client.application.group_manager import GroupManager
    from locshare.client.domain.entities import SessionContext
    from locshare.client.infrastructure.api import ServerApi
    from locshare.common.interfaces import ICryptoEngine
    from locshare.common.models import Coordinates, Group

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FanoutPipeline:
    """Delivers a location sample to every group the caller belongs to."""

    def __init__(self, groups: GroupManager, engine: ICryptoEngine):
        self.groups = groups
        self.engine = engine

    def run(
        self,
        api: ServerApi,
        session: SessionContext,
        coords: Coordinates,
        timestamp: str | None = None,
    ) -> FanoutReport:
        """Post ``coords`` to each group; partial failures land in the report.

        Raises GroupFetchFailed if the group list cannot be fetched and
        FanoutFailed if every attempted post failed.
        """
        timestamp = timestamp or utc_timestamp()
        try:
            groups = self.groups.list_groups(api, session.token)
        except NetworkFailure as e:
            msg = "Failed to fetch groups"
            raise GroupFetchFailed(msg) from e

        report = FanoutReport()
        for group in groups:
            self._send_to_group(api, session, group, coords, timestamp, report)

        logger.info(
            "Location fan-out: %d delivered, %d failed, %d skipped",
            len(report.delivered),
            len(report.failed),
            len(report.skipped),
        )
        if report.all_failed:
            msg = "Failed to post location to any group"
            raise FanoutFailed(msg, report)
        return report

    def _send_to_group(
        self,
        api: ServerApi,
        session: SessionContext,
        group: Group,
        coords: Coordinates,
        timestamp: str,
        report: FanoutReport,
    ) -> None:
        keys = self.groups.resolve_recipient_keys(api, group, session.token)
        if not keys:
            report.skipped.append(group.id)
            return

        sample = LocationSample(group_id=group.id, timestamp=timestamp, coords=coords)
        try:
            ciphertext = self.engine.encrypt(sample.to_plaintext(), keys)
            api.post_location(session.token, [group.id], ciphertext)
        except Unauthorized:
            raise
        except (NetworkFailure, ValueError) as e:
            logger.warning("Failed to post location to group %s: %s", group.id, e)
            report.failed[group.id] = str(e)
            return
        report.delivered.append(group.id)
