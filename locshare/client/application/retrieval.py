"""
Application layer: pulls recent location updates and decrypts them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from locshare.client.domain.entities import RetrievalReport
from locshare.common.exceptions import DecryptFailed
from locshare.common.models import LocationSample, LocationUpdateRecord, PositionMarker

if TYPE_CHECKING:
    from locshare.client.domain.entities import SessionContext
    from locshare.client.infrastructure.api import ServerApi
    from locshare.common.interfaces import ICryptoEngine, IMarkerSink

logger = logging.getLogger(__name__)


class RetrievalPipeline:
    """Fetches, decrypts and renders location updates.

    A record that cannot be parsed or decrypted is dropped on its own;
    ``on_dropped`` is told about each one so callers can count them. It gets
    the parsed record, or the raw item when the record itself is malformed.
    """

    def __init__(
        self,
        engine: ICryptoEngine,
        limit: int = 1,
        marker_sink: IMarkerSink | None = None,
        on_dropped: Callable[[Any, Exception], None] | None = None,
    ):
        self.engine = engine
        self.limit = limit
        self.marker_sink = marker_sink
        self.on_dropped = on_dropped

    def decode(self, record: LocationUpdateRecord, private_key: str) -> PositionMarker:
        plaintext = self.engine.decrypt(record.cipher_text, private_key)
        sample = LocationSample.model_validate_json(plaintext)
        return PositionMarker(
            record_id=record.id,
            user=record.user,
            group_id=record.group_id if record.group_id is not None else sample.group_id,
            timestamp=record.timestamp or sample.timestamp,
            latitude=sample.coords.latitude,
            longitude=sample.coords.longitude,
        )

    def _drop(self, report: RetrievalReport, item: Any, error: Exception) -> None:
        report.dropped += 1
        record_id = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
        logger.warning("Dropping location update %s: %s", record_id, error)
        if self.on_dropped:
            self.on_dropped(item, error)

    def run(self, api: ServerApi, session: SessionContext) -> RetrievalReport:
        items = api.get_locations(session.token, self.limit)
        report = RetrievalReport(fetched=len(items))

        for item in items:
            try:
                record = LocationUpdateRecord.model_validate(item)
            except ValidationError as e:
                self._drop(report, item, e)
                continue
            try:
                marker = self.decode(record, session.private_key)
            except (DecryptFailed, ValidationError) as e:
                self._drop(report, record, e)
                continue
            report.markers.append(marker)

        if report.dropped:
            logger.info(
                "Decrypted %d of %d location updates", len(report.markers), report.fetched
            )
        if self.marker_sink:
            self.marker_sink(report.markers)
        return report
