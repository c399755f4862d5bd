"""Logging realtime adapter: writes every emitted message to the structured log.

Used when no socket server is attached, so fan-out remains observable.
"""

import structlog

from ordering.realtime.port import RealtimePort

logger = structlog.get_logger(__name__)


class LoggingRealtime(RealtimePort):
    def emit(self, channel: str, event_name: str, payload: dict) -> None:
        logger.info("realtime_emit", channel=channel, event_name=event_name, payload=payload)
