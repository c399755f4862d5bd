"""Realtime adapter abstraction: pluggable fan-out to connected clients."""

import os

from ordering.realtime.port import RealtimePort

_realtime_instance: RealtimePort | None = None


def get_realtime() -> RealtimePort:
    """Return the configured realtime adapter (singleton).

    Uses InMemoryRealtime by default. Configure via the REALTIME_ADAPTER
    environment variable ("memory" or "log").
    """
    global _realtime_instance
    if _realtime_instance is None:
        adapter = os.environ.get("REALTIME_ADAPTER", "memory")
        if adapter == "memory":
            from ordering.realtime.fake_adapter import InMemoryRealtime

            _realtime_instance = InMemoryRealtime()
        elif adapter == "log":
            from ordering.realtime.log_adapter import LoggingRealtime

            _realtime_instance = LoggingRealtime()
        else:
            raise ValueError(f"Unknown realtime adapter: {adapter}")
    return _realtime_instance


def set_realtime(realtime: RealtimePort) -> None:
    """Override the active realtime adapter."""
    global _realtime_instance
    _realtime_instance = realtime


def reset_realtime():
    """Reset the realtime singleton (useful for testing)."""
    global _realtime_instance
    _realtime_instance = None
