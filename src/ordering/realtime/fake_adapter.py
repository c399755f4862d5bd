"""Fake realtime adapter: records emitted messages for testing."""

from ordering.realtime.port import RealtimePort


class InMemoryRealtime(RealtimePort):
    """Realtime adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.messages: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Realtime transport unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Realtime transport unavailable"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def emit(self, channel: str, event_name: str, payload: dict) -> None:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)
        self.messages.append({"channel": channel, "event": event_name, "payload": payload})

    def messages_for(self, channel: str, event_name: str | None = None) -> list[dict]:
        return [
            message
            for message in self.messages
            if message["channel"] == channel and (event_name is None or message["event"] == event_name)
        ]

    def reset(self):
        """Clear recorded messages (useful between tests)."""
        self.messages.clear()
        self.should_succeed = True
        self.failure_reason = "Realtime transport unavailable"
