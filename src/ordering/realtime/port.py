"""Realtime notification port: abstract interface for pushing messages to connected clients."""

from abc import ABC, abstractmethod


class RealtimePort(ABC):
    """Abstract interface for realtime fan-out adapters (e.g. a socket server)."""

    @abstractmethod
    def emit(self, channel: str, event_name: str, payload: dict) -> None:
        """Push ``payload`` under ``event_name`` to every client subscribed to ``channel``.

        Raises on transport failure; callers decide whether failures matter.
        """
        ...


def user_channel(user_id) -> str:
    return f"user_{user_id}"


def order_channel(order_id) -> str:
    return f"order_{order_id}"
