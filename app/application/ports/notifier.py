from abc import ABC, abstractmethod
from typing import Any


class NotificationSinkPort(ABC):
    @abstractmethod
    def send(self, payload: dict[str, Any]) -> None:
        """Deliver one lifecycle event. Raise on failure so the caller can retry."""
        raise NotImplementedError

    def close(self) -> None:
        """Release connections held by the sink."""


class EventPublisherPort(ABC):
    @abstractmethod
    def publish(self, event: str, payload: dict[str, Any]) -> None:
        """
        Hand an event off for asynchronous delivery.

        Must return quickly and never raise: delivery problems are not the
        caller's concern.
        """
        raise NotImplementedError
