"""
Change Feed Abstract Base Class

Defines the interface of the realtime channel that carries row changes from
the shared store to every connected floor client. Consumers treat each
event as a cue to reload, never as a patch.

Usage:
    async with feed.subscribe() as events:
        async for event in events:
            ...
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager, AsyncIterator

from tableside.schemas import ChangeEvent


class ChangeFeedError(Exception):
    """Raised when the feed cannot publish or subscribe."""


class BaseChangeFeed(ABC):
    """Abstract base class for change feeds."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        """Broadcast one change event to all subscribers."""
        pass

    @abstractmethod
    def subscribe(self) -> AsyncContextManager[AsyncIterator[ChangeEvent]]:
        """
        Open a subscription.

        Entering the context establishes the subscription; the yielded
        iterator produces events until the context exits.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check feed connectivity."""
        pass

    async def close(self) -> None:
        """Release connections held by the feed."""
        return None
