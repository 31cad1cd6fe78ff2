"""Core protocols -- the extension points that define the system.

The core imports these protocols. Plugins implement them.
The core never imports concrete implementations.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Coroutine, Protocol, runtime_checkable

from core.models.events import Event
from core.models.market import AssetSymbol

# The shape MarketDataClient consumes: asset -> raw provider JSON
FetchFunction = Callable[[AssetSymbol], Awaitable[dict]]


# ---------------------------------------------------------------------------
# 1. EventBus -- state change notifications
# ---------------------------------------------------------------------------

@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe event bus.

    Default implementation: AsyncIOBus (in-process pub/sub).
    """

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers of its type."""
        ...

    def subscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Register a callback for events of the given type."""
        ...

    def unsubscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Remove a previously registered callback."""
        ...


# ---------------------------------------------------------------------------
# 2. MarketDataProvider -- raw per-asset market data over the network
# ---------------------------------------------------------------------------

@runtime_checkable
class MarketDataProvider(Protocol):
    """Fetches the raw market document for one asset.

    The provider only does transport. Translating its schema into a
    MarketSnapshot is MarketDataClient's job.
    """

    @property
    def name(self) -> str:
        """Unique provider name, e.g. 'coingecko'."""
        ...

    async def fetch_raw(self, asset: AssetSymbol) -> dict:
        """Return the decoded JSON body for an asset.

        Raises FetchError on transport failures or non-200 responses.
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
