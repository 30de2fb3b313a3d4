"""Channel to an embedded player.

The browser hosts the provider's iframe player; the server reaches it
through a transport that delivers commands. Native player messages travel
the other way and are handed to the tracker.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from starlette.websockets import WebSocketState


if TYPE_CHECKING:
    from fastapi import WebSocket


class PlayerTransport(ABC):
    """Sends messages to the embedded player."""

    @abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        """Deliver one message."""


class WebSocketPlayerTransport(PlayerTransport):
    """Transport over the player WebSocket connection."""

    def __init__(self, websocket: "WebSocket"):
        self.websocket = websocket

    async def send(self, message: dict[str, Any]) -> None:
        # Messages emitted while tearing down a closed connection are dropped
        if self.websocket.client_state != WebSocketState.CONNECTED:
            return
        await self.websocket.send_json(message)
