"""Video test fixtures: a recording transport and a stubbed SDK loader."""

from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from linguapath.courses.models import VideoProvider
from linguapath.video.models import VideoMetadata
from linguapath.video.sdk import ProviderSDKLoader
from linguapath.video.transport import PlayerTransport


class RecordingTransport(PlayerTransport):
    """Keeps every message sent to the player."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def send(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    def of_type(self, kind: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m.get("type") == kind]

    @property
    def commands(self) -> list[str]:
        return [m["action"] for m in self.of_type("command")]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def sdk_loader() -> Mock:
    loader = Mock(spec=ProviderSDKLoader)

    async def load(provider: VideoProvider, video_id: str) -> VideoMetadata:
        return VideoMetadata(
            provider=provider, video_id=video_id, title="Ordering coffee", duration=120
        )

    loader.load = AsyncMock(side_effect=load)
    return loader
