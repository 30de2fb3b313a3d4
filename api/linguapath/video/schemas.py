"""Pydantic schemas for the video API and the player WebSocket."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from linguapath.courses.models import VideoProvider


class ParsedVideoUrlResponse(BaseModel):
    """Provider and id extracted from a video URL."""

    provider: VideoProvider
    video_id: str
    original_url: str


class PlayerOptionsMessage(BaseModel):
    """Player options a client may set on init."""

    autoplay: bool = False
    start_at: float | None = Field(
        default=None, ge=0, description="Start position; defaults to the resume position"
    )
    volume: int = Field(default=100, ge=0, le=100)
    playback_rate: float = Field(default=1.0, ge=0.25, le=2.0)


class PlayerInitMessage(BaseModel):
    """First message on /ws/player: which lesson to play."""

    type: Literal["init"]
    course_id: UUID
    lesson_id: UUID
    options: PlayerOptionsMessage = PlayerOptionsMessage()


class PlayerControlMessage(BaseModel):
    """Transport control requested by the client."""

    type: Literal["control"]
    action: Literal["play", "pause", "seek", "set_volume", "set_playback_rate"]
    value: float | None = None
