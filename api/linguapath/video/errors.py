"""Video player errors."""

from enum import Enum


class PlayerErrorCategory(str, Enum):
    """Provider-independent category of a player failure."""

    INVALID_VIDEO_ID = "invalid_video_id"
    PLAYBACK_ERROR = "playback_error"
    NOT_FOUND = "not_found"
    PRIVATE = "private"
    PASSWORD_PROTECTED = "password_protected"
    REGION_LOCKED = "region_locked"
    EMBED_DISABLED = "embed_disabled"
    SDK_UNAVAILABLE = "sdk_unavailable"
    UNKNOWN = "unknown"


CATEGORY_MESSAGES: dict[PlayerErrorCategory, str] = {
    PlayerErrorCategory.INVALID_VIDEO_ID: "The video id is invalid.",
    PlayerErrorCategory.PLAYBACK_ERROR: "The video cannot be played in this browser.",
    PlayerErrorCategory.NOT_FOUND: "The video was not found or is private.",
    PlayerErrorCategory.PRIVATE: "This video is private or has domain restrictions.",
    PlayerErrorCategory.PASSWORD_PROTECTED: "This video requires a password.",
    PlayerErrorCategory.REGION_LOCKED: "This video is not available in your region.",
    PlayerErrorCategory.EMBED_DISABLED: "The owner of this video does not allow embedded playback.",
    PlayerErrorCategory.SDK_UNAVAILABLE: "The video player could not be loaded.",
    PlayerErrorCategory.UNKNOWN: "Video playback error.",
}


class VideoPlayerError(Exception):
    """Base video player error."""

    def __init__(self, message: str, code: str = "video_player_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class PlayerInitError(VideoPlayerError):
    """The player could not be initialized (missing container, bad id, SDK down)."""

    def __init__(self, message: str = "Failed to initialize the video player"):
        super().__init__(message, "player_init_failed")


class PlayerError(VideoPlayerError):
    """Provider-level refusal or playback failure."""

    def __init__(
        self,
        category: PlayerErrorCategory,
        message: str | None = None,
        native_code: str | int | None = None,
    ):
        self.category = category
        self.native_code = native_code
        super().__init__(message or CATEGORY_MESSAGES[category], category.value)

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "message": self.message,
            "native_code": self.native_code,
        }


class InvalidPlayerStateError(VideoPlayerError):
    """Operation not allowed in the player's current state."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} while the player is {current}",
            "invalid_player_state",
        )
