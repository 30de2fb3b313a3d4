"""Video API endpoints.

Provides routes for:
- Parsing a YouTube or Vimeo URL into provider and video id
"""

from fastapi import APIRouter, Query

from .dependencies import handle_video_error
from .schemas import ParsedVideoUrlResponse
from .urls import InvalidVideoUrlError, parse_video_url


router = APIRouter(prefix="/v1/video", tags=["video"])


@router.get(
    "/parse",
    response_model=ParsedVideoUrlResponse,
    summary="Parse a video URL",
)
async def parse_url(
    url: str = Query(..., min_length=1, max_length=2000, description="Video URL or id"),
) -> ParsedVideoUrlResponse:
    """Extract provider and video id (public)."""
    try:
        parsed = parse_video_url(url)
    except InvalidVideoUrlError as e:
        raise handle_video_error(e) from e
    return ParsedVideoUrlResponse(
        provider=parsed.provider,
        video_id=parsed.video_id,
        original_url=parsed.original_url,
    )
