"""Playback token schemas."""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel


class PlaybackTokenRequest(BaseModel):
    type: str = ""
    stream_id: Optional[Union[str, int]] = None
    episode_id: Optional[Union[str, int]] = None
    ttl_sec: Optional[int] = None


class PlaybackUrls(BaseModel):
    hls: str
    dash: str


class PlaybackTokenResponse(BaseModel):
    token: str
    expires_at: datetime
    urls: PlaybackUrls
