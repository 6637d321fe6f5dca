"""Operator device management schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ActivateRequest(BaseModel):
    expires_at: Optional[datetime] = None
    max_streams: Optional[int] = None


class DeviceUpdateRequest(BaseModel):
    status: Optional[str] = None
    expires_at: Optional[datetime] = None  # explicit null clears the expiry
    max_streams: Optional[int] = None


class UpstreamRequest(BaseModel):
    upstream_base_url: Optional[str] = None
    username: str = ""
    password: str = ""


class DeviceStatusResponse(BaseModel):
    device_code: str
    status: str
