"""Device registration, auth and adult PIN request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# --- Registration ---

class RegisterRequest(BaseModel):
    device_uuid: Optional[str] = None
    device_id: Optional[str] = None  # legacy alias for device_uuid
    platform: Optional[str] = None
    model: Optional[str] = None
    app_version: Optional[str] = None


class RegisterResponse(BaseModel):
    device_code: str
    status: str


# --- Auth ---

class DeviceAuthRequest(BaseModel):
    device_uuid: Optional[str] = None
    device_id: Optional[str] = None  # legacy alias for device_uuid
    device_code: str = ""


class DeviceAuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    device_id: str
    max_streams: int
    expires_at: Optional[datetime]


# --- Profile ---

class DeviceProfileResponse(BaseModel):
    device_code: str
    status: str
    platform: Optional[str]
    model: Optional[str]
    app_version: Optional[str]
    expires_at: Optional[datetime]
    max_streams: int
    last_seen_at: Optional[datetime]


# --- Adult PIN ---

class AdultPinRequest(BaseModel):
    pin: str = Field(default="", description="4-digit PIN")


class AdultPinStatusResponse(BaseModel):
    enabled: bool


class OkResponse(BaseModel):
    ok: bool = True
