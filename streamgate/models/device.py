"""Device, access envelope and upstream credential models."""

import secrets
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from streamgate.utils.clock import as_utc, utcnow

DEVICE_STATUSES = ("pending", "active", "suspended")


class Device(SQLModel, table=True):
    __tablename__ = "devices"

    id: str = Field(default_factory=lambda: f"dev_{secrets.token_hex(6)}", primary_key=True)
    device_uuid: str = Field(unique=True, index=True, max_length=64)
    device_code: str = Field(unique=True, index=True, max_length=16)
    status: str = Field(default="pending")  # 'pending' | 'active' | 'suspended'
    platform: Optional[str] = None
    model: Optional[str] = None
    app_version: Optional[str] = None
    last_seen_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DeviceAccess(SQLModel, table=True):
    __tablename__ = "device_access"

    device_id: str = Field(foreign_key="devices.id", primary_key=True)
    expires_at: Optional[datetime] = None
    max_streams: int = Field(default=1)
    adult_pin_enc: Optional[str] = None  # vault ciphertext
    updated_at: datetime = Field(default_factory=utcnow)


class DeviceUpstream(SQLModel, table=True):
    __tablename__ = "device_upstream"

    device_id: str = Field(foreign_key="devices.id", primary_key=True)
    upstream_base_url: Optional[str] = None
    enc_username: str  # vault ciphertext
    enc_password: str  # vault ciphertext
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


def is_expired(access: DeviceAccess | None, now: datetime | None = None) -> bool:
    if access is None or access.expires_at is None:
        return False
    return as_utc(access.expires_at) < (now or utcnow())


def is_usable(device: Device | None, access: DeviceAccess | None, now: datetime | None = None) -> bool:
    """True when the device is active and its access window has not elapsed."""
    if device is None or device.status != "active":
        return False
    return not is_expired(access, now)
