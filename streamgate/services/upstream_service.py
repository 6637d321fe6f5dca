"""Upstream panel credentials: operator storage and per-device resolution.

Credentials are vault-encrypted at rest and only decrypted for the caller that
builds the upstream request. They are never logged.
"""

import logging
from dataclasses import dataclass, field

from sqlmodel import Session

from streamgate.errors import MissingBaseUrl, NotConfigured, NotFoundError, ValidationError
from streamgate.models.device import DeviceUpstream
from streamgate.services.device_service import get_device_by_code, norm_str
from streamgate.utils.clock import utcnow
from streamgate.utils.urls import normalize_base_url
from streamgate.utils.vault import CredentialVault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamCredentials:
    base_url: str
    username: str = field(repr=False)
    password: str = field(repr=False)


def resolve(
    session: Session,
    vault: CredentialVault,
    device_id: str,
    default_base_url: str = "",
) -> UpstreamCredentials:
    """Decrypt the upstream credentials stored for a device."""
    row = session.get(DeviceUpstream, device_id)
    if row is None:
        raise NotConfigured("no upstream configured for device")

    username = vault.decrypt(row.enc_username)
    password = vault.decrypt(row.enc_password)

    base_url = normalize_base_url(row.upstream_base_url) or normalize_base_url(default_base_url)
    if not base_url:
        raise MissingBaseUrl("missing upstream base URL")

    return UpstreamCredentials(base_url=base_url, username=username, password=password)


def set_upstream_credentials(
    session: Session,
    vault: CredentialVault,
    device_code: str,
    username: str,
    password: str,
    base_url: str | None = None,
    default_base_url: str = "",
) -> DeviceUpstream:
    """Operator action: store (or replace) a device's upstream credentials."""
    if not username or not password:
        raise ValidationError("username + password required")

    base = normalize_base_url(norm_str(base_url, 255) or default_base_url)
    if not base:
        raise ValidationError("missing upstream_base_url")

    device = get_device_by_code(session, norm_str(device_code, 16).upper())
    if not device:
        raise NotFoundError("device not found")

    now = utcnow()
    row = session.get(DeviceUpstream, device.id)
    if row is None:
        row = DeviceUpstream(device_id=device.id, enc_username="", enc_password="", created_at=now)
    row.upstream_base_url = base
    row.enc_username = vault.encrypt(username)
    row.enc_password = vault.encrypt(password)
    row.updated_at = now
    session.add(row)
    session.commit()
    session.refresh(row)

    logger.info("Stored upstream credentials for device %s (%s)", device.device_code, base)
    return row
