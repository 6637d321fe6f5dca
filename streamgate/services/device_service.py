"""Device registry: registration, authentication, lifecycle and adult PIN.

Devices move pending -> active -> suspended only through the operations here.
Expiry is never stored as a status; ``is_expired`` and ``is_usable`` evaluate
it lazily at every authorization check.
"""

import logging
import re
import secrets
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from streamgate.config import settings
from streamgate.errors import (
    CodeSpaceExhausted,
    Expired,
    InvalidTransition,
    NotActive,
    NotFoundError,
    NotRegistered,
    PinRejected,
    UuidInUse,
    ValidationError,
)
from streamgate.models.device import (
    DEVICE_STATUSES,
    Device,
    DeviceAccess,
    DeviceUpstream,
    is_expired,
)
from streamgate.services.session_service import mint_session_token
from streamgate.utils.clock import as_utc, utcnow
from streamgate.utils.device_code import make_device_code
from streamgate.utils.security import TokenSigner
from streamgate.utils.vault import CredentialVault

logger = logging.getLogger(__name__)

UUID_MIN_LENGTH = 8
UUID_MAX_LENGTH = 64

# Allowed operator transitions; re-applying the current status is a no-op.
TRANSITIONS = {
    "pending": {"active"},
    "active": {"suspended"},
    "suspended": {"active"},
}

_PIN_RE = re.compile(r"^\d{4}$")


# --- Input normalization ---

def norm_str(value, max_length: int = 120) -> str:
    s = str(value if value is not None else "").strip()
    return s[:max_length]


def normalize_uuid(value) -> str:
    device_uuid = norm_str(value, UUID_MAX_LENGTH + 1)
    if not device_uuid:
        raise ValidationError("device_uuid required")
    if not UUID_MIN_LENGTH <= len(device_uuid) <= UUID_MAX_LENGTH:
        raise ValidationError("invalid device_uuid")
    return device_uuid


def normalize_pin(value) -> str:
    pin = norm_str(value, 8)
    if not _PIN_RE.match(pin):
        raise ValidationError("pin must be 4 digits")
    return pin


# --- Lookups ---

def get_device_by_code(session: Session, code: str) -> Device | None:
    return session.exec(select(Device).where(Device.device_code == code)).first()


def get_device_by_uuid(session: Session, device_uuid: str) -> Device | None:
    return session.exec(select(Device).where(Device.device_uuid == device_uuid)).first()


def _require_device(session: Session, code: str) -> Device:
    code = norm_str(code, 16).upper()
    if not code:
        raise ValidationError("device code required")
    device = get_device_by_code(session, code)
    if not device:
        raise NotFoundError("device not found")
    return device


def _upsert_access(session: Session, device_id: str) -> DeviceAccess:
    access = session.get(DeviceAccess, device_id)
    if access is None:
        access = DeviceAccess(device_id=device_id)
    return access


# --- Lifecycle ---

def register(
    session: Session,
    device_uuid: str,
    platform: str | None = None,
    model: str | None = None,
    app_version: str | None = None,
) -> dict:
    """Register a device, or refresh an existing registration for the same uuid.

    New devices get a fresh code by optimistic insert: the unique index on
    ``device_code`` rejects collisions and we draw again, up to
    ``settings.device_code_attempts`` times.
    """
    device_uuid = normalize_uuid(device_uuid)
    platform = norm_str(platform, 32) or None
    model = norm_str(model, 80) or None
    app_version = norm_str(app_version, 32) or None

    existing = get_device_by_uuid(session, device_uuid)
    if existing:
        return _refresh_registration(session, existing, platform, model, app_version)

    for _ in range(settings.device_code_attempts):
        now = utcnow()
        device = Device(
            device_uuid=device_uuid,
            device_code=make_device_code(),
            status="pending",
            platform=platform,
            model=model,
            app_version=app_version,
            last_seen_at=now,
        )
        try:
            session.add(device)
            session.flush()
            session.add(DeviceAccess(device_id=device.id, max_streams=1))
            session.commit()
        except IntegrityError:
            session.rollback()
            # A concurrent register may have claimed this uuid.
            existing = get_device_by_uuid(session, device_uuid)
            if existing:
                return _refresh_registration(session, existing, platform, model, app_version)
            continue

        logger.info("Registered device %s (code %s)", device.id, device.device_code)
        return {"device_code": device.device_code, "status": device.status}

    logger.error("Device code space exhausted after %d attempts", settings.device_code_attempts)
    raise CodeSpaceExhausted("device_code collision")


def _refresh_registration(
    session: Session,
    device: Device,
    platform: str | None,
    model: str | None,
    app_version: str | None,
) -> dict:
    if platform:
        device.platform = platform
    if model:
        device.model = model
    if app_version:
        device.app_version = app_version
    now = utcnow()
    device.last_seen_at = now
    device.updated_at = now
    session.add(device)
    session.commit()
    return {"device_code": device.device_code, "status": device.status}


def authenticate(
    session: Session,
    signer: TokenSigner,
    device_uuid: str,
    device_code: str,
) -> dict:
    """Verify a device's registration and issue a session token."""
    device_uuid = normalize_uuid(device_uuid)
    device_code = norm_str(device_code, 16).upper()
    if not device_code:
        raise ValidationError("device_uuid + device_code required")

    device = get_device_by_code(session, device_code)
    if not device:
        raise NotRegistered("device not registered")
    if device.status != "active":
        raise NotActive("device not active")

    access = session.get(DeviceAccess, device.id)
    if is_expired(access):
        raise Expired("device expired")

    rebinding = device.device_uuid != device_uuid
    if rebinding:
        _rebind(session, device, device_uuid)

    now = utcnow()
    device.last_seen_at = now
    device.updated_at = now
    session.add(device)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        if not rebinding:
            raise
        # A concurrent register claimed the uuid after the holder lookup.
        logger.warning("Lost uuid race while rebinding device %s", device.id)
        raise UuidInUse("device already active")
    session.refresh(device)

    token = mint_session_token(signer, device, access)
    return {
        "access_token": token,
        "device_id": device.id,
        "max_streams": access.max_streams if access else 1,
        "expires_at": as_utc(access.expires_at) if access else None,
    }


def _rebind(session: Session, device: Device, device_uuid: str) -> None:
    """Move ``device`` onto a new uuid, discarding an orphaned pending holder."""
    holder = get_device_by_uuid(session, device_uuid)
    if holder and holder.id != device.id:
        if holder.status != "pending":
            raise UuidInUse("device already active")
        logger.warning(
            "Discarding pending device %s (code %s) to rebind its uuid to device %s",
            holder.id, holder.device_code, device.id,
        )
        _delete_rows(session, holder)
        # Deletes must hit the table before the uuid update below.
        session.flush()

    logger.info("Rebinding device %s to a new uuid", device.id)
    device.device_uuid = device_uuid


def _delete_rows(session: Session, device: Device) -> None:
    for model in (DeviceAccess, DeviceUpstream):
        row = session.get(model, device.id)
        if row is not None:
            session.delete(row)
    # Children reference devices.id; remove them first.
    session.flush()
    session.delete(device)


# --- Operator actions ---

def _transition(device: Device, status: str) -> None:
    if status not in DEVICE_STATUSES:
        raise ValidationError("invalid status")
    if status == device.status:
        return
    if status not in TRANSITIONS.get(device.status, set()):
        raise InvalidTransition(f"cannot move device from {device.status} to {status}")
    device.status = status


def activate(
    session: Session,
    code: str,
    expires_at: datetime | None = None,
    max_streams: int | None = None,
) -> Device:
    """Approve a pending (or reactivate a suspended) device and set its access window."""
    device = _require_device(session, code)
    _transition(device, "active")
    device.updated_at = utcnow()
    session.add(device)

    access = _upsert_access(session, device.id)
    access.expires_at = as_utc(expires_at)
    access.max_streams = _coerce_max_streams(max_streams)
    access.updated_at = utcnow()
    session.add(access)
    session.commit()
    session.refresh(device)

    logger.info("Activated device %s (max_streams=%d)", device.device_code, access.max_streams)
    return device


def suspend(session: Session, code: str) -> Device:
    device = _require_device(session, code)
    _transition(device, "suspended")
    device.updated_at = utcnow()
    session.add(device)
    session.commit()
    session.refresh(device)

    logger.info("Suspended device %s", device.device_code)
    return device


_UNSET = object()


def update_access(
    session: Session,
    code: str,
    status: str | None = None,
    expires_at=_UNSET,
    max_streams: int | None = None,
) -> dict:
    """Partial operator update of status and access limits.

    ``expires_at`` distinguishes "not given" from an explicit ``None``, which
    clears the expiry.
    """
    has_status = bool(status)
    has_expiry = expires_at is not _UNSET
    has_streams = max_streams is not None
    if not (has_status or has_expiry or has_streams):
        raise ValidationError("no fields to update")

    device = _require_device(session, code)
    if has_status:
        _transition(device, norm_str(status, 16).lower())
        device.updated_at = utcnow()
        session.add(device)

    if has_expiry or has_streams:
        access = _upsert_access(session, device.id)
        if has_expiry:
            access.expires_at = as_utc(expires_at)
        if has_streams:
            access.max_streams = _coerce_max_streams(max_streams)
        access.updated_at = utcnow()
        session.add(access)

    session.commit()
    return get_profile(session, device.id)


def delete_device(session: Session, code: str) -> None:
    device = _require_device(session, code)
    _delete_rows(session, device)
    session.commit()
    logger.info("Deleted device %s", device.device_code)


def _coerce_max_streams(value) -> int:
    try:
        return max(1, int(value or 1))
    except (TypeError, ValueError):
        raise ValidationError("max_streams must be a positive integer")


# --- Profile ---

def get_profile(session: Session, device_id: str) -> dict:
    device = session.get(Device, device_id)
    if not device:
        raise NotFoundError("device not found")
    access = session.get(DeviceAccess, device_id)
    return {
        "device_code": device.device_code,
        "status": device.status,
        "platform": device.platform,
        "model": device.model,
        "app_version": device.app_version,
        "expires_at": as_utc(access.expires_at) if access else None,
        "max_streams": access.max_streams if access else 1,
        "last_seen_at": as_utc(device.last_seen_at),
    }


# --- Adult PIN ---

def set_adult_pin(session: Session, vault: CredentialVault, device_id: str, pin: str) -> None:
    pin = normalize_pin(pin)
    access = _upsert_access(session, device_id)
    access.adult_pin_enc = vault.encrypt(pin)
    access.updated_at = utcnow()
    session.add(access)
    session.commit()


def verify_adult_pin(session: Session, vault: CredentialVault, device_id: str, pin: str) -> None:
    """Raise unless ``pin`` matches the stored adult PIN."""
    pin = normalize_pin(pin)
    access = session.get(DeviceAccess, device_id)
    if not access or not access.adult_pin_enc:
        raise NotFoundError("pin not set")

    stored = vault.decrypt(access.adult_pin_enc)
    if not secrets.compare_digest(stored.encode(), pin.encode()):
        raise PinRejected("invalid pin")


def clear_adult_pin(session: Session, device_id: str) -> None:
    access = session.get(DeviceAccess, device_id)
    if access and access.adult_pin_enc:
        access.adult_pin_enc = None
        access.updated_at = utcnow()
        session.add(access)
        session.commit()


def adult_pin_enabled(session: Session, device_id: str) -> bool:
    access = session.get(DeviceAccess, device_id)
    return bool(access and access.adult_pin_enc)
