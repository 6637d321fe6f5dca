"""Session tokens: minting after device authentication and per-request verification."""

from dataclasses import dataclass

from sqlmodel import Session

from streamgate.errors import InvalidToken, NotActive
from streamgate.models.device import Device, DeviceAccess, is_usable
from streamgate.utils.security import SessionClaims, TokenSigner


@dataclass
class SessionContext:
    """The device behind a verified session token, with live entitlements."""
    device_id: str
    device_code: str
    max_streams: int


def mint_session_token(signer: TokenSigner, device: Device, access: DeviceAccess | None) -> str:
    claims = SessionClaims(
        device_id=device.id,
        device_code=device.device_code,
        max_streams=access.max_streams if access else 1,
    )
    return signer.create_session_token(claims)


def verify_session_token(session: Session, signer: TokenSigner, token: str) -> SessionContext:
    """Validate a session token and re-check the device against storage.

    The token only proves identity; status, expiry and ``max_streams`` come from
    the current DeviceAccess row so a suspension takes effect immediately.
    """
    if not token:
        raise InvalidToken("missing token")
    claims = signer.decode_session_token(token)

    device = session.get(Device, claims.device_id)
    if device is None:
        raise InvalidToken("device not found")
    access = session.get(DeviceAccess, device.id)
    if not is_usable(device, access):
        raise NotActive("device not active")

    return SessionContext(
        device_id=device.id,
        device_code=device.device_code,
        max_streams=access.max_streams if access else claims.max_streams,
    )
