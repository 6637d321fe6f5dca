"""Playback tokens: narrowly scoped, short-lived stream grants.

A playback token names exactly one stream for one device. It can be handed to
an unauthenticated player; redeeming it yields a redirect to the upstream
stream with the device's credentials embedded in the path, so neither the
device nor the player ever holds them.
"""

import logging
import re
from urllib.parse import urlencode

from sqlmodel import Session

from streamgate.errors import InvalidToken, NotActive, ValidationError
from streamgate.models.device import Device, DeviceAccess, is_usable
from streamgate.services import upstream_service
from streamgate.services.session_service import SessionContext
from streamgate.utils.security import PlaybackClaims, TokenSigner
from streamgate.utils.urls import build_url, path_segment
from streamgate.utils.vault import CredentialVault

logger = logging.getLogger(__name__)

STREAM_TYPES = ("live", "vod", "series")

# stream type -> upstream path prefix
UPSTREAM_PATHS = {
    "live": "live",
    "vod": "movie",
    "series": "series",
}

FORMAT_EXTENSIONS = {
    "hls": "m3u8",
    "dash": "mpd",
}

REDEEM_PATH = "/api/v1/playback/stream"

_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def clamp_ttl(ttl, default: int, minimum: int = 60, maximum: int = 86400) -> int:
    """Clamp a requested TTL in seconds; unparseable values fall back to ``default``."""
    try:
        value = int(ttl)
    except (TypeError, ValueError):
        value = default
    return max(minimum, min(maximum, value))


def _normalize_id(value, name: str) -> str | None:
    s = str(value if value is not None else "").strip()
    if not s:
        return None
    if not _ID_RE.match(s):
        raise ValidationError(f"invalid {name}")
    return s


def _validate_request(stream_type, stream_id, episode_id) -> tuple[str, str | None, str | None]:
    stream_type = str(stream_type or "").strip().lower()
    if not stream_type:
        raise ValidationError("type required")
    if stream_type not in STREAM_TYPES:
        raise ValidationError("invalid type")

    stream_id = _normalize_id(stream_id, "stream_id")
    episode_id = _normalize_id(episode_id, "episode_id")
    if stream_type == "series" and not episode_id:
        raise ValidationError("episode_id required for series")
    if stream_type != "series" and not stream_id:
        raise ValidationError("stream_id required")
    return stream_type, stream_id, episode_id


def normalize_format(value) -> str:
    fmt = str(value or "hls").strip().lower()
    if fmt not in FORMAT_EXTENSIONS:
        raise ValidationError("format must be hls or dash")
    return fmt


def playback_link(public_base_url: str, token: str, fmt: str) -> str:
    base = str(public_base_url or "").strip().rstrip("/")
    query = urlencode({"token": token, "format": fmt})
    return f"{base}{REDEEM_PATH}?{query}"


def mint_playback_token(
    signer: TokenSigner,
    context: SessionContext,
    stream_type: str,
    stream_id: str | None = None,
    episode_id: str | None = None,
    ttl: int | None = None,
    default_ttl: int = 3600,
    ttl_min: int = 60,
    ttl_max: int = 86400,
    public_base_url: str = "",
) -> dict:
    """Mint a playback token for one stream of the authenticated device."""
    stream_type, stream_id, episode_id = _validate_request(stream_type, stream_id, episode_id)
    ttl_seconds = clamp_ttl(ttl if ttl is not None else default_ttl, default_ttl, ttl_min, ttl_max)

    claims = PlaybackClaims(
        device_id=context.device_id,
        stream_type=stream_type,
        stream_id=stream_id if stream_type != "series" else None,
        episode_id=episode_id if stream_type == "series" else None,
    )
    token, expires_at = signer.create_playback_token(claims, ttl_seconds)

    return {
        "token": token,
        "expires_at": expires_at,
        "urls": {fmt: playback_link(public_base_url, token, fmt) for fmt in FORMAT_EXTENSIONS},
    }


def build_stream_url(
    upstream: upstream_service.UpstreamCredentials,
    claims: PlaybackClaims,
    fmt: str = "hls",
) -> str:
    """``{base}/{live|movie|series}/{user}/{pass}/{id}.{ext}``"""
    prefix = UPSTREAM_PATHS.get(claims.stream_type)
    if prefix is None:
        raise InvalidToken("invalid stream type")

    target = claims.episode_id if claims.stream_type == "series" else claims.stream_id
    if not target or not _ID_RE.match(str(target)):
        raise InvalidToken("invalid stream id")

    ext = FORMAT_EXTENSIONS[normalize_format(fmt)]
    path = "/".join([
        "",
        prefix,
        path_segment(upstream.username),
        path_segment(upstream.password),
        f"{target}.{ext}",
    ])
    return build_url(upstream.base_url, path)


def redeem_playback_token(
    session: Session,
    signer: TokenSigner,
    vault: CredentialVault,
    token: str,
    fmt: str | None = None,
    default_base_url: str = "",
) -> str:
    """Resolve a playback token to the upstream stream URL, or raise."""
    token = str(token or "").strip()
    if not token:
        raise ValidationError("token required")
    fmt = normalize_format(fmt)

    claims = signer.decode_playback_token(token)

    device = session.get(Device, claims.device_id)
    access = session.get(DeviceAccess, claims.device_id)
    if not is_usable(device, access):
        raise NotActive("device not active")

    upstream = upstream_service.resolve(session, vault, claims.device_id, default_base_url)
    url = build_stream_url(upstream, claims, fmt)
    logger.info(
        "Redeemed playback token for device %s (%s %s)",
        claims.device_id, claims.stream_type, claims.episode_id or claims.stream_id,
    )
    return url
