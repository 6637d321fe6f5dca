"""Security utilities: JWT session and playback tokens.

Each token kind is a claims dataclass with its own type tag, and only playback
tokens carry the playback audience/issuer, so a verifier for one kind cannot
accept the other. PyJWT rejects a token carrying ``aud`` when no audience is
expected, and a token missing ``aud`` when one is.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import ClassVar, Optional

import jwt

from streamgate.errors import InvalidToken
from streamgate.utils.clock import utcnow


@dataclass(frozen=True)
class SessionClaims:
    TOKEN_TYPE: ClassVar[str] = "session"

    device_id: str
    device_code: str
    max_streams: int
    expires_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        return {
            "device_id": self.device_id,
            "device_code": self.device_code,
            "max_streams": self.max_streams,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionClaims":
        return cls(
            device_id=str(payload["device_id"]),
            device_code=str(payload["device_code"]),
            max_streams=int(payload.get("max_streams") or 1),
            expires_at=_exp_datetime(payload),
        )


@dataclass(frozen=True)
class PlaybackClaims:
    TOKEN_TYPE: ClassVar[str] = "playback"

    device_id: str
    stream_type: str
    stream_id: Optional[str] = None
    episode_id: Optional[str] = None
    expires_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        return {
            "device_id": self.device_id,
            "stream_type": self.stream_type,
            "stream_id": self.stream_id,
            "episode_id": self.episode_id,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "PlaybackClaims":
        return cls(
            device_id=str(payload["device_id"]),
            stream_type=str(payload["stream_type"]),
            stream_id=payload.get("stream_id"),
            episode_id=payload.get("episode_id"),
            expires_at=_exp_datetime(payload),
        )


def _exp_datetime(payload: dict) -> Optional[datetime]:
    exp = payload.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc)


class TokenSigner:
    """Signs and verifies both token kinds with the process-wide secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(hours=12),
        playback_audience: str = "playback",
        playback_issuer: str = "streamgate-api",
    ):
        if not secret:
            raise ValueError("Missing JWT signing secret")
        self._secret = secret
        self._algorithm = algorithm
        self.session_ttl = session_ttl
        self.playback_audience = playback_audience
        self.playback_issuer = playback_issuer

    @classmethod
    def from_settings(cls, settings) -> "TokenSigner":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            session_ttl=timedelta(hours=settings.session_token_expire_hours),
            playback_audience=settings.playback_audience,
            playback_issuer=settings.playback_issuer,
        )

    # --- Session tokens ---

    def create_session_token(self, claims: SessionClaims, now: datetime | None = None) -> str:
        now = now or utcnow()
        payload = {
            **claims.to_payload(),
            "type": SessionClaims.TOKEN_TYPE,
            "iat": now,
            "exp": now + self.session_ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_session_token(self, token: str) -> SessionClaims:
        payload = self._decode(token, SessionClaims.TOKEN_TYPE)
        try:
            return SessionClaims.from_payload(payload)
        except (KeyError, TypeError, ValueError):
            raise InvalidToken("Malformed session claims")

    # --- Playback tokens ---

    def create_playback_token(
        self,
        claims: PlaybackClaims,
        ttl_seconds: int,
        now: datetime | None = None,
    ) -> tuple[str, datetime]:
        now = now or utcnow()
        expires_at = now + timedelta(seconds=ttl_seconds)
        payload = {
            **claims.to_payload(),
            "type": PlaybackClaims.TOKEN_TYPE,
            "aud": self.playback_audience,
            "iss": self.playback_issuer,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return token, expires_at

    def decode_playback_token(self, token: str) -> PlaybackClaims:
        payload = self._decode(
            token,
            PlaybackClaims.TOKEN_TYPE,
            audience=self.playback_audience,
            issuer=self.playback_issuer,
        )
        try:
            return PlaybackClaims.from_payload(payload)
        except (KeyError, TypeError, ValueError):
            raise InvalidToken("Malformed playback claims")

    def _decode(self, token: str, expected_type: str, **kwargs) -> dict:
        """Decode and validate a JWT. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
                **kwargs,
            )
        except jwt.PyJWTError:
            raise InvalidToken("Invalid or expired token")

        if payload.get("type") != expected_type or "device_id" not in payload:
            raise InvalidToken("Invalid token type")
        return payload
