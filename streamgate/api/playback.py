"""Playback token mint and redeem endpoints."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from streamgate.api.deps import get_current_device, get_signer, get_vault
from streamgate.config import settings
from streamgate.database import get_session
from streamgate.schemas.playback import PlaybackTokenRequest, PlaybackTokenResponse
from streamgate.services import playback_service
from streamgate.services.session_service import SessionContext
from streamgate.utils.security import TokenSigner
from streamgate.utils.vault import CredentialVault

router = APIRouter(prefix="/playback", tags=["playback"])


@router.post("/token", response_model=PlaybackTokenResponse)
def mint_token(
    request: PlaybackTokenRequest,
    device: SessionContext = Depends(get_current_device),
    signer: TokenSigner = Depends(get_signer),
):
    """Mint a short-lived token for one stream. The token alone is enough to play it."""
    result = playback_service.mint_playback_token(
        signer,
        device,
        stream_type=request.type,
        stream_id=request.stream_id,
        episode_id=request.episode_id,
        ttl=request.ttl_sec,
        default_ttl=settings.playback_token_ttl,
        ttl_min=settings.playback_ttl_min,
        ttl_max=settings.playback_ttl_max,
        public_base_url=settings.playback_base_url,
    )
    return PlaybackTokenResponse(**result)


@router.get("/stream")
def redeem_token(
    token: str = Query(default=""),
    format: str = Query(default="hls"),
    session: Session = Depends(get_session),
    signer: TokenSigner = Depends(get_signer),
    vault: CredentialVault = Depends(get_vault),
):
    """Verify a playback token and redirect to the upstream stream."""
    url = playback_service.redeem_playback_token(
        session,
        signer,
        vault,
        token,
        fmt=format,
        default_base_url=settings.upstream_base_url,
    )
    return RedirectResponse(url, status_code=302, headers={"Cache-Control": "no-store"})
