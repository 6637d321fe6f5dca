"""Common API dependencies: vault/signer access, device session and operator checks."""

import secrets

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from streamgate.config import settings
from streamgate.database import get_session
from streamgate.errors import AdminUnauthorized, InvalidToken
from streamgate.services.session_service import SessionContext, verify_session_token
from streamgate.utils.security import TokenSigner
from streamgate.utils.vault import CredentialVault

bearer_scheme = HTTPBearer(auto_error=False)


def get_vault(request: Request) -> CredentialVault:
    return request.app.state.vault


def get_signer(request: Request) -> TokenSigner:
    return request.app.state.signer


def get_current_device(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
    signer: TokenSigner = Depends(get_signer),
) -> SessionContext:
    """Extract and re-validate the device behind a session bearer token."""
    if credentials is None:
        raise InvalidToken("missing token")
    return verify_session_token(session, signer, credentials.credentials)


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    """Require the operator API key in the ``X-Admin-Key`` header."""
    expected = settings.admin_api_key
    if not expected or not x_admin_key or not secrets.compare_digest(
        x_admin_key.encode(), expected.encode()
    ):
        raise AdminUnauthorized("admin unauthorized")
