"""Device registration, authentication and adult PIN endpoints."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from streamgate.api.deps import get_current_device, get_signer, get_vault
from streamgate.database import get_session
from streamgate.schemas.device import (
    AdultPinRequest,
    AdultPinStatusResponse,
    DeviceAuthRequest,
    DeviceAuthResponse,
    DeviceProfileResponse,
    OkResponse,
    RegisterRequest,
    RegisterResponse,
)
from streamgate.services import device_service
from streamgate.services.session_service import SessionContext
from streamgate.utils.security import TokenSigner
from streamgate.utils.vault import CredentialVault

router = APIRouter(prefix="/device", tags=["devices"])


@router.post("/register", response_model=RegisterResponse)
def register(request: RegisterRequest, session: Session = Depends(get_session)):
    """Register a device (or refresh an existing registration). New devices start pending."""
    result = device_service.register(
        session,
        device_uuid=request.device_uuid or request.device_id,
        platform=request.platform,
        model=request.model,
        app_version=request.app_version,
    )
    return RegisterResponse(**result)


@router.post("/auth", response_model=DeviceAuthResponse)
def authenticate(
    request: DeviceAuthRequest,
    session: Session = Depends(get_session),
    signer: TokenSigner = Depends(get_signer),
):
    """Exchange device uuid + code for a session token."""
    result = device_service.authenticate(
        session,
        signer,
        device_uuid=request.device_uuid or request.device_id,
        device_code=request.device_code,
    )
    return DeviceAuthResponse(**result)


@router.get("/profile", response_model=DeviceProfileResponse)
def profile(
    device: SessionContext = Depends(get_current_device),
    session: Session = Depends(get_session),
):
    return DeviceProfileResponse(**device_service.get_profile(session, device.device_id))


# --- Adult PIN ---

@router.post("/adult/set", response_model=OkResponse)
def set_adult_pin(
    request: AdultPinRequest,
    device: SessionContext = Depends(get_current_device),
    session: Session = Depends(get_session),
    vault: CredentialVault = Depends(get_vault),
):
    device_service.set_adult_pin(session, vault, device.device_id, request.pin)
    return OkResponse()


@router.post("/adult/verify", response_model=OkResponse)
def verify_adult_pin(
    request: AdultPinRequest,
    device: SessionContext = Depends(get_current_device),
    session: Session = Depends(get_session),
    vault: CredentialVault = Depends(get_vault),
):
    device_service.verify_adult_pin(session, vault, device.device_id, request.pin)
    return OkResponse()


@router.delete("/adult/reset", response_model=OkResponse)
def clear_adult_pin(
    device: SessionContext = Depends(get_current_device),
    session: Session = Depends(get_session),
):
    device_service.clear_adult_pin(session, device.device_id)
    return OkResponse()


@router.get("/adult/status", response_model=AdultPinStatusResponse)
def adult_pin_status(
    device: SessionContext = Depends(get_current_device),
    session: Session = Depends(get_session),
):
    return AdultPinStatusResponse(enabled=device_service.adult_pin_enabled(session, device.device_id))
