"""Operator endpoints: device approval, suspension, access limits and upstream credentials."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from streamgate.api.deps import get_vault, require_admin
from streamgate.config import settings
from streamgate.database import get_session
from streamgate.schemas.admin import (
    ActivateRequest,
    DeviceStatusResponse,
    DeviceUpdateRequest,
    UpstreamRequest,
)
from streamgate.schemas.device import DeviceProfileResponse, OkResponse
from streamgate.services import device_service, upstream_service
from streamgate.utils.vault import CredentialVault

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/devices/{code}/activate", response_model=DeviceStatusResponse)
def activate_device(
    code: str,
    request: ActivateRequest | None = None,
    session: Session = Depends(get_session),
):
    request = request or ActivateRequest()
    device = device_service.activate(
        session, code, expires_at=request.expires_at, max_streams=request.max_streams
    )
    return DeviceStatusResponse(device_code=device.device_code, status=device.status)


@router.post("/devices/{code}/suspend", response_model=DeviceStatusResponse)
def suspend_device(code: str, session: Session = Depends(get_session)):
    device = device_service.suspend(session, code)
    return DeviceStatusResponse(device_code=device.device_code, status=device.status)


@router.patch("/devices/{code}", response_model=DeviceProfileResponse)
def update_device(
    code: str,
    request: DeviceUpdateRequest,
    session: Session = Depends(get_session),
):
    """Update status and/or access limits. Only fields present in the body are applied."""
    fields = request.model_dump(exclude_unset=True)
    profile = device_service.update_access(session, code, **fields)
    return DeviceProfileResponse(**profile)


@router.post("/devices/{code}/upstream", response_model=OkResponse)
def set_upstream(
    code: str,
    request: UpstreamRequest,
    session: Session = Depends(get_session),
    vault: CredentialVault = Depends(get_vault),
):
    upstream_service.set_upstream_credentials(
        session,
        vault,
        code,
        username=request.username,
        password=request.password,
        base_url=request.upstream_base_url,
        default_base_url=settings.upstream_base_url,
    )
    return OkResponse()


@router.delete("/devices/{code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_device(code: str, session: Session = Depends(get_session)):
    device_service.delete_device(session, code)
