from fastapi import APIRouter, Depends

from chat_relay.api.dependencies import get_registration
from chat_relay.api.schemas import CredentialsRequest, EmailRequest, FederatedLoginRequest, LogoutRequest
from chat_relay.identity.base import Account, SessionIdentity
from chat_relay.identity.registration import RegistrationService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
async def register(payload: CredentialsRequest, service: RegistrationService = Depends(get_registration)) -> Account:
    return await service.register(payload.email, payload.password)


@router.post("/verify")
async def send_verification(payload: EmailRequest, service: RegistrationService = Depends(get_registration)) -> dict:
    await service.send_verification(payload.email)
    return {"message": f"Verification email sent to {payload.email}"}


@router.post("/login")
async def login(payload: CredentialsRequest, service: RegistrationService = Depends(get_registration)) -> SessionIdentity:
    return await service.login(payload.email, payload.password)


@router.post("/logout", status_code=204)
async def logout(payload: LogoutRequest, service: RegistrationService = Depends(get_registration)) -> None:
    await service.logout(payload.uid)


@router.post("/google")
async def federated_login(
    payload: FederatedLoginRequest, service: RegistrationService = Depends(get_registration)
) -> dict:
    claims, profile = await service.federated_login(payload.id_token)
    return {**claims.model_dump(), "profile": profile.model_dump(by_alias=True, mode="json")}
