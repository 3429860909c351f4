from fastapi import Depends, Request

from chat_relay.backend import ChatBackend
from chat_relay.errors import UpstreamError
from chat_relay.identity.registration import RegistrationService


def get_backend(request: Request) -> ChatBackend:
    return request.app.state.backend


def get_registration(backend: ChatBackend = Depends(get_backend)) -> RegistrationService:
    if backend.registration is None:
        raise UpstreamError("No identity provider is configured")
    return backend.registration
