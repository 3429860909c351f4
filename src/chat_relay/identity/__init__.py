from chat_relay.identity.base import (
    Account,
    AccountExistsError,
    FederatedClaims,
    IdentityGateway,
    SessionIdentity,
)
from chat_relay.identity.mailer import Mailer, SmtpMailer
from chat_relay.identity.registration import RegistrationService

__all__ = [
    "Account",
    "AccountExistsError",
    "FederatedClaims",
    "IdentityGateway",
    "Mailer",
    "RegistrationService",
    "SessionIdentity",
    "SmtpMailer",
]
