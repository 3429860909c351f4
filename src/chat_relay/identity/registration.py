"""
Sign-up, verification and login flows.

Combines the identity provider with the user directory: every account that
signs up, or logs in through a federated provider for the first time, gets a
profile at 'users/{uid}'.
"""

from loguru import logger

from chat_relay.data_models.user import UserProfile
from chat_relay.directory.users import UserDirectory
from chat_relay.errors import InvalidArgumentError, NotFoundError
from chat_relay.identity.base import Account, FederatedClaims, IdentityGateway, SessionIdentity
from chat_relay.identity.mailer import Mailer

VERIFICATION_SUBJECT = "Verify Your Email"


class RegistrationService:
    def __init__(self, gateway: IdentityGateway, users: UserDirectory, mailer: Mailer) -> None:
        self.gateway = gateway
        self.users = users
        self.mailer = mailer

    async def register(self, email: str, password: str) -> Account:
        if not email or not password:
            raise InvalidArgumentError("Email and password are required")
        account = await self.gateway.create_unverified_account(email, password)
        await self.users.initialize_if_missing(account.uid, account.email, account.display_name)
        return account

    async def send_verification(self, email: str) -> None:
        account = await self.gateway.get_account_by_email(email)
        if account is None:
            raise NotFoundError(f"No account registered for {email}")
        if account.email_verified:
            raise InvalidArgumentError("This email is already registered")
        link = await self.gateway.email_verification_link(email)
        await self.mailer.send(email, VERIFICATION_SUBJECT, f"Click the link below to verify your email:\n{link}")

    async def login(self, email: str, password: str) -> SessionIdentity:
        if not email or not password:
            raise InvalidArgumentError("Email and password are required")
        identity = await self.gateway.password_login(email, password)
        logger.info(f"User {identity.uid} logged in")
        return identity

    async def logout(self, uid: str) -> None:
        await self.gateway.revoke_sessions(uid)

    async def federated_login(self, id_token: str) -> tuple[FederatedClaims, UserProfile]:
        """Verify a federated ID token and make sure its user has a profile."""
        if not id_token:
            raise InvalidArgumentError("ID token is required")
        claims = await self.gateway.verify_federated_token(id_token)
        profile = await self.users.initialize_if_missing(claims.uid, claims.email, claims.name)
        return claims, profile
