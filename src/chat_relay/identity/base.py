"""
Identity provider abstraction.

The identity provider owns accounts and credentials; this service never sees a
password hash. 'IdentityGateway' is the narrow contract the registration flow
needs from it: create an unverified account, produce a verification link,
exchange email and password for a session identity, revoke sessions and
verify federated ID tokens.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from chat_relay.errors import InvalidArgumentError


class AccountExistsError(InvalidArgumentError):
    """An account with this email is already registered."""


class Account(BaseModel):
    uid: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None


class SessionIdentity(BaseModel):
    """Result of a successful password login."""

    uid: str
    email: str


class FederatedClaims(BaseModel):
    """Claims of a verified federated ID token."""

    uid: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None


class IdentityGateway(ABC):
    @abstractmethod
    async def create_unverified_account(self, email: str, password: str) -> Account:
        """Create an account with an unverified email. Raises 'AccountExistsError' if the email is taken."""
        pass

    @abstractmethod
    async def get_account_by_email(self, email: str) -> Account | None:
        pass

    @abstractmethod
    async def email_verification_link(self, email: str) -> str:
        pass

    @abstractmethod
    async def password_login(self, email: str, password: str) -> SessionIdentity:
        """Raises 'AuthenticationError' when the credentials are rejected."""
        pass

    @abstractmethod
    async def revoke_sessions(self, uid: str) -> None:
        pass

    @abstractmethod
    async def verify_federated_token(self, id_token: str) -> FederatedClaims:
        """Raises 'AuthenticationError' for invalid, expired or revoked tokens."""
        pass
