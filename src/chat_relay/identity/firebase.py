"""
Firebase Authentication gateway.

Account administration and ID-token verification go through the
'firebase_admin.auth' module, which is synchronous and therefore runs in a
worker thread. Password login is not part of the admin SDK; it calls the
Identity Toolkit REST endpoint 'accounts:signInWithPassword' with the
project's Web API key.
"""

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import firebase_admin
import httpx
from firebase_admin import auth
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError
from loguru import logger

from chat_relay.errors import AuthenticationError, InvalidArgumentError, UpstreamError
from chat_relay.identity.base import Account, AccountExistsError, FederatedClaims, IdentityGateway, SessionIdentity

T = TypeVar("T")

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
INVALID_CREDENTIALS = ("INVALID_LOGIN_CREDENTIALS", "INVALID_PASSWORD", "EMAIL_NOT_FOUND")


def _account(record: auth.UserRecord) -> Account:
    return Account(
        uid=record.uid,
        email=record.email,
        email_verified=record.email_verified,
        display_name=record.display_name,
    )


class FirebaseIdentityGateway(IdentityGateway):
    def __init__(self, app: firebase_admin.App, api_key: str | None, timeout: float = 10.0) -> None:
        self.app = app
        self.api_key = api_key
        self.timeout = timeout

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args, app=self.app, **kwargs)
        except (FirebaseError, GoogleAuthError) as e:
            raise UpstreamError(f"Identity provider call failed: {e}") from e

    async def create_unverified_account(self, email: str, password: str) -> Account:
        try:
            record = await asyncio.to_thread(
                auth.create_user, email=email, password=password, email_verified=False, app=self.app
            )
        except auth.EmailAlreadyExistsError as e:
            raise AccountExistsError(f"The email {email} is already registered") from e
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid account data: {e}") from e
        except (FirebaseError, GoogleAuthError) as e:
            raise UpstreamError(f"Could not create account: {e}") from e
        logger.info(f"Created unverified account {record.uid}")
        return _account(record)

    async def get_account_by_email(self, email: str) -> Account | None:
        try:
            record = await asyncio.to_thread(auth.get_user_by_email, email, app=self.app)
        except auth.UserNotFoundError:
            return None
        except (FirebaseError, GoogleAuthError) as e:
            raise UpstreamError(f"Could not look up {email}: {e}") from e
        return _account(record)

    async def email_verification_link(self, email: str) -> str:
        return await self._call(auth.generate_email_verification_link, email)

    async def password_login(self, email: str, password: str) -> SessionIdentity:
        if not self.api_key:
            raise UpstreamError("FIREBASE_API_KEY is not configured")
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(SIGN_IN_URL, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Error during login: {e}") from e

        if response.status_code == httpx.codes.BAD_REQUEST and any(
            code in response.text for code in INVALID_CREDENTIALS
        ):
            raise AuthenticationError("Password or email wrong")
        if response.is_error:
            raise UpstreamError(f"Error during login: HTTP {response.status_code}")
        body = response.json()
        return SessionIdentity(uid=body["localId"], email=body["email"])

    async def revoke_sessions(self, uid: str) -> None:
        await self._call(auth.revoke_refresh_tokens, uid)
        logger.info(f"Revoked sessions of {uid}")

    async def verify_federated_token(self, id_token: str) -> FederatedClaims:
        try:
            claims = await asyncio.to_thread(auth.verify_id_token, id_token, app=self.app)
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as e:
            raise AuthenticationError(f"Invalid ID token: {e}") from e
        except (FirebaseError, GoogleAuthError) as e:
            raise UpstreamError(f"Could not verify ID token: {e}") from e
        return FederatedClaims(
            uid=claims["uid"],
            email=claims.get("email"),
            name=claims.get("name"),
            picture=claims.get("picture"),
        )
