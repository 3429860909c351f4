import asyncio
from typing import Any

import pytest

from chat_relay.backend import ChatBackend
from chat_relay.data_models.user import UserProfile
from chat_relay.errors import AuthenticationError
from chat_relay.identity.base import Account, AccountExistsError, FederatedClaims, IdentityGateway, SessionIdentity
from chat_relay.identity.mailer import Mailer
from chat_relay.notifications.base import CHATS_TOPIC, USERS_TOPIC
from chat_relay.store.in_memory import InMemoryTreeStore

PEOPLE = {
    "alice": UserProfile(username="alice", email="alice@example.com", first_name="Alice", last_name="Liddell"),
    "bob": UserProfile(username="bob", email="bob@example.com", first_name="Bob", last_name="Builder", avatar="bob.png"),
    "carol": UserProfile(username="carol", email="carol@example.com"),
    "dave": UserProfile(username="dave", email="dave@example.com"),
}


class Recorder:
    """Broadcaster subscriber that keeps every delivery."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    async def __call__(self, topic: str, payload: Any) -> None:
        self.events.append((topic, payload))

    def on(self, topic: str) -> list[Any]:
        return [payload for seen, payload in self.events if seen == topic]


class YieldingTreeStore(InMemoryTreeStore):
    """In-memory store whose reads give up the event loop first, like a remote client would."""

    async def get(self, path: str) -> Any | None:
        await asyncio.sleep(0)
        return await super().get(path)


class FakeGateway(IdentityGateway):
    def __init__(self) -> None:
        self.accounts: dict[str, tuple[Account, str]] = {}
        self.revoked: list[str] = []

    async def create_unverified_account(self, email: str, password: str) -> Account:
        if email in self.accounts:
            raise AccountExistsError(f"The email {email} is already registered")
        account = Account(uid=f"uid-{len(self.accounts) + 1}", email=email)
        self.accounts[email] = (account, password)
        return account

    async def get_account_by_email(self, email: str) -> Account | None:
        entry = self.accounts.get(email)
        return entry[0] if entry else None

    async def email_verification_link(self, email: str) -> str:
        return f"https://verify.example.com/{self.accounts[email][0].uid}"

    async def password_login(self, email: str, password: str) -> SessionIdentity:
        entry = self.accounts.get(email)
        if entry is None or entry[1] != password:
            raise AuthenticationError("Password or email wrong")
        return SessionIdentity(uid=entry[0].uid, email=email)

    async def revoke_sessions(self, uid: str) -> None:
        self.revoked.append(uid)

    async def verify_federated_token(self, id_token: str) -> FederatedClaims:
        if id_token != "good-token":
            raise AuthenticationError("Invalid ID token")
        return FederatedClaims(uid="google-1", email="gina@example.com", name="Gina")


class FakeMailer(Mailer):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))


@pytest.fixture
def store() -> InMemoryTreeStore:
    return InMemoryTreeStore({"users": PEOPLE})


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def backend(store, gateway, mailer) -> ChatBackend:
    return ChatBackend.create(store, gateway=gateway, mailer=mailer)


@pytest.fixture
def recorder(backend) -> Recorder:
    recorder = Recorder()
    backend.broadcaster.subscribe(CHATS_TOPIC, recorder)
    backend.broadcaster.subscribe(USERS_TOPIC, recorder)
    return recorder


@pytest.fixture
def yielding_backend() -> ChatBackend:
    return ChatBackend.create(YieldingTreeStore({"users": PEOPLE}))
