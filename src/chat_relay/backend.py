"""
Service wiring.

'ChatBackend' holds one instance of every service around a single tree store
and a single broadcaster. The request surface and the tests depend on it
rather than on the individual services.
"""

from dataclasses import dataclass

from loguru import logger

from chat_relay.config import Settings, StoreBackend
from chat_relay.directory.friends import FriendDirectory
from chat_relay.directory.users import UserDirectory
from chat_relay.identity.base import IdentityGateway
from chat_relay.identity.firebase import FirebaseIdentityGateway
from chat_relay.identity.mailer import Mailer, SmtpMailer
from chat_relay.identity.registration import RegistrationService
from chat_relay.notifications.broadcaster import TopicBroadcaster
from chat_relay.registry.chats import ChatRegistry
from chat_relay.registry.messages import MessageLog
from chat_relay.store.base import TreeStore
from chat_relay.store.firebase import FirebaseTreeStore, initialize_firebase_app
from chat_relay.store.in_memory import InMemoryTreeStore
from chat_relay.sync.reconciler import SummaryReconciler
from chat_relay.sync.relay import ChangeRelay


@dataclass
class ChatBackend:
    store: TreeStore
    broadcaster: TopicBroadcaster
    users: UserDirectory
    friends: FriendDirectory
    messages: MessageLog
    chats: ChatRegistry
    relay: ChangeRelay
    reconciler: SummaryReconciler
    registration: RegistrationService | None = None

    @classmethod
    def create(
        cls,
        store: TreeStore,
        gateway: IdentityGateway | None = None,
        mailer: Mailer | None = None,
    ) -> "ChatBackend":
        broadcaster = TopicBroadcaster()
        users = UserDirectory(store)
        messages = MessageLog(store, broadcaster)
        chats = ChatRegistry(store, broadcaster, users, messages)
        registration = None
        if gateway is not None and mailer is not None:
            registration = RegistrationService(gateway, users, mailer)
        return cls(
            store=store,
            broadcaster=broadcaster,
            users=users,
            friends=FriendDirectory(store, users),
            messages=messages,
            chats=chats,
            relay=ChangeRelay(store, broadcaster, chats, users),
            reconciler=SummaryReconciler(store, chats, messages, users),
            registration=registration,
        )


def build_backend(settings: Settings) -> ChatBackend:
    """
    Build the backend described by 'settings'.

    The in-memory store has no identity provider behind it, so the
    registration service is only available with the 'firebase' backend.
    """
    match settings.store_backend:
        case StoreBackend.MEMORY:
            logger.info("Store backend: in-memory (identity endpoints disabled)")
            return ChatBackend.create(InMemoryTreeStore())
        case StoreBackend.FIREBASE:
            if not settings.firebase_database_url:
                raise ValueError("FIREBASE_DATABASE_URL is required for the firebase store backend")
            logger.info(f"Store backend: Firebase ({settings.firebase_database_url})")
            app = initialize_firebase_app(settings.firebase_database_url, settings.firebase_credentials)
            mailer = SmtpMailer(
                host=settings.smtp_host,
                port=settings.smtp_port,
                sender=settings.smtp_sender,
                username=settings.smtp_username,
                password=settings.smtp_password,
            )
            return ChatBackend.create(
                FirebaseTreeStore(app),
                gateway=FirebaseIdentityGateway(app, settings.firebase_api_key),
                mailer=mailer,
            )
        case _:
            raise ValueError(f"Unsupported store backend {settings.store_backend!r}")
