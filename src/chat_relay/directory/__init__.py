from chat_relay.directory.friends import FriendDirectory, FriendEntry
from chat_relay.directory.users import UserDirectory

__all__ = ["FriendDirectory", "FriendEntry", "UserDirectory"]
