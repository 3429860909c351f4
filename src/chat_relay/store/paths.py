"""
Tree layout.

These paths are shared with existing clients and data, so they must not change:

    chats/{chatId}
    chats/{chatId}/messages/{messageId}
    chats/{chatId}/participants
    chats/{chatId}/admin
    users/{userId}
    users/{userId}/chatUser/{chatId}
    users/{userId}/friends/{friendId}
    users/{userId}/friendRequests/{fromId}
    users/{userId}/hiddenChats/{chatId}
"""

CHATS = "chats"
USERS = "users"


def chat_path(chat_id: str) -> str:
    return f"{CHATS}/{chat_id}"


def messages_path(chat_id: str) -> str:
    return f"{CHATS}/{chat_id}/messages"


def message_path(chat_id: str, message_id: str) -> str:
    return f"{CHATS}/{chat_id}/messages/{message_id}"


def participants_path(chat_id: str) -> str:
    return f"{CHATS}/{chat_id}/participants"


def admin_path(chat_id: str) -> str:
    return f"{CHATS}/{chat_id}/admin"


def user_path(user_id: str) -> str:
    return f"{USERS}/{user_id}"


def summary_path(user_id: str, chat_id: str) -> str:
    return f"{USERS}/{user_id}/chatUser/{chat_id}"


def friends_path(user_id: str) -> str:
    return f"{USERS}/{user_id}/friends"


def friend_path(user_id: str, friend_id: str) -> str:
    return f"{USERS}/{user_id}/friends/{friend_id}"


def friend_requests_path(user_id: str) -> str:
    return f"{USERS}/{user_id}/friendRequests"


def friend_request_path(user_id: str, from_id: str) -> str:
    return f"{USERS}/{user_id}/friendRequests/{from_id}"


def hidden_chat_path(user_id: str, chat_id: str) -> str:
    return f"{USERS}/{user_id}/hiddenChats/{chat_id}"
