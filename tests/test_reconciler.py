import asyncio
import contextlib

from chat_relay.store import paths


async def test_consistent_state_needs_no_writes(backend):
    await backend.chats.create_individual("alice", "bob", "hi")
    await backend.chats.create_group(["carol"], "alice", "Team", "welcome")

    assert await backend.reconciler.reconcile_all() == 0


async def test_stale_summary_is_repaired(backend, store):
    await backend.chats.create_individual("alice", "bob", "hi")
    await store.update(paths.summary_path("bob", "alice_bob"), {"lastMessage": "stale", "lastUser": "bob"})

    assert await backend.reconciler.reconcile_all() == 2

    bob = await backend.users.require("bob")
    assert (bob.chat_user["alice_bob"].last_message, bob.chat_user["alice_bob"].last_user) == ("hi", "alice")
    assert bob.chat_user["alice_bob"].unread_count == 1


async def test_missing_summary_is_recreated(backend, store):
    await backend.chats.create_individual("alice", "bob", "hi")
    await store.delete(paths.summary_path("alice", "alice_bob"))

    await backend.reconciler.reconcile_all()

    summary = (await backend.users.require("alice")).chat_user["alice_bob"]
    assert summary.title == "Bob Builder"
    assert summary.last_message == "hi"


async def test_orphaned_summaries_are_removed(backend, store):
    await backend.chats.create_individual("alice", "bob", "hi")
    await store.set(paths.summary_path("carol", "alice_bob"), {"lastMessage": "hi", "unreadCount": 0})
    await store.set(paths.summary_path("dave", "gone"), {"lastMessage": "bye", "unreadCount": 2})

    await backend.reconciler.reconcile_all()

    assert (await backend.users.require("carol")).chat_user == {}
    assert (await backend.users.require("dave")).chat_user == {}


async def test_broken_pointer_is_realigned(backend, store):
    chat = await backend.chats.create_individual("alice", "bob", "hi")
    await store.update(paths.chat_path(chat.id), {"lastMessageId": "missing"})

    await backend.reconciler.reconcile_chat(await backend.chats.get_by_id(chat.id))

    [message] = await backend.messages.list(chat.id)
    assert (await backend.chats.get_by_id(chat.id)).last_message_id == message.id


async def test_run_forever_keeps_sweeping_until_cancelled(backend, store):
    await backend.chats.create_individual("alice", "bob", "hi")
    await store.update(paths.summary_path("bob", "alice_bob"), {"lastMessage": "stale"})

    sweep = asyncio.create_task(backend.reconciler.run_forever(0.01))
    await asyncio.sleep(0.05)
    sweep.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep

    assert (await backend.users.require("bob")).chat_user["alice_bob"].last_message == "hi"


async def test_chat_created_during_sweep_keeps_its_summaries(backend, monkeypatch):
    list_users = backend.users.get_all

    async def create_then_list():
        await backend.chats.create_individual("carol", "dave", "hello")
        return await list_users()

    monkeypatch.setattr(backend.users, "get_all", create_then_list)

    await backend.reconciler.reconcile_all()

    monkeypatch.undo()
    carol = await backend.users.require("carol")
    assert carol.chat_user["carol_dave"].last_message == "hello"
    assert (await backend.users.require("dave")).chat_user["carol_dave"].unread_count == 1
