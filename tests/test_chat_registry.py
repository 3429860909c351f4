import pytest

from chat_relay.data_models.chat import ChatType
from chat_relay.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from chat_relay.notifications.base import CHATS_TOPIC, USERS_TOPIC
from chat_relay.store import paths


@pytest.fixture
async def group(backend):
    """Group 'Team' created by alice with bob and carol, no messages yet."""
    return await backend.chats.create_group(["bob", "carol"], "alice", "Team")


async def summaries(backend, chat_id):
    profiles = await backend.users.get_all()
    return {profile.id: profile.chat_user[chat_id] for profile in profiles if chat_id in profile.chat_user}


class TestIndividualChats:
    async def test_alice_and_bob(self, backend):
        chat = await backend.chats.create_individual("alice", "bob", "hi")

        assert chat.id == "alice_bob"
        assert chat.type == ChatType.INDIVIDUAL
        messages = await backend.messages.list("alice_bob")
        assert [(m.content, m.sender) for m in messages] == [("hi", "alice")]
        by_user = await summaries(backend, "alice_bob")
        assert set(by_user) == {"alice", "bob"}
        assert all(summary.last_message == "hi" for summary in by_user.values())

    async def test_summaries_show_the_partner(self, backend):
        await backend.chats.create_individual("alice", "bob", "hi")

        by_user = await summaries(backend, "alice_bob")
        assert by_user["alice"].title == "Bob Builder"
        assert by_user["alice"].avatar == "bob.png"
        assert by_user["bob"].title == "Alice Liddell"
        assert by_user["bob"].unread_count == 1
        assert by_user["alice"].unread_count == 0

    async def test_creation_is_idempotent_and_symmetric(self, backend):
        first = await backend.chats.create_individual("bob", "alice", "m1")
        second = await backend.chats.create_individual("alice", "bob", "m2")

        assert first.id == second.id == "alice_bob"
        assert [m.content for m in await backend.messages.list("alice_bob")] == ["m1"]

    async def test_rejects_same_user_and_missing_fields(self, backend):
        with pytest.raises(InvalidArgumentError):
            await backend.chats.create_individual("alice", "alice", "hi")
        with pytest.raises(InvalidArgumentError):
            await backend.chats.create_individual("alice", "", "hi")
        with pytest.raises(InvalidArgumentError):
            await backend.chats.create_individual("alice", "bob", "")

    async def test_get_all_and_get_by_id(self, backend):
        await backend.chats.create_individual("alice", "bob", "hi")
        await backend.chats.create_individual("alice", "carol", "hey")

        assert {chat.id for chat in await backend.chats.get_all()} == {"alice_bob", "alice_carol"}
        assert (await backend.chats.get_by_id("alice_carol")).participants == ["alice", "carol"]
        assert await backend.chats.get_by_id("nope") is None


class TestGroups:
    async def test_create_group_adds_the_creator_as_admin(self, backend):
        chat = await backend.chats.create_group(["bob", "carol", "bob"], "alice", "Team", "welcome", avatar="team.png")

        assert chat.participants == ["alice", "bob", "carol"]
        assert chat.creator_id == "alice"
        assert chat.admins == {"alice"}
        by_user = await summaries(backend, chat.id)
        assert set(by_user) == {"alice", "bob", "carol"}
        assert by_user["bob"].title == "Team"
        assert by_user["bob"].avatar == "team.png"
        assert by_user["bob"].last_message == "welcome"
        assert by_user["bob"].unread_count == 1
        assert by_user["alice"].unread_count == 0

    async def test_admin_set_is_persisted_as_a_map(self, backend, store, group):
        assert await store.get(paths.admin_path(group.id)) == {"alice": True}

    async def test_update_group_info_requires_an_admin(self, backend, group):
        with pytest.raises(PermissionDeniedError):
            await backend.chats.update_group_info(group.id, "carol", title="Hijacked")

    async def test_update_group_info_patches_only_given_fields(self, backend, recorder, group):
        await backend.chats.update_group_info(group.id, "alice", description="Project chat")
        chat = await backend.chats.update_group_info(group.id, "alice", title="Crew")

        assert chat.title == "Crew"
        assert chat.description == "Project chat"
        assert all(summary.title == "Crew" for summary in (await summaries(backend, group.id)).values())
        assert recorder.on(CHATS_TOPIC)[-1] == {"chatId": group.id, "fieldsUpdated": ["name", "title"]}

    async def test_update_group_info_needs_a_field(self, backend, group):
        with pytest.raises(InvalidArgumentError):
            await backend.chats.update_group_info(group.id, "alice")

    async def test_only_the_creator_changes_roles(self, backend, group):
        with pytest.raises(PermissionDeniedError):
            await backend.chats.update_user_role(group.id, "bob", "carol", "admin")

        chat = await backend.chats.update_user_role(group.id, "alice", "bob", "admin")
        assert chat.admins == {"alice", "bob"}

        chat = await backend.chats.update_user_role(group.id, "alice", "bob", "member")
        assert chat.admins == {"alice"}

    async def test_role_validation(self, backend, group):
        with pytest.raises(InvalidArgumentError):
            await backend.chats.update_user_role(group.id, "alice", "bob", "owner")
        with pytest.raises(InvalidArgumentError):
            await backend.chats.update_user_role(group.id, "alice", "alice", "member")
        with pytest.raises(InvalidArgumentError):
            await backend.chats.update_user_role(group.id, "alice", "dave", "admin")

    async def test_demote_removes_legacy_admin_entries(self, backend, store):
        await store.set(
            "chats/legacy",
            {"type": "group", "participants": ["alice", "bob"], "creator": "alice", "admin": {"-Nx1": "bob"}},
        )
        assert (await backend.chats.get_by_id("legacy")).admins == {"bob"}

        chat = await backend.chats.update_user_role("legacy", "alice", "bob", "member")

        assert chat.admins == set()
        assert await store.get(paths.admin_path("legacy")) is None

    async def test_numeric_user_ids(self, backend, store):
        for user_id in ("1", "2", "3"):
            await store.set(paths.user_path(user_id), {"username": f"user {user_id}"})

        chat = await backend.chats.create_group(["2", "3"], "1", "Numbers")

        assert (await backend.chats.get_by_id(chat.id)).admins == {"1"}

        await backend.chats.update_user_role(chat.id, "1", "2", "admin")
        assert (await backend.chats.get_by_id(chat.id)).admins == {"1", "2"}

        await backend.chats.update_user_role(chat.id, "1", "2", "member")
        assert (await backend.chats.get_by_id(chat.id)).admins == {"1"}
        assert chat.id in (await backend.users.require("3")).chat_user


class TestRemoveUser:
    async def test_admin_removes_a_member_but_not_another_admin(self, backend, group):
        await backend.chats.add_user(group.id, "dave", "alice")
        await backend.chats.update_user_role(group.id, "alice", "bob", "admin")
        await backend.chats.update_user_role(group.id, "alice", "dave", "admin")

        with pytest.raises(PermissionDeniedError):
            await backend.chats.remove_user(group.id, "dave", "bob")

        chat = await backend.chats.remove_user(group.id, "carol", "bob")
        assert chat.participants == ["alice", "bob", "dave"]
        assert "carol" not in await summaries(backend, group.id)

    async def test_member_cannot_remove_others_but_can_leave(self, backend, group):
        with pytest.raises(PermissionDeniedError):
            await backend.chats.remove_user(group.id, "bob", "carol")

        chat = await backend.chats.remove_user(group.id, "carol", "carol")
        assert chat.participants == ["alice", "bob"]

    async def test_creator_cannot_be_removed_by_others(self, backend, group):
        await backend.chats.update_user_role(group.id, "alice", "bob", "admin")

        with pytest.raises(PermissionDeniedError):
            await backend.chats.remove_user(group.id, "alice", "bob")

    async def test_removed_admin_loses_the_role(self, backend, group):
        await backend.chats.update_user_role(group.id, "alice", "bob", "admin")

        chat = await backend.chats.remove_user(group.id, "bob", "alice")

        assert chat.admins == {"alice"}

    async def test_creator_leaving_deletes_the_group(self, backend, group):
        assert await backend.chats.remove_user(group.id, "alice", "alice") is None

        assert await backend.chats.get_by_id(group.id) is None
        assert await summaries(backend, group.id) == {}

    async def test_unknown_target(self, backend, group):
        with pytest.raises(NotFoundError):
            await backend.chats.remove_user(group.id, "dave", "alice")


class TestAddUser:
    async def test_add_user_seeds_a_summary(self, backend, group):
        await backend.messages.append(group.id, "bob", "hello team")

        chat = await backend.chats.add_user(group.id, "dave", "alice")

        assert chat.participants == ["alice", "bob", "carol", "dave"]
        summary = (await summaries(backend, group.id))["dave"]
        assert summary.title == "Team"
        assert summary.unread_count == 0
        assert summary.last_message == "hello team"

    async def test_add_user_rules(self, backend, group):
        with pytest.raises(PermissionDeniedError):
            await backend.chats.add_user(group.id, "dave", "carol")
        with pytest.raises(InvalidArgumentError):
            await backend.chats.add_user(group.id, "bob", "alice")

    async def test_group_operations_reject_individual_chats(self, backend):
        await backend.chats.create_individual("alice", "bob", "hi")

        with pytest.raises(InvalidArgumentError):
            await backend.chats.add_user("alice_bob", "carol", "alice")


class TestDeletion:
    async def test_delete_group_cascades(self, backend, group):
        await backend.users.hide_chat("bob", group.id, "1234")

        with pytest.raises(PermissionDeniedError):
            await backend.chats.delete_group(group.id, "bob")
        await backend.chats.delete_group(group.id, "alice")

        assert await backend.chats.get_by_id(group.id) is None
        assert await summaries(backend, group.id) == {}
        assert group.id not in (await backend.users.require("bob")).hidden_chats

    async def test_delete_chat_without_requester_is_unconditional(self, backend, group):
        await backend.chats.delete_chat(group.id)

        assert await backend.chats.get_by_id(group.id) is None

    async def test_delete_chat_with_requester_applies_creator_rule_to_groups(self, backend, group):
        with pytest.raises(PermissionDeniedError):
            await backend.chats.delete_chat(group.id, "bob")

        await backend.chats.create_individual("bob", "carol", "hi")
        await backend.chats.delete_chat("bob_carol", "carol")
        assert await backend.chats.get_by_id("bob_carol") is None

    async def test_delete_missing_chat(self, backend):
        with pytest.raises(NotFoundError):
            await backend.chats.delete_chat("nope")

    async def test_deletion_is_announced(self, backend, recorder, group):
        await backend.chats.delete_chat(group.id)

        assert recorder.on(CHATS_TOPIC)[-1] == {"chatId": group.id, "fieldsUpdated": ["deleted"]}


class TestMarkRead:
    async def test_mark_read_resets_only_the_caller(self, backend, recorder, group):
        for text in ("one", "two", "three"):
            await backend.messages.append(group.id, "alice", text)

        await backend.chats.mark_read(group.id, "bob")

        by_user = await summaries(backend, group.id)
        assert by_user["bob"].unread_count == 0
        assert by_user["carol"].unread_count == 3
        users = recorder.on(USERS_TOPIC)[-1]
        assert {user["id"] for user in users} == {"alice", "bob", "carol", "dave"}

    async def test_mark_read_on_unknown_summary(self, backend, group):
        with pytest.raises(NotFoundError):
            await backend.chats.mark_read(group.id, "dave")
