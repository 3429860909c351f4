import pytest

from chat_relay.errors import AuthenticationError, InvalidArgumentError, NotFoundError
from chat_relay.identity.base import AccountExistsError
from chat_relay.identity.registration import VERIFICATION_SUBJECT


async def test_register_creates_a_profile(backend):
    account = await backend.registration.register("erin@example.com", "s3cret")

    profile = await backend.users.require(account.uid)
    assert profile.username == "erin@example.com"
    assert profile.email == "erin@example.com"
    assert profile.status == "offline"


async def test_register_twice(backend):
    await backend.registration.register("erin@example.com", "s3cret")

    with pytest.raises(AccountExistsError):
        await backend.registration.register("erin@example.com", "other")


async def test_register_requires_credentials(backend):
    with pytest.raises(InvalidArgumentError):
        await backend.registration.register("erin@example.com", "")


async def test_send_verification_mails_the_link(backend, gateway, mailer):
    account = await backend.registration.register("erin@example.com", "s3cret")

    await backend.registration.send_verification("erin@example.com")

    [(to, subject, body)] = mailer.sent
    assert to == "erin@example.com"
    assert subject == VERIFICATION_SUBJECT
    assert body == f"Click the link below to verify your email:\nhttps://verify.example.com/{account.uid}"


async def test_send_verification_rejects_unknown_and_verified_accounts(backend, gateway, mailer):
    with pytest.raises(NotFoundError):
        await backend.registration.send_verification("nobody@example.com")

    account = await backend.registration.register("erin@example.com", "s3cret")
    account.email_verified = True
    with pytest.raises(InvalidArgumentError):
        await backend.registration.send_verification("erin@example.com")
    assert mailer.sent == []


async def test_login_and_logout(backend, gateway):
    account = await backend.registration.register("erin@example.com", "s3cret")

    identity = await backend.registration.login("erin@example.com", "s3cret")
    assert (identity.uid, identity.email) == (account.uid, "erin@example.com")

    with pytest.raises(AuthenticationError):
        await backend.registration.login("erin@example.com", "wrong")

    await backend.registration.logout(account.uid)
    assert gateway.revoked == [account.uid]


async def test_federated_login_initializes_the_profile_once(backend):
    claims, profile = await backend.registration.federated_login("good-token")

    assert claims.uid == "google-1"
    assert profile.username == "Gina"

    await backend.users.update_status("google-1", "online")
    _, again = await backend.registration.federated_login("good-token")
    assert again.status == "online"


async def test_federated_login_rejects_bad_tokens(backend):
    with pytest.raises(AuthenticationError):
        await backend.registration.federated_login("forged")
    with pytest.raises(InvalidArgumentError):
        await backend.registration.federated_login("")
