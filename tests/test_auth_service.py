"""Auth service tests against the in-memory account repository.

Learn: These pin down the session state machine without HTTP or SQL:
registration, password login, Google/Apple sign-in (returning user,
email merge, brand-new account) and refresh-token rotation.
"""

from datetime import timedelta

import pytest

from bday.auth.errors import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from bday.auth.social import IdentityClaims
from bday.db.models import AuthProvider, utcnow


async def _register(auth_service, email="alice@example.com", password="secret123", name="Alice"):
    return await auth_service.register(email, password, name)


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_creates_user_link_and_session(auth_service, repo, signer):
    pair = await _register(auth_service)

    claims = signer.verify_access_token(pair.access_token)
    user = repo.users[claims.user_id]
    assert user.email == "alice@example.com"
    assert user.name == "Alice"
    assert user.has_password
    assert user.password_hash != "secret123"

    links = await repo.get_links_by_user(user.id)
    assert [(link.provider, link.provider_uid) for link in links] == [("email", "alice@example.com")]

    record = repo.tokens[pair.refresh_token]
    assert record.user_id == user.id
    assert not record.revoked
    assert pair.expires_at == int(claims.expires_at.timestamp())


@pytest.mark.asyncio
async def test_register_duplicate_email(auth_service, repo):
    await _register(auth_service)
    with pytest.raises(EmailAlreadyExistsError):
        await _register(auth_service, password="different123", name="Other")

    assert len(repo.users) == 1
    assert len(repo.links) == 1
    assert len(repo.tokens) == 1


# ═══════════════════════════════════════════════════════════
# Password login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(auth_service, repo, signer):
    registered = await _register(auth_service)
    pair = await auth_service.login("alice@example.com", "secret123")

    assert pair.refresh_token != registered.refresh_token
    assert signer.verify_access_token(pair.access_token).email == "alice@example.com"
    assert len(repo.tokens) == 2


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(auth_service, social):
    await _register(auth_service)
    social.google_tokens["g"] = IdentityClaims("bob@example.com", "Bob", "google-bob")
    await auth_service.google_login("g")

    messages = set()
    for email, password in [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", "secret123"),
        ("bob@example.com", "anything123"),  # social-only account
    ]:
        with pytest.raises(InvalidCredentialsError) as exc:
            await auth_service.login(email, password)
        messages.add(str(exc.value))
    assert messages == {"Invalid email or password"}


# ═══════════════════════════════════════════════════════════
# Refresh rotation
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh_rotates_token(auth_service, repo, signer):
    first = await _register(auth_service)
    second = await auth_service.refresh_token(first.refresh_token)

    assert second.refresh_token != first.refresh_token
    assert repo.tokens[first.refresh_token].revoked
    assert not repo.tokens[second.refresh_token].revoked
    assert (
        signer.verify_access_token(second.access_token).user_id
        == signer.verify_access_token(first.access_token).user_id
    )


@pytest.mark.asyncio
async def test_refresh_token_is_single_use(auth_service):
    first = await _register(auth_service)
    await auth_service.refresh_token(first.refresh_token)

    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(first.refresh_token)


@pytest.mark.asyncio
async def test_refresh_chain(auth_service):
    pair = await _register(auth_service)
    for _ in range(3):
        pair = await auth_service.refresh_token(pair.refresh_token)
    assert await auth_service.refresh_token(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_unknown_token(auth_service):
    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token("0" * 64)


@pytest.mark.asyncio
async def test_refresh_expired_token(auth_service, repo):
    pair = await _register(auth_service)
    repo.tokens[pair.refresh_token].expires_at = utcnow() - timedelta(seconds=1)

    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_revoked_token(auth_service, repo):
    pair = await _register(auth_service)
    repo.tokens[pair.refresh_token].revoked = True

    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_loses_revoke_race(auth_service, repo, monkeypatch):
    """Another request revoked the token between our read and our revoke."""
    pair = await _register(auth_service)

    async def already_revoked(token):
        return False

    monkeypatch.setattr(repo, "revoke_refresh_token", already_revoked)
    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(pair.refresh_token)
    assert len(repo.tokens) == 1


@pytest.mark.asyncio
async def test_refresh_fails_closed(auth_service, repo, monkeypatch):
    """If issuing the new pair fails, the old token is already dead."""
    pair = await _register(auth_service)

    async def broken_store(record):
        raise RuntimeError("database went away")

    monkeypatch.setattr(repo, "create_refresh_token", broken_store)
    with pytest.raises(RuntimeError):
        await auth_service.refresh_token(pair.refresh_token)

    assert repo.tokens[pair.refresh_token].revoked


@pytest.mark.asyncio
async def test_refresh_for_deleted_user(auth_service, repo, signer):
    pair = await _register(auth_service)
    del repo.users[signer.verify_access_token(pair.access_token).user_id]

    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(pair.refresh_token)


# ═══════════════════════════════════════════════════════════
# Social sign-in
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_google_first_login_creates_account(auth_service, repo, social, signer):
    social.google_tokens["g1"] = IdentityClaims("bob@example.com", "Bob", "google-123")
    pair = await auth_service.google_login("g1")

    user = repo.users[signer.verify_access_token(pair.access_token).user_id]
    assert user.email == "bob@example.com"
    assert user.name == "Bob"
    assert not user.has_password
    links = await repo.get_links_by_user(user.id)
    assert [(link.provider, link.provider_uid) for link in links] == [("google", "google-123")]


@pytest.mark.asyncio
async def test_google_returning_user_is_same_account(auth_service, repo, social, signer):
    social.google_tokens["g1"] = IdentityClaims("bob@example.com", "Bob", "google-123")
    # Same subject, different email: the subject decides.
    social.google_tokens["g2"] = IdentityClaims("bob@new.example.com", "Bob", "google-123")

    first = await auth_service.google_login("g1")
    second = await auth_service.google_login("g2")

    assert (
        signer.verify_access_token(first.access_token).user_id
        == signer.verify_access_token(second.access_token).user_id
    )
    assert len(repo.users) == 1
    assert len(repo.links) == 1


@pytest.mark.asyncio
async def test_google_merges_into_password_account(auth_service, repo, social, signer):
    registered = await _register(auth_service)
    social.google_tokens["g"] = IdentityClaims("alice@example.com", "Alice G", "google-alice")

    pair = await auth_service.google_login("g")

    user_id = signer.verify_access_token(registered.access_token).user_id
    assert signer.verify_access_token(pair.access_token).user_id == user_id
    assert len(repo.users) == 1
    providers = sorted(link.provider for link in await repo.get_links_by_user(user_id))
    assert providers == ["email", "google"]

    # The password still works after the merge.
    await auth_service.login("alice@example.com", "secret123")


@pytest.mark.asyncio
async def test_apple_without_email_creates_account(auth_service, repo, social, signer):
    social.apple_tokens["a1"] = IdentityClaims("", "", "apple-001")
    social.apple_tokens["a2"] = IdentityClaims("", "", "apple-002")

    first = await auth_service.apple_login("a1")
    second = await auth_service.apple_login("a2")

    first_user = repo.users[signer.verify_access_token(first.access_token).user_id]
    assert first_user.email is None
    assert signer.verify_access_token(first.access_token).email == ""
    assert len(repo.users) == 2
    assert signer.verify_access_token(second.access_token).user_id != first_user.id


@pytest.mark.asyncio
async def test_apple_returning_user_without_email(auth_service, repo, social, signer):
    """Apple sends the email on the first sign-in only."""
    social.apple_tokens["first"] = IdentityClaims("carol@example.com", "", "apple-carol")
    social.apple_tokens["again"] = IdentityClaims("", "", "apple-carol")

    first = await auth_service.apple_login("first")
    again = await auth_service.apple_login("again")

    assert (
        signer.verify_access_token(first.access_token).user_id
        == signer.verify_access_token(again.access_token).user_id
    )
    assert len(repo.users) == 1


@pytest.mark.asyncio
async def test_social_account_can_link_second_provider(auth_service, repo, social):
    social.google_tokens["g"] = IdentityClaims("dan@example.com", "Dan", "google-dan")
    social.apple_tokens["a"] = IdentityClaims("dan@example.com", "", "apple-dan")

    await auth_service.google_login("g")
    await auth_service.apple_login("a")

    assert len(repo.users) == 1
    assert sorted(link.provider for link in repo.links) == ["apple", "google"]


@pytest.mark.asyncio
async def test_social_verification_failure(auth_service, repo):
    with pytest.raises(InvalidTokenError):
        await auth_service.google_login("forged")
    with pytest.raises(InvalidTokenError):
        await auth_service.apple_login("forged")
    assert not repo.users
    assert not repo.tokens


@pytest.mark.asyncio
async def test_social_link_to_deleted_user(auth_service, repo, social):
    social.google_tokens["g"] = IdentityClaims("eve@example.com", "Eve", "google-eve")
    await auth_service.google_login("g")
    repo.users.clear()

    with pytest.raises(InvalidTokenError):
        await auth_service.google_login("g")


# ═══════════════════════════════════════════════════════════
# Logout / bulk revoke / purge
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(auth_service, repo):
    pair = await _register(auth_service)
    await auth_service.logout(pair.refresh_token)

    assert repo.tokens[pair.refresh_token].revoked
    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(pair.refresh_token)


@pytest.mark.asyncio
async def test_logout_unknown_token_is_silent(auth_service):
    await auth_service.logout("does-not-exist")


@pytest.mark.asyncio
async def test_revoke_all_sessions(auth_service, repo, signer):
    first = await _register(auth_service)
    second = await auth_service.login("alice@example.com", "secret123")
    other = await _register(auth_service, email="bob@example.com")
    user_id = signer.verify_access_token(first.access_token).user_id

    assert await auth_service.revoke_all_sessions(user_id) == 2

    for pair in (first, second):
        with pytest.raises(InvalidTokenError):
            await auth_service.refresh_token(pair.refresh_token)
    assert await auth_service.refresh_token(other.refresh_token)


@pytest.mark.asyncio
async def test_purge_expired_tokens(auth_service, repo):
    stale = await _register(auth_service)
    fresh = await auth_service.login("alice@example.com", "secret123")
    repo.tokens[stale.refresh_token].expires_at = utcnow() - timedelta(days=1)

    assert await auth_service.purge_expired_tokens() == 1
    assert stale.refresh_token not in repo.tokens
    assert fresh.refresh_token in repo.tokens


# ═══════════════════════════════════════════════════════════
# End to end
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_alice_session_lifecycle(auth_service, social, signer, repo):
    """Register, log in, rotate, replay, then sign in with Google."""
    a = await auth_service.register("alice@example.com", "secret123", "Alice")
    user_id = signer.verify_access_token(a.access_token).user_id

    b = await auth_service.login("alice@example.com", "secret123")
    assert signer.verify_access_token(b.access_token).user_id == user_id

    c = await auth_service.refresh_token(b.refresh_token)
    with pytest.raises(InvalidTokenError):
        await auth_service.refresh_token(b.refresh_token)

    social.google_tokens["g"] = IdentityClaims("alice@example.com", "Alice", "google-alice")
    d = await auth_service.google_login("g")
    assert signer.verify_access_token(d.access_token).user_id == user_id
    assert await repo.get_link_by_provider_subject(AuthProvider.GOOGLE, "google-alice")

    # Every issued pair except the replayed one is still independently valid.
    for pair in (a, c, d):
        assert not repo.tokens[pair.refresh_token].revoked
