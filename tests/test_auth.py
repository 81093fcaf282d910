"""
Tests for accounts, login sessions and account deletion.
"""

import pytest
from datetime import datetime, timedelta

from moneymate.auth import AuthError, AuthService, hash_password, verify_password
from moneymate.auth.service import SESSION_KEY, USERS_KEY
from moneymate.services.storage import NamespacedKeyValueStore


class FakeClock:
    """Settable clock for remember-me expiry."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 15, 9, 0))


@pytest.fixture
def auth(store, clock):
    return AuthService(NamespacedKeyValueStore(store), clock=clock)


class TestPasswords:
    """Tests for hashing helpers."""

    def test_hash_and_verify(self):
        password_hash, salt = hash_password("secret1")
        assert password_hash != "secret1"
        assert verify_password("secret1", password_hash, salt)
        assert not verify_password("secret2", password_hash, salt)

    def test_salts_differ(self):
        assert hash_password("secret1")[0] != hash_password("secret1")[0]


class TestRegister:
    """Tests for AuthService.register."""

    @pytest.mark.asyncio
    async def test_register(self, auth, store):
        account = await auth.register(" Ada@Example.com ", "secret1", "Ada", "Lovelace")
        assert account.email == "ada@example.com"
        assert account.display_name == "Ada Lovelace"
        assert account.id.startswith("user_")

        stored = await store.get(f"finance_tracker_{USERS_KEY}")
        assert "ada@example.com" in stored
        assert "secret1" not in str(stored)

    @pytest.mark.asyncio
    async def test_display_name_falls_back_to_email(self, auth):
        account = await auth.register("bob@example.com", "secret1")
        assert account.display_name == "bob@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["", "no-at-sign", "a@b", "a b@c.de"])
    async def test_bad_email(self, auth, email):
        with pytest.raises(AuthError, match="valid email"):
            await auth.register(email, "secret1")

    @pytest.mark.asyncio
    async def test_short_password(self, auth):
        with pytest.raises(AuthError, match="at least 6 characters"):
            await auth.register("ada@example.com", "12345")

    @pytest.mark.asyncio
    async def test_duplicate_email(self, auth):
        await auth.register("ada@example.com", "secret1")
        with pytest.raises(AuthError, match="already exists"):
            await auth.register("ADA@example.com", "other-secret")


class TestLogin:
    """Tests for login, remember-me and logout."""

    @pytest.mark.asyncio
    async def test_login(self, auth):
        account = await auth.register("ada@example.com", "secret1", "Ada")
        session = await auth.login("ada@example.com", "secret1")
        assert session.user_id == account.id
        assert session.display_name == "Ada"
        assert session.storage_namespace == f"{account.id}_"
        assert session.remember_until is None
        assert await auth.restore(session.token) is None

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user(self, auth):
        await auth.register("ada@example.com", "secret1")
        with pytest.raises(AuthError, match="Invalid email or password"):
            await auth.login("ada@example.com", "wrong-one")
        with pytest.raises(AuthError, match="Invalid email or password"):
            await auth.login("nobody@example.com", "secret1")

    @pytest.mark.asyncio
    async def test_remember_me_restores_until_expiry(self, auth, clock, store):
        await auth.register("ada@example.com", "secret1")
        session = await auth.login("ada@example.com", "secret1", remember=True)
        assert session.remember_until == clock.now + timedelta(days=30)
        assert await store.get(f"finance_tracker_{SESSION_KEY}_{session.token}") is not None

        clock.now += timedelta(days=29)
        restored = await auth.restore(session.token)
        assert restored is not None
        assert restored.user_id == session.user_id

        clock.now += timedelta(days=2)
        assert await auth.restore(session.token) is None
        assert await store.get(f"finance_tracker_{SESSION_KEY}_{session.token}") is None

    @pytest.mark.asyncio
    async def test_restore_needs_the_token(self, auth):
        await auth.register("ada@example.com", "secret1")
        await auth.login("ada@example.com", "secret1", remember=True)
        assert await auth.restore() is None
        assert await auth.restore("not-a-known-token-at-all") is None

    @pytest.mark.asyncio
    async def test_each_login_gets_its_own_token(self, auth):
        await auth.register("ada@example.com", "secret1")
        laptop = await auth.login("ada@example.com", "secret1", remember=True)
        phone = await auth.login("ada@example.com", "secret1", remember=True)
        assert laptop.token != phone.token

        await auth.logout(laptop)
        assert await auth.restore(laptop.token) is None
        assert (await auth.restore(phone.token)).user_id == phone.user_id

    @pytest.mark.asyncio
    async def test_malformed_saved_session_is_dropped(self, auth, store):
        key = f"finance_tracker_{SESSION_KEY}_abcdefghijklmnopqrstuv"
        await store.set(key, {"user_id": ""})
        assert await auth.restore("abcdefghijklmnopqrstuv") is None
        assert await store.get(key) is None

    @pytest.mark.asyncio
    async def test_logout(self, auth):
        await auth.register("ada@example.com", "secret1")
        session = await auth.login("ada@example.com", "secret1", remember=True)
        await auth.logout(session)
        assert await auth.restore(session.token) is None

    def test_guests_get_separate_namespaces(self, auth):
        first = auth.guest()
        second = auth.guest()
        assert first.is_guest and second.is_guest
        assert first.storage_namespace.startswith("guest_")
        assert first.storage_namespace != second.storage_namespace

    def test_guest_resumes_only_issued_ids(self, auth):
        first = auth.guest()
        assert auth.guest(first.user_id).user_id == first.user_id
        assert auth.guest("user_1").user_id != "user_1"
        assert auth.guest("guest").user_id != "guest"


class TestSharedStore:
    """Several browsers talking to one server-wide store."""

    @pytest.mark.asyncio
    async def test_remembered_login_stays_with_its_browser(self, store):
        ada_browser = AuthService(NamespacedKeyValueStore(store))
        other_browser = AuthService(NamespacedKeyValueStore(store))

        await ada_browser.register("ada@example.com", "secret1")
        ada = await ada_browser.login("ada@example.com", "secret1", remember=True)

        assert await other_browser.restore() is None
        assert (await ada_browser.restore(ada.token)).email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_guest_logout_leaves_remembered_login(self, auth):
        await auth.register("ada@example.com", "secret1")
        ada = await auth.login("ada@example.com", "secret1", remember=True)
        await auth.logout(auth.guest())
        assert await auth.restore(ada.token) is not None


class TestDeleteAccount:
    """Tests for AuthService.delete_account."""

    @pytest.mark.asyncio
    async def test_removes_account_and_namespaced_data(self, auth, store):
        await auth.register("ada@example.com", "secret1")
        await auth.register("bob@example.com", "secret2")
        ada = await auth.login("ada@example.com", "secret1", remember=True)
        bob = await auth.login("bob@example.com", "secret2")

        ada_store = NamespacedKeyValueStore(store, namespace=ada.storage_namespace)
        bob_store = NamespacedKeyValueStore(store, namespace=bob.storage_namespace)
        await ada_store.set("transactions", [])
        await ada_store.set("budgets", {})
        await bob_store.set("budgets", {"food": 5})

        assert await auth.delete_account(ada) == 2
        assert await auth.get_account("ada@example.com") is None
        assert await ada_store.keys() == []
        assert await bob_store.get("budgets") == {"food": 5}
        assert await auth.get_account("bob@example.com") is not None

    @pytest.mark.asyncio
    async def test_guest_cannot_delete(self, auth):
        with pytest.raises(AuthError):
            await auth.delete_account(auth.guest())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
