"""
Account and Session Service

Registers users, checks passwords and hands out Session objects.
Accounts live in the key-value store under "users"; a remembered
login lives under "currentSession_<token>" until it expires.

Passwords are never stored: only a salted PBKDF2-SHA256 hash.
"""

import hashlib
import hmac
import re
import secrets
import time
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from moneymate.audit import AuditLogger
from moneymate.models.audit import AuditEventType
from moneymate.models.session import Session, UserAccount
from moneymate.services.storage import KeyValueStoreInterface, SerializationError


USERS_KEY = "users"
SESSION_KEY = "currentSession"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PBKDF2_ITERATIONS = 200_000

logger = structlog.get_logger(__name__)


class AuthError(Exception):
    """Registration or login failed; the message is safe to show the user."""
    pass


def hash_password(password: str, salt: Optional[str] = None) -> tuple[str, str]:
    """Return (hash_hex, salt_hex) for a password."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        PBKDF2_ITERATIONS,
    )
    return digest.hex(), salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    candidate, _ = hash_password(password, salt)
    return hmac.compare_digest(candidate, password_hash)


def _generate_user_id() -> str:
    return f"user_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _session_key(token: str) -> str:
    return f"{SESSION_KEY}_{token}"


class AuthService:
    """
    User accounts over a key-value store.

    The store given here must not be namespaced per user: it holds the
    accounts of everyone, and account deletion uses it to find every
    key in the departing user's namespace.

    Usage:
        auth = AuthService(store)
        await auth.register("a@b.co", "secret1", "Ada", "Lovelace")
        session = await auth.login("a@b.co", "secret1", remember=True)
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        remember_me_days: int = 30,
        min_password_length: int = 6,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._store = store
        self._remember_me = timedelta(days=remember_me_days)
        self._min_password_length = min_password_length
        self._audit = audit_logger or AuditLogger()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def _load_users(self) -> dict[str, UserAccount]:
        raw = await self._store.get(USERS_KEY) or {}
        if not isinstance(raw, dict):
            raise SerializationError(f"Stored '{USERS_KEY}' is not a mapping")
        try:
            return {email: UserAccount.model_validate(data) for email, data in raw.items()}
        except ValidationError as e:
            raise SerializationError(f"Stored account is malformed: {e}")

    async def _save_users(self, users: dict[str, UserAccount]) -> None:
        await self._store.set(
            USERS_KEY,
            {email: account.model_dump(mode="json") for email, account in users.items()},
        )

    async def register(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
    ) -> UserAccount:
        """
        Create an account.

        Raises:
            AuthError: bad email, short password or email already taken
        """
        email = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise AuthError("Please enter a valid email address")
        if len(password or "") < self._min_password_length:
            raise AuthError(
                f"Password must be at least {self._min_password_length} characters long"
            )

        users = await self._load_users()
        if email in users:
            raise AuthError("User already exists with this email")

        password_hash, salt = hash_password(password)
        account = UserAccount(
            id=_generate_user_id(),
            email=email,
            password_hash=password_hash,
            password_salt=salt,
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            join_date=date.today(),
        )
        users[email] = account
        await self._save_users(users)

        logger.info("user_registered", user_id=account.id)
        await self._audit.log_account_event(AuditEventType.USER_REGISTERED, account.id, email)
        return account

    async def get_account(self, email: str) -> Optional[UserAccount]:
        users = await self._load_users()
        return users.get((email or "").strip().lower())

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str, remember: bool = False) -> Session:
        """
        Check credentials and start a session.

        With `remember`, the session is saved under its own token and
        `restore(session.token)` brings it back until the remember-me
        window closes. The token is the only handle on the saved login,
        so each browser keeps its own.
        """
        account = await self.get_account(email)
        if account is None or not verify_password(
            password or "", account.password_hash, account.password_salt
        ):
            raise AuthError("Invalid email or password")

        now = self._clock()
        session = Session(
            user_id=account.id,
            email=account.email,
            display_name=account.display_name,
            started_at=now,
            remember_until=now + self._remember_me if remember else None,
        )
        if remember:
            await self._store.set(_session_key(session.token), session.model_dump(mode="json"))

        logger.info("user_logged_in", user_id=account.id, remember=remember)
        await self._audit.log_account_event(AuditEventType.USER_LOGGED_IN, account.id, account.email)
        return session

    async def restore(self, token: Optional[str] = None) -> Optional[Session]:
        """Return the session remembered under `token`, or None if absent or expired."""
        if not token:
            return None
        key = _session_key(token)
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            session = Session.model_validate(raw)
        except ValidationError:
            logger.warning("saved_session_malformed")
            await self._store.remove(key)
            return None
        if session.token != token or session.is_expired(self._clock()):
            logger.info("saved_session_expired", user_id=session.user_id)
            await self._store.remove(key)
            return None
        return session

    async def logout(self, session: Optional[Session] = None) -> None:
        if session is None:
            return
        await self._store.remove(_session_key(session.token))
        if not session.is_guest:
            logger.info("user_logged_out", user_id=session.user_id)
            await self._audit.log_account_event(
                AuditEventType.USER_LOGGED_OUT, session.user_id, session.email
            )

    def guest(self, user_id: Optional[str] = None) -> Session:
        """A session that needs no account."""
        return Session.guest(user_id)

    async def delete_account(self, session: Session) -> int:
        """
        Remove the account and every key in its namespace, then log out.

        Returns the number of data keys removed.
        """
        if session.is_guest or not session.email:
            raise AuthError("No user logged in")

        users = await self._load_users()
        if users.pop(session.email, None) is None:
            raise AuthError("Account not found")
        await self._save_users(users)

        removed = 0
        for key in await self._store.keys(prefix=session.storage_namespace):
            if await self._store.remove(key):
                removed += 1

        await self.logout(session)
        logger.info("account_deleted", user_id=session.user_id, keys_removed=removed)
        return removed
