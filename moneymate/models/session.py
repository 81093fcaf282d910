"""
Session and Account Models

DESIGN DECISION: The authenticated identity is an explicit value object.
It is handed to `create_app_components` at startup and decides which
storage namespace the ledger and budget registry read and write.
There is no module-level "current user".
"""

import re
import secrets
from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


GUEST_ID_PREFIX = "guest"
GUEST_ID_PATTERN = re.compile(rf"{GUEST_ID_PREFIX}_[0-9a-f]{{32}}")


class Session(BaseModel):
    """Who is using the tracker right now."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Stable user identifier, used to namespace storage keys"
    )
    email: Optional[str] = None
    display_name: str = Field(default="Guest")
    is_guest: bool = False
    started_at: datetime = Field(default_factory=datetime.utcnow)
    remember_until: Optional[datetime] = Field(
        default=None,
        description="Persistent login expiry; None means this session only"
    )
    token: str = Field(
        default_factory=lambda: secrets.token_urlsafe(16),
        min_length=16,
        description="Per-browser handle for a remembered login"
    )

    @classmethod
    def guest(cls, user_id: Optional[str] = None) -> "Session":
        """
        A guest with a namespace nobody else shares.

        Passing back a previously issued guest id resumes that guest;
        anything else gets a fresh id.
        """
        if not (user_id and GUEST_ID_PATTERN.fullmatch(user_id)):
            user_id = f"{GUEST_ID_PREFIX}_{uuid4().hex}"
        return cls(user_id=user_id, display_name="Guest", is_guest=True)

    @property
    def storage_namespace(self) -> str:
        """Key prefix for this identity's data."""
        return f"{self.user_id}_"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.remember_until is None:
            return False
        return (now or datetime.utcnow()) > self.remember_until


class UserAccount(BaseModel):
    """A registered user as kept in the accounts store."""

    id: str
    email: str
    password_hash: str
    password_salt: str
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    join_date: date = Field(default_factory=date.today)

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email
