"""
Caller identity - a signed-in user or a guest browser session.
"""

from dataclasses import dataclass
from typing import Optional

from lemonade.auth.models import UserPlan


@dataclass(frozen=True)
class Identity:
    """Exactly one of user_id / session_id is set."""
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    plan: str = UserPlan.FREE.value
    email: Optional[str] = None

    def __post_init__(self):
        if bool(self.user_id) == bool(self.session_id):
            raise ValueError("Identity needs exactly one of user_id or session_id")

    @classmethod
    def for_user(cls, user) -> "Identity":
        return cls(user_id=user.id, plan=user.plan or UserPlan.FREE.value, email=user.email)

    @classmethod
    def for_session(cls, session_id: str) -> "Identity":
        return cls(session_id=session_id)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def is_premium(self) -> bool:
        return self.plan == UserPlan.PREMIUM.value

    @property
    def key(self) -> str:
        """Stable label for logs and cache keys."""
        return f"user:{self.user_id}" if self.user_id else f"session:{self.session_id}"
