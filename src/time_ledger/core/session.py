"""Explicit session context passed into every user-scoped operation."""

from dataclasses import dataclass, field
from datetime import datetime

from time_ledger.core.errors import SessionClosedError
from time_ledger.core.models import User, new_id, utc_now


@dataclass
class Session:
    """A user's working session.

    Attributes:
        user: User the session acts for
        id: Session identifier
        started_at: When the session was opened
        closed: Whether the session has ended
    """

    user: User
    id: str = field(default_factory=new_id)
    started_at: datetime = field(default_factory=utc_now)
    closed: bool = False

    @property
    def user_id(self) -> str:
        return self.user.id

    def require_open(self) -> None:
        """Raise if the session has ended."""
        if self.closed:
            raise SessionClosedError(f"Session {self.id} for user {self.user.id} is closed")

    def close(self) -> None:
        self.closed = True
