"""
SessionRecord model — server-side login sessions.

A row binds an opaque, random token (carried in the session cookie) to a
JSON snapshot of the user's identity. The snapshot is a cache: it is not a
live reference to the users row and must be rewritten whenever the
identity changes (see SessionBinder.refresh_user_sessions).

Expiry is sliding: every authenticated request moves last_activity to
"now" and expires_at to "now + inactivity window". A row past expires_at
is dead even if no reaper has deleted it yet.
"""

from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from webbase.database import Base
from webbase.models.user import utcnow


class SessionRecord(Base):
    __tablename__ = "sessions"

    # secrets.token_urlsafe(32) is 43 characters
    token: Mapped[str] = mapped_column(String(128), primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Serialized AuthenticatedIdentity (JSON)
    data: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    user: Mapped["User"] = relationship(back_populates="sessions")
