"""
Pydantic schemas for user data that leaves the database layer.

password_hash is NEVER included in any of these schemas — this is the
security boundary between the users table and everything that gets
serialized (session payloads, templates, JSON).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AuthenticatedIdentity(BaseModel):
    """
    The identity snapshot stored in a session record.

    Created at login from the User row, serialized to JSON into the
    sessions table, and rewritten when the user's email changes.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    username: str
    email: str
    is_active: bool


class UserResponse(BaseModel):
    """Public representation of a User (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    email_verified: bool
    is_active: bool
    last_login: datetime | None
    created_at: datetime
