"""
FastAPI dependencies for session-based authentication (the request gate).

Dependencies are reusable functions that FastAPI injects into route
handlers. The chain is:

  get_session_binder (app.state -> SessionBinder)
  get_session_token  (cookie -> token | None)
      ├── get_optional_identity  (token -> identity | None)    [guests allowed]
      └── get_current_identity   (token -> identity)           [login required]

get_current_identity raises LoginRequiredError when no live session is
found; the exception handler turns that into a 303 redirect to /login, so
the protected handler never runs.

A resolved session is touched (its inactivity window restarts) only here,
when a request actually used it.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie
from sqlalchemy.ext.asyncio import AsyncSession

from webbase.config import settings
from webbase.database import get_db
from webbase.exceptions import LoginRequiredError
from webbase.schemas.user import AuthenticatedIdentity
from webbase.services.session_service import SessionBinder


session_cookie = APIKeyCookie(name=settings.SESSION_COOKIE_NAME, auto_error=False)


def get_session_binder(request: Request) -> SessionBinder:
    """Return the SessionBinder built by the application factory."""
    return request.app.state.session_binder


async def get_session_token(
    token: str | None = Depends(session_cookie),
) -> str | None:
    return token or None


async def get_optional_identity(
    request: Request,
    token: str | None = Depends(get_session_token),
    binder: SessionBinder = Depends(get_session_binder),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedIdentity | None:
    """
    Resolve the session cookie to an identity, or None for guests.

    On success the identity is also placed on ``request.state.identity``
    so templates can render the signed-in user.
    """
    identity = await binder.resolve(db, token)
    if identity is not None:
        await binder.touch(db, token)
    request.state.identity = identity
    return identity


async def get_current_identity(
    request: Request,
    identity: AuthenticatedIdentity | None = Depends(get_optional_identity),
) -> AuthenticatedIdentity:
    """
    Require a signed-in user.

    Raises:
        LoginRequiredError: If there is no live session. Carries the
            requested path so the login page can send the user back.
    """
    if identity is None:
        next_url = request.url.path
        if request.url.query:
            next_url += "?" + request.url.query
        raise LoginRequiredError(next_url)
    return identity


# Type aliases for route signatures
DbDep = Annotated[AsyncSession, Depends(get_db)]
BinderDep = Annotated[SessionBinder, Depends(get_session_binder)]
SessionTokenDep = Annotated[str | None, Depends(get_session_token)]
OptionalIdentityDep = Annotated[AuthenticatedIdentity | None, Depends(get_optional_identity)]
CurrentIdentityDep = Annotated[AuthenticatedIdentity, Depends(get_current_identity)]
