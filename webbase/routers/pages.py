"""
Pages router — server-rendered HTML pages and the login/logout/profile flows.

Endpoints:
  GET  /          — Home page (guests and members)
  GET  /landing   — Landing page (guests and members)
  GET  /login     — Login form; signed-in users are sent home
  POST /login     — Authenticate, start a session, set the cookie
  POST /logout    — End the session, clear the cookie
  GET  /profile   — Profile page (login required)
  POST /profile   — Update email or change password (login required)

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed or verified and never logged.
  - Login failures render one message for every cause.
  - A successful login always issues a fresh session token and destroys
    the one the browser presented, so a planted token cannot be upgraded
    into an authenticated session.
  - The ``next`` redirect target is restricted to local paths.
"""

from fastapi import APIRouter, Form, Request, status
from fastapi.responses import RedirectResponse

from webbase.config import settings
from webbase.dependencies import (
    BinderDep,
    CurrentIdentityDep,
    DbDep,
    OptionalIdentityDep,
    SessionTokenDep,
)
from webbase.exceptions import (
    DuplicateEmailError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    LoginRequiredError,
    PasswordPolicyError,
    StoreError,
)
from webbase.schemas.profile import ChangePassword, ProfileFormError, UpdateEmail, parse_profile_action
from webbase.services import auth_service, catalog_service, user_store
from webbase.templating import render

router = APIRouter()


INDEX_FEATURES = [
    {"icon": "🚀", "title": "Fast & Efficient", "description": "Async request handling on FastAPI and uvicorn"},
    {"icon": "🔧", "title": "Modern Stack", "description": "SQLAlchemy 2.0, Pydantic v2 and Jinja2 templates"},
    {"icon": "📡", "title": "API Ready", "description": "JSON endpoints alongside server-rendered pages"},
    {"icon": "🔐", "title": "Sessions Built In", "description": "Argon2 passwords and database-backed sessions"},
]

INDEX_ENDPOINTS = [
    {"name": "Try API", "path": "/api/hello"},
    {"name": "Health Check", "path": "/health"},
]

LANDING_FEATURES = [
    {
        "title": "Modern Architecture",
        "description": "Built with Python, FastAPI and SQLAlchemy for a clean async foundation.",
        "link": "/api/hello",
    },
    {
        "title": "Authentication Ready",
        "description": "Complete user authentication with sessions and secure password handling.",
        "link": "/login",
    },
    {
        "title": "Production Ready",
        "description": "Health checks, structured logging, tests and consistent error handling.",
        "link": "/health",
    },
]


def safe_next_url(next_url: str | None) -> str:
    """Only allow local absolute paths as post-login redirect targets."""
    if not next_url or not next_url.startswith("/") or next_url.startswith("//") or "\\" in next_url:
        return "/"
    return next_url


def _set_session_cookie(response: RedirectResponse, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=int(settings.session_inactivity.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------

@router.get("/", summary="Home page")
async def home(request: Request, identity: OptionalIdentityDep, db: DbDep):
    categories = await catalog_service.list_categories(db)
    return render(
        request,
        "index.html",
        {
            "title": "Home",
            "description": "A fast and modern Python web application template built with FastAPI",
            "features": INDEX_FEATURES,
            "endpoints": INDEX_ENDPOINTS,
            "categories": categories,
        },
    )


@router.get("/landing", summary="Landing page")
async def landing(request: Request, identity: OptionalIdentityDep):
    return render(
        request,
        "landing.html",
        {
            "page_title": "Modern Python Web Application Template",
            "page_description": "A production-ready foundation for building secure web applications with FastAPI.",
            "landing_features": LANDING_FEATURES,
        },
    )


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

@router.get("/login", summary="Login form")
async def login_page(request: Request, identity: OptionalIdentityDep, next: str = "/"):
    if identity is not None:
        return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    return render(request, "login.html", {"title": "Login", "error": None, "next": safe_next_url(next)})


@router.post("/login", summary="Submit login form")
async def login_submit(
    request: Request,
    db: DbDep,
    binder: BinderDep,
    old_token: SessionTokenDep,
    username: str = Form(...),
    password: str = Form(...),
    next: str = Form("/"),
):
    """
    Authenticate and start a session.

    On success: 303 redirect to ``next`` with a fresh session cookie.
    On failure: the login page again, with the username kept in the form.
    """
    page = {"title": "Login", "username": username, "next": safe_next_url(next)}

    try:
        identity = await auth_service.authenticate(db, username, password)
        await binder.destroy(db, old_token)
        token = await binder.create_session(db, identity)
    except InvalidCredentialsError as exc:
        return render(request, "login.html", {**page, "error": exc.detail}, status_code=401)
    except StoreError as exc:
        await db.rollback()
        return render(request, "login.html", {**page, "error": exc.detail}, status_code=503)

    response = RedirectResponse(url=safe_next_url(next), status_code=status.HTTP_303_SEE_OTHER)
    _set_session_cookie(response, token)
    return response


@router.post("/logout", summary="End the session")
async def logout(db: DbDep, binder: BinderDep, token: SessionTokenDep):
    await binder.destroy(db, token)
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.SESSION_COOKIE_NAME, httponly=True, samesite="lax")
    return response


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

async def _render_profile(
    request: Request,
    db: DbDep,
    binder: BinderDep,
    token: str | None,
    identity,
    success: str | None = None,
    error: str | None = None,
):
    user = await user_store.get_user_by_id(db, identity.id)
    if user is None:
        # Deactivated since the session was created
        await binder.destroy(db, token)
        raise LoginRequiredError(request.url.path)

    return render(
        request,
        "profile.html",
        {"title": "Profile", "user": user, "success": success, "error": error},
    )


@router.get("/profile", summary="Profile page")
async def profile_page(
    request: Request,
    identity: CurrentIdentityDep,
    db: DbDep,
    binder: BinderDep,
    token: SessionTokenDep,
):
    return await _render_profile(request, db, binder, token, identity)


@router.post("/profile", summary="Update email or change password")
async def profile_submit(
    request: Request,
    identity: CurrentIdentityDep,
    db: DbDep,
    binder: BinderDep,
    token: SessionTokenDep,
):
    """
    Handle either profile form.

    The form is parsed into UpdateEmail or ChangePassword by its ``action``
    field. Every email change is followed by a rewrite of all of the
    user's session payloads, so no session keeps showing the old address.
    """
    form = await request.form()
    success = None
    error = None

    try:
        action = parse_profile_action(dict(form))
    except ProfileFormError as exc:
        action = None
        error = exc.message

    if isinstance(action, UpdateEmail):
        try:
            if await auth_service.update_profile(db, identity.id, action.email):
                identity = identity.model_copy(update={"email": action.email})
                await binder.refresh_user_sessions(db, identity)
                request.state.identity = identity
                success = "Profile updated successfully!"
            else:
                error = "Failed to update profile"
        except DuplicateEmailError as exc:
            error = exc.detail
        except StoreError as exc:
            await db.rollback()
            error = exc.detail

    elif isinstance(action, ChangePassword):
        try:
            await auth_service.change_password(
                db, identity.id, action.current_password, action.new_password
            )
            success = "Password changed successfully!"
        except (IncorrectPasswordError, PasswordPolicyError) as exc:
            error = exc.detail
        except StoreError as exc:
            await db.rollback()
            error = exc.detail

    return await _render_profile(request, db, binder, token, identity, success=success, error=error)
