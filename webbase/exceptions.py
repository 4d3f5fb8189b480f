"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts; the router/handler layer translates them into responses. Every
error carries a ``detail`` string that is safe to show to an end user.
Anything more specific (which lookup failed, the raw database error) goes
to the log, never into ``detail``.

Exception hierarchy:
    WebBaseError (base)
    ├── InvalidCredentialsError  — login rejected (one message for every reason)
    ├── IncorrectPasswordError   — password change with a wrong current password
    ├── PasswordPolicyError      — new password too short or too long
    ├── UserNotFoundError        — administrative action on a missing user id
    ├── DuplicateUsernameError   — username already taken
    ├── DuplicateEmailError      — email already in use
    ├── StoreError               — database failure (system error)
    ├── MalformedHashError       — stored password hash cannot be parsed
    └── LoginRequiredError       — protected page requested without a session
"""

from datetime import datetime, timezone
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from webbase.schemas.api import ApiResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class WebBaseError(Exception):
    """Base exception for all webbase domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InvalidCredentialsError(WebBaseError):
    """
    Raised when login credentials are rejected.

    Unknown username, user without a password and wrong password all raise
    this exact error so a caller cannot tell them apart.
    """

    def __init__(self):
        super().__init__("Invalid username or password")


class IncorrectPasswordError(WebBaseError):
    """Raised when a password change is attempted with the wrong current password."""

    def __init__(self):
        super().__init__("Current password is incorrect")


class PasswordPolicyError(WebBaseError):
    """Raised when a new password is shorter or longer than the policy allows."""

    def __init__(self, min_length: int | None = None, max_length: int | None = None):
        self.min_length = min_length
        self.max_length = max_length
        if max_length is not None:
            super().__init__(f"Password must be at most {max_length} characters")
        else:
            super().__init__(f"Password must be at least {min_length} characters")


class UserNotFoundError(WebBaseError):
    """Raised by administrative operations addressing a user id that does not exist."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found")


class DuplicateUsernameError(WebBaseError):
    """Raised when creating a user whose username is already taken."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username} is already taken")


class DuplicateEmailError(WebBaseError):
    """Raised when an email address is already used by another account."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already in use")


class StoreError(WebBaseError):
    """
    Raised when the database fails for reasons other than expected duplicates.

    The underlying SQLAlchemy exception is chained (``raise ... from exc``)
    for the logs; the detail shown to users stays generic.
    """

    def __init__(self, detail: str = "System error. Please try again later."):
        super().__init__(detail)


class MalformedHashError(WebBaseError):
    """Raised when a stored password hash is structurally invalid (data corruption)."""

    def __init__(self):
        super().__init__("Stored password hash is malformed")


class LoginRequiredError(WebBaseError):
    """Raised by the request gate when a protected page is requested without a session."""

    def __init__(self, next_url: str = "/"):
        self.next_url = next_url
        super().__init__("Login required")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def not_found_body(path: str) -> dict:
    return ApiResponse(
        message=f"The requested path '{path}' was not found on this server",
        status="error",
        timestamp=datetime.now(timezone.utc).isoformat(),
    ).model_dump()


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Called once from the application factory in main.py.
    """

    @app.exception_handler(LoginRequiredError)
    async def login_required_handler(
        request: Request, exc: LoginRequiredError
    ) -> RedirectResponse:
        # 303 so a POST to a protected page becomes a GET of the login page
        return RedirectResponse(
            url=f"/login?next={quote(exc.next_url, safe='/')}",
            status_code=303,
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(
        request: Request, exc: StoreError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": exc.detail, "error_type": "system_error"},
        )

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(
        request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "user_not_found"},
        )

    @app.exception_handler(DuplicateUsernameError)
    async def duplicate_username_handler(
        request: Request, exc: DuplicateUsernameError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "duplicate_username"},
        )

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(
        request: Request, exc: DuplicateEmailError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "duplicate_email"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content=not_found_body(request.url.path))
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )
