"""
Security utilities: password hashing and session tokens.

This module centralizes the cryptographic operations so they're easy to
audit and update.

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - Argon2id is memory-hard and time-hard, which is what makes GPU/ASIC
     brute force expensive. A fast digest (MD5, SHA-*) is never acceptable
     here.
   - passlib's CryptContext produces self-describing PHC strings
     ("$argon2id$v=19$m=65536,t=3,p=4$<salt>$<digest>"), so verification
     always uses the parameters and salt the hash was created with.

2. SESSION TOKENS
   - Opaque, URL-safe random strings from the OS CSPRNG (secrets module)
   - They carry no data; the server looks them up in the sessions table
"""

import secrets

from passlib.context import CryptContext
from passlib.exc import PasswordSizeError

from webbase.exceptions import MalformedHashError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

# "deprecated='auto'" lets a future scheme take over while old hashes still verify.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id with a fresh random salt.

    Two calls with the same password return different strings; both verify.

    Args:
        plain_password: Password as submitted; never logged or stored.

    Returns:
        An Argon2 PHC hash string.
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a submitted password against a stored PHC string.

    The digest comparison is constant-time.

    Args:
        plain_password: Password as submitted.
        hashed_password: Value of users.password_hash.

    Returns:
        Whether the password matches. A password longer than passlib
        accepts cannot match anything and returns False.

    Raises:
        MalformedHashError: If ``hashed_password`` is not a parseable hash.
            This signals corrupted data, not a wrong password.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except PasswordSizeError:
        # Subclass of ValueError; an oversized input says nothing about the stored hash
        return False
    except (ValueError, TypeError) as exc:
        # passlib raises ValueError for unidentifiable or malformed hashes
        raise MalformedHashError() from exc


# ---------------------------------------------------------------------------
# 2. Session Tokens
# ---------------------------------------------------------------------------

SESSION_TOKEN_BYTES = 32


def generate_session_token() -> str:
    """Return a new unguessable session token (256 bits of entropy)."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)
