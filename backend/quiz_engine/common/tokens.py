"""Opaque session token generation."""

import secrets

from quiz_engine.core.config import settings


def generate_session_token(nbytes: int | None = None) -> str:
    """Return a cryptographically secure hex token (``2 * nbytes`` characters)."""
    return secrets.token_hex(nbytes or settings.SESSION_TOKEN_BYTES)
