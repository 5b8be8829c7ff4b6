"""Sign-in against Supabase auth."""

from __future__ import annotations

import logging

from supabase import AuthError, create_client

from nichefinder.config import SUPABASE_ANON_KEY, SUPABASE_URL
from nichefinder.models import Session

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Sign-in did not produce a session."""


def sign_in(email: str, password: str) -> Session:
    """Sign in with email and password.

    Uses its own client so the user's token never replaces the service key
    used for table access.

    Raises:
        AuthenticationError: missing credentials or no session returned.
    """
    if not email or not password:
        raise AuthenticationError("email and password are required")
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise AuthenticationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)
    try:
        resp = client.auth.sign_in_with_password({"email": email, "password": password})
    except AuthError as e:
        raise AuthenticationError(f"sign-in failed for {email}: {e}") from e
    if resp.session is None or resp.user is None:
        raise AuthenticationError(f"no session returned for {email}")

    logger.info("signed in: user=%s", resp.user.id)
    return Session(
        user_id=resp.user.id,
        access_token=resp.session.access_token,
        email=resp.user.email,
    )
