"""Security helpers for the login flow."""

import base64
import hashlib
import secrets
from collections.abc import Sequence


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token.

    Args:
        length: Number of random bytes to generate (default 32)

    Returns:
        URL-safe base64 encoded token
    """
    return (
        base64.urlsafe_b64encode(secrets.token_bytes(length))
        .decode("utf-8")
        .rstrip("=")
    )


def generate_state() -> str:
    """Generate the OAuth2 ``state`` parameter protecting the callback from CSRF."""
    return generate_secure_token(32)


def generate_session_id() -> str:
    return generate_secure_token(32)


def generate_pkce_pair() -> tuple[str, str]:
    """Generate PKCE code verifier and S256 challenge.

    Returns:
        Tuple of (code_verifier, code_challenge)
    """
    code_verifier = generate_secure_token(32)
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")
    return code_verifier, code_challenge


def is_allowed_redirect(target: str | None, allow_list: Sequence[str]) -> bool:
    """Check a post-login redirect target against the configured prefixes.

    Targets must start with one of the allow-listed prefixes. Scheme
    relative URLs (``//host``) and targets containing control characters
    are always refused, as is everything when the allow-list is empty.

    Args:
        target: Caller supplied redirect target
        allow_list: Ordered list of accepted prefixes

    Returns:
        True if the target may be redirected to after login
    """
    if not target or not allow_list:
        return False
    if target.startswith("//") or target.startswith("/\\"):
        return False
    if any(ord(c) < 32 or ord(c) == 127 for c in target):
        return False
    return any(prefix and target.startswith(prefix) for prefix in allow_list)
