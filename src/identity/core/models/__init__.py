"""Identity, authentication and session models."""

from .authentication import (
    Authentication,
    OAuth2Authentication,
    PasswordAuthentication,
    PreAuthenticatedAuthentication,
)
from .session import LoginState, SavedRedirect, SessionIdentity
from .user import UserDraft, unique_roles

__all__ = [
    "Authentication",
    "OAuth2Authentication",
    "PasswordAuthentication",
    "PreAuthenticatedAuthentication",
    "LoginState",
    "SavedRedirect",
    "SessionIdentity",
    "UserDraft",
    "unique_roles",
]
