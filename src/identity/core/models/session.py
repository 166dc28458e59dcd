"""Models kept in the session attribute store."""

import time

from pydantic import BaseModel, Field

from src.identity.core.models.user import UserDraft


class SavedRedirect(BaseModel):
    """Post-login destination captured before the provider handshake."""

    url: str = Field(description="Allow-listed redirect target")
    created_at: int = Field(default_factory=lambda: int(time.time()))


class LoginState(BaseModel):
    """CSRF state of an OAuth2 authorization request in flight."""

    state: str = Field(description="Opaque state sent to the provider")
    provider: str = Field(description="OIDC provider identifier")
    code_verifier: str = Field(description="PKCE code verifier")
    created_at: int = Field(default_factory=lambda: int(time.time()))


class SessionIdentity(BaseModel):
    """Identity established for a session after a successful login."""

    user: UserDraft = Field(description="Finalized user identity")
    provider: str | None = Field(default=None, description="OIDC provider identifier")
    created_at: int = Field(default_factory=lambda: int(time.time()))
