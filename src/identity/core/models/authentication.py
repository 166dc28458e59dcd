"""Authentication events the identity pipeline is invoked with.

An event stands for one login attempt. Events are compared by identity
and can be weakly referenced, which lets caches key on them without
keeping them alive.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class Authentication:
    """Base class for a validated authentication assertion."""

    @property
    def name(self) -> str | None:
        return None


@dataclass(eq=False)
class OAuth2Authentication(Authentication):
    """Login through a federated OAuth2/OIDC identity provider."""

    provider: str
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str | None:
        subject = self.claims.get("sub")
        return subject if isinstance(subject, str) else None


@dataclass(eq=False)
class PreAuthenticatedAuthentication(Authentication):
    """Login vouched for by a trusted upstream proxy through request headers."""

    username: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str | None:
        return self.username


@dataclass(eq=False)
class PasswordAuthentication(Authentication):
    """Login checked directly against the account directory."""

    username: str

    @property
    def name(self) -> str | None:
        return self.username
