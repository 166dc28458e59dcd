"""Request-scoped user identity being enriched by the customizer chain."""

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.identity.entities.core.account import Account


def unique_roles(roles: Iterable[str]) -> list[str]:
    """Drop duplicates keeping the first occurrence of every role."""
    return list(dict.fromkeys(roles))


class UserDraft(BaseModel):
    """Mutable user identity owned by one authentication event.

    Role order matters: when roles are merged the first occurrence wins, so
    the list is de-duplicated on every assignment.
    """

    model_config = {"validate_assignment": True}

    identifier: str | None = Field(default=None, description="User name")
    email: str | None = Field(default=None, description="Email address")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    organization: str | None = Field(
        default=None, description="Organization short name"
    )
    organization_unique_id: str | None = Field(
        default=None, description="Stable unique id of the organization"
    )
    roles: list[str] = Field(default_factory=list, description="Ordered role names")
    external_auth: bool = Field(
        default=False, description="Authenticated outside the account directory"
    )
    external_provider: str | None = Field(
        default=None, description="Federated identity provider id"
    )
    external_uid: str | None = Field(
        default=None, description="Unique id assigned by the identity provider"
    )
    account_id: str | None = Field(default=None, description="Resolved account id")
    pending: bool = Field(default=False, description="Account awaits moderation")

    @field_validator("roles", mode="after")
    @classmethod
    def _dedupe_roles(cls, value: list[str]) -> list[str]:
        return unique_roles(value)

    @property
    def is_federated(self) -> bool:
        return bool(self.external_provider and self.external_uid)

    def prepend_roles(self, roles: Iterable[str]) -> None:
        """Put ``roles`` ahead of the current ones, preserving their order."""
        self.roles = [*roles, *self.roles]

    def add_roles(self, roles: Iterable[str]) -> None:
        self.roles = [*self.roles, *roles]

    @classmethod
    def from_account(cls, account: Account, **overrides: Any) -> "UserDraft":
        """Draft mirroring the durable state of ``account``."""
        draft = cls(
            identifier=account.identifier,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            organization=account.organization,
            organization_unique_id=account.organization_unique_id,
            roles=list(account.roles),
            external_provider=account.external_provider,
            external_uid=account.external_uid,
            account_id=account.id,
            pending=account.pending,
        )
        for name, value in overrides.items():
            setattr(draft, name, value)
        return draft

    def to_account(self, pending: bool, identifier: str | None = None) -> Account:
        """New, not yet persisted account built from this draft."""
        return Account(
            identifier=identifier or self.identifier,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            organization=self.organization or None,
            organization_unique_id=self.organization_unique_id,
            roles=list(self.roles),
            pending=pending,
            external_provider=self.external_provider,
            external_uid=self.external_uid,
        )
