"""Account domain entity."""

from pydantic import Field

from src.identity.entities.core._base import Entity


class Account(Entity):
    """Durable directory record of a user.

    ``identifier`` shares its namespace with ``UserDraft.identifier`` and is
    unique across the directory. ``pending`` is set once, at creation, and
    afterwards only cleared by moderators.
    """

    identifier: str = Field(description="Unique user name")
    email: str | None = Field(default=None, description="Email address")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    organization: str | None = Field(
        default=None, description="Short name of the user's organization"
    )
    organization_unique_id: str | None = Field(
        default=None, description="Stable unique id of the user's organization"
    )
    roles: list[str] = Field(default_factory=list, description="Role names")
    pending: bool = Field(default=False, description="Awaiting moderator approval")
    external_provider: str | None = Field(
        default=None, description="Federated identity provider id"
    )
    external_uid: str | None = Field(
        default=None, description="Unique id assigned by the identity provider"
    )
