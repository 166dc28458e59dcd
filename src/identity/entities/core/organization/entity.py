"""Organization domain entity."""

from pydantic import Field

from src.identity.entities.core._base import Entity


class Organization(Entity):
    """Organization a user belongs to.

    ``id`` is the stable organization-scoped unique identifier handed out to
    members; ``short_name`` is what drafts and claims refer to.
    """

    short_name: str = Field(description="Unique short name")
    name: str = Field(description="Display name")
    members: list[str] = Field(
        default_factory=list, description="Identifiers of member accounts"
    )
