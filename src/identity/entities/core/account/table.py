"""Account database table model."""

from sqlalchemy import JSON, Column, String, UniqueConstraint
from sqlmodel import Field

from src.identity.entities.core._base import EntityTable


class AccountTable(EntityTable, table=True):
    """Database persistence model for accounts.

    The unique constraints are what makes concurrent first logins safe: the
    losing insert fails instead of creating a second account.
    """

    __table_args__ = (
        UniqueConstraint("identifier", name="uq_account_identifier"),
        UniqueConstraint(
            "external_provider", "external_uid", name="uq_account_external_identity"
        ),
    )

    identifier: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    organization: str | None = Field(default=None, index=True)
    organization_unique_id: str | None = None
    roles: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    pending: bool = False
    external_provider: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True, index=True)
    )
    external_uid: str | None = Field(
        default=None, sa_column=Column(String(512), nullable=True, index=True)
    )
