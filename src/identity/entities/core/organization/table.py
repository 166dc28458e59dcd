"""Organization database table model."""

from sqlalchemy import JSON, Column, String
from sqlmodel import Field

from src.identity.entities.core._base import EntityTable


class OrganizationTable(EntityTable, table=True):
    """Database persistence model for organizations."""

    short_name: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True)
    )
    name: str
    members: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
