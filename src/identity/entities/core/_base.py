import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from pydantic import BaseModel
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class Entity(BaseModel):
    """Directory record with a generated UUID and audit timestamps."""

    id: str = PydanticField(
        default_factory=new_id,
        description="Directory-assigned unique identifier",
    )

    created_at: datetime = PydanticField(default_factory=utcnow)
    updated_at: datetime = PydanticField(default_factory=utcnow)

    def touch(self) -> None:
        """Mark the record as modified now."""
        self.updated_at = utcnow()


class EntityTable(SQLModel, table=False):
    """Common columns of directory tables."""

    id: str = Field(primary_key=True, default_factory=new_id)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
