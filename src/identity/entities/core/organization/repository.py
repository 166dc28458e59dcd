"""Organization repository."""

from sqlmodel import Session, select

from src.identity.entities.core.organization.entity import Organization
from src.identity.entities.core.organization.table import OrganizationTable


class OrganizationRepository:
    """Data-access layer for organizations."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_short_name(self, short_name: str) -> Organization | None:
        statement = select(OrganizationTable).where(
            OrganizationTable.short_name == short_name
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return Organization.model_validate(row, from_attributes=True)

    def create(self, organization: Organization) -> Organization:
        row = OrganizationTable.model_validate(organization.model_dump())
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Organization.model_validate(row, from_attributes=True)

    def add_member(self, short_name: str, identifier: str) -> bool:
        statement = select(OrganizationTable).where(
            OrganizationTable.short_name == short_name
        )
        row = self._session.exec(statement).first()
        if row is None:
            return False
        if identifier not in row.members:
            # reassigned so the JSON column is flagged dirty
            row.members = [*row.members, identifier]
            self._session.add(row)
        return True
