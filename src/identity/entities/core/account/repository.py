"""Account repository."""

from sqlmodel import Session, select

from src.identity.entities.core.account.entity import Account
from src.identity.entities.core.account.table import AccountTable


class AccountRepository:
    """Data-access layer for accounts."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_identifier(self, identifier: str) -> Account | None:
        statement = select(AccountTable).where(AccountTable.identifier == identifier)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return Account.model_validate(row, from_attributes=True)

    def get_by_external_uid(self, provider: str, uid: str) -> Account | None:
        statement = select(AccountTable).where(
            (AccountTable.external_provider == provider)
            & (AccountTable.external_uid == uid)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return Account.model_validate(row, from_attributes=True)

    def create(self, account: Account) -> Account:
        row = AccountTable.model_validate(account.model_dump())
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Account.model_validate(row, from_attributes=True)

    def set_organization_unique_id(self, identifier: str, unique_id: str) -> bool:
        statement = select(AccountTable).where(AccountTable.identifier == identifier)
        row = self._session.exec(statement).first()
        if row is None:
            return False
        row.organization_unique_id = unique_id
        self._session.add(row)
        return True

    def set_pending(self, identifier: str, pending: bool) -> bool:
        statement = select(AccountTable).where(AccountTable.identifier == identifier)
        row = self._session.exec(statement).first()
        if row is None:
            return False
        row.pending = pending
        self._session.add(row)
        return True
