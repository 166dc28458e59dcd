"""SQL backed account store built on SQLModel."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from loguru import logger
from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from src.identity.core.exceptions import DirectoryUnavailable, DuplicateKey
from src.identity.core.services.accounts.account_store import AccountStore
from src.identity.entities.core.account import Account, AccountRepository
from src.identity.entities.core.organization import (
    Organization,
    OrganizationRepository,
)
from src.identity.runtime.config.config_data import DatabaseConfig

R = TypeVar("R")


def create_directory_engine(db_config: DatabaseConfig) -> Engine:
    """Engine for the account directory database."""
    if db_config.is_sqlite:
        return create_engine(
            db_config.url,
            connect_args={"check_same_thread": False, "timeout": 20},
        )
    return create_engine(
        db_config.url,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle,
        pool_pre_ping=True,
    )


class SqlAccountStore(AccountStore):
    """Account store persisting to a relational database.

    Every operation runs in its own session on a worker thread so that
    database latency never blocks the event loop.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def create_tables(self) -> None:
        from src.identity.entities.core.account import AccountTable  # noqa: F401
        from src.identity.entities.core.organization import OrganizationTable  # noqa: F401

        SQLModel.metadata.create_all(self._engine)

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        db = Session(self._engine, expire_on_commit=False)
        try:
            yield db
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateKey(str(e.orig)) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "Account directory operation failed",
                extra={"error_type": type(e).__name__, "error_message": str(e)},
            )
            raise DirectoryUnavailable("Account directory unavailable") from e
        finally:
            db.close()

    def _run(self, operation: Callable[[Session], R]) -> R:
        with self._session_scope() as db:
            return operation(db)

    async def _call(self, operation: Callable[[Session], R]) -> R:
        return await asyncio.to_thread(self._run, operation)

    async def find_by_identifier(self, identifier: str) -> Account | None:
        return await self._call(
            lambda db: AccountRepository(db).get_by_identifier(identifier)
        )

    async def find_by_external_uid(self, provider: str, uid: str) -> Account | None:
        return await self._call(
            lambda db: AccountRepository(db).get_by_external_uid(provider, uid)
        )

    async def insert(self, account: Account) -> Account:
        return await self._call(lambda db: AccountRepository(db).create(account))

    async def find_organization(self, short_name: str) -> Organization | None:
        return await self._call(
            lambda db: OrganizationRepository(db).get_by_short_name(short_name)
        )

    async def insert_organization(self, organization: Organization) -> Organization:
        return await self._call(
            lambda db: OrganizationRepository(db).create(organization)
        )

    async def add_organization_member(self, short_name: str, identifier: str) -> None:
        await self._call(
            lambda db: OrganizationRepository(db).add_member(short_name, identifier)
        )

    async def set_organization_unique_id(self, identifier: str, unique_id: str) -> None:
        await self._call(
            lambda db: AccountRepository(db).set_organization_unique_id(
                identifier, unique_id
            )
        )

    async def set_pending(self, identifier: str, pending: bool) -> None:
        """Moderation action performed outside the login pipeline."""
        await self._call(lambda db: AccountRepository(db).set_pending(identifier, pending))
