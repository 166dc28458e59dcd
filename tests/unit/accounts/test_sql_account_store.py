"""SqlAccountStore against an in-memory SQLite database."""

from unittest.mock import patch

import pytest
from sqlalchemy import StaticPool
from sqlalchemy.exc import OperationalError
from sqlmodel import create_engine

from src.identity.core.exceptions import DirectoryUnavailable, DuplicateKey
from src.identity.core.models.user import UserDraft
from src.identity.core.services import AccountManager, SqlAccountStore
from src.identity.entities.core.account import Account, AccountRepository
from src.identity.entities.core.organization import Organization
from src.identity.runtime.context import use_config
from tests.fixtures.core import make_config


@pytest.fixture
def sql_store() -> SqlAccountStore:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlAccountStore(engine)
    store.create_tables()
    return store


def federated_account(identifier: str = "jdoe", uid: str = "42") -> Account:
    return Account(
        identifier=identifier,
        roles=["USER", "EDITOR"],
        external_provider="acme",
        external_uid=uid,
    )


class TestSqlAccountStore:
    @pytest.mark.asyncio
    async def test_insert_and_find(self, sql_store):
        created = await sql_store.insert(federated_account())

        by_identifier = await sql_store.find_by_identifier("jdoe")
        by_uid = await sql_store.find_by_external_uid("acme", "42")

        assert by_identifier is not None and by_identifier.id == created.id
        assert by_uid is not None and by_uid.id == created.id
        assert by_identifier.roles == ["USER", "EDITOR"]

    @pytest.mark.asyncio
    async def test_find_missing(self, sql_store):
        assert await sql_store.find_by_identifier("nobody") is None
        assert await sql_store.find_by_external_uid("acme", "0") is None

    @pytest.mark.asyncio
    async def test_duplicate_identifier(self, sql_store):
        await sql_store.insert(federated_account())
        with pytest.raises(DuplicateKey):
            await sql_store.insert(federated_account(uid="43"))

    @pytest.mark.asyncio
    async def test_duplicate_external_identity(self, sql_store):
        await sql_store.insert(federated_account())
        with pytest.raises(DuplicateKey):
            await sql_store.insert(federated_account(identifier="other"))

    @pytest.mark.asyncio
    async def test_organizations(self, sql_store):
        organization = await sql_store.insert_organization(
            Organization(short_name="ACME", name="Acme", members=["jdoe"])
        )
        found = await sql_store.find_organization("ACME")

        assert found is not None and found.id == organization.id
        assert found.members == ["jdoe"]
        with pytest.raises(DuplicateKey):
            await sql_store.insert_organization(Organization(short_name="ACME", name="x"))

    @pytest.mark.asyncio
    async def test_add_organization_member_is_idempotent(self, sql_store):
        await sql_store.insert_organization(
            Organization(short_name="ACME", name="Acme", members=["jdoe"])
        )
        await sql_store.add_organization_member("ACME", "asmith")
        await sql_store.add_organization_member("ACME", "asmith")
        await sql_store.add_organization_member("MISSING", "asmith")

        found = await sql_store.find_organization("ACME")
        assert found.members == ["jdoe", "asmith"]
        assert await sql_store.find_organization("MISSING") is None

    @pytest.mark.asyncio
    async def test_set_organization_unique_id_and_pending(self, sql_store):
        await sql_store.insert(federated_account())

        await sql_store.set_organization_unique_id("jdoe", "org-1")
        await sql_store.set_pending("jdoe", True)

        stored = await sql_store.find_by_identifier("jdoe")
        assert stored.organization_unique_id == "org-1"
        assert stored.pending is True

    @pytest.mark.asyncio
    async def test_driver_failure_is_directory_unavailable(self, sql_store):
        with patch.object(
            AccountRepository,
            "get_by_identifier",
            side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
        ):
            with pytest.raises(DirectoryUnavailable):
                await sql_store.find_by_identifier("jdoe")

    @pytest.mark.asyncio
    async def test_manager_round_trip(self, sql_store):
        manager = AccountManager(sql_store)
        draft = UserDraft(
            identifier="jdoe", external_provider="acme", external_uid="42", organization="ACME"
        )

        with use_config(make_config()):
            first = await manager.get_or_create(draft)
            second = await manager.get_or_create(draft.model_copy())
            org_id = await manager.create_user_org_unique_id_if_missing(draft)

        stored = await sql_store.find_by_identifier("jdoe")
        assert first.id == second.id
        assert org_id is not None
        assert stored.organization_unique_id == org_id
