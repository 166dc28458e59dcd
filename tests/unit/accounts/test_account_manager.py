"""Unit tests for AccountManager."""

import asyncio

import pytest

from src.identity.core.exceptions import DuplicateKey, IdentityInvariantViolation
from src.identity.core.models.user import UserDraft
from src.identity.core.services import AccountManager, InMemoryAccountStore
from src.identity.entities.core.account import Account
from src.identity.runtime.config.config_data import SecurityConfig
from src.identity.runtime.context import use_config
from tests.fixtures.core import make_config, make_provider
from tests.fixtures.services import CountingAccountStore


def federated_draft(uid: str = "42", identifier: str = "jdoe", **fields) -> UserDraft:
    return UserDraft(
        identifier=identifier,
        external_provider="acme",
        external_uid=uid,
        roles=["USER"],
        **fields,
    )


class TestFindAndCreate:
    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, account_manager, account_store):
        with use_config(make_config()):
            first = await account_manager.get_or_create(federated_draft())
            second = await account_manager.get_or_create(federated_draft())

        assert first.id == second.id
        assert account_store.insert_calls == 1
        assert len(account_store) == 1

    @pytest.mark.asyncio
    async def test_find_never_creates(self, account_manager, account_store):
        with use_config(make_config()):
            assert await account_manager.find(federated_draft()) is None
        assert account_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_created_account_mirrors_draft(self, account_manager):
        draft = federated_draft(email="jdoe@acme.test", first_name="John", organization="ACME")
        with use_config(make_config()):
            account = await account_manager.get_or_create(draft)

        assert account.identifier == "jdoe"
        assert account.email == "jdoe@acme.test"
        assert account.organization == "ACME"
        assert account.roles == ["USER"]
        assert (account.external_provider, account.external_uid) == ("acme", "42")

    @pytest.mark.asyncio
    async def test_pre_authenticated_lookup_by_identifier(self, account_manager):
        draft = UserDraft(identifier="proxy-user", roles=["USER"])
        with use_config(make_config()):
            created = await account_manager.get_or_create(draft)
            found = await account_manager.find(UserDraft(identifier="proxy-user"))
        assert found is not None and found.id == created.id

    @pytest.mark.asyncio
    async def test_draft_without_identity_is_rejected(self, account_manager):
        with pytest.raises(IdentityInvariantViolation):
            await account_manager.find(UserDraft())

    @pytest.mark.asyncio
    async def test_taken_user_name_gets_suffix(self, account_manager):
        with use_config(make_config()):
            first = await account_manager.get_or_create(federated_draft(uid="1"))
            second = await account_manager.get_or_create(federated_draft(uid="2"))
            third = await account_manager.get_or_create(federated_draft(uid="3"))

        assert [first.identifier, second.identifier, third.identifier] == [
            "jdoe",
            "jdoe1",
            "jdoe2",
        ]

    @pytest.mark.asyncio
    async def test_default_organization_applied_on_creation(self, account_manager):
        config = make_config(security=SecurityConfig(default_organization="GUEST"))
        with use_config(config):
            account = await account_manager.get_or_create(federated_draft())
        assert account.organization == "GUEST"


class TestModeration:
    @pytest.mark.parametrize(
        "global_default, provider_override, expected",
        [
            (True, False, False),
            (False, True, True),
            (True, None, True),
            (False, None, False),
        ],
    )
    @pytest.mark.asyncio
    async def test_pending_precedence(
        self, account_manager, global_default, provider_override, expected
    ):
        config = make_config(
            security=SecurityConfig(moderated_signup=global_default),
            providers={"acme": make_provider(moderated_signup=provider_override)},
        )
        with use_config(config):
            account = await account_manager.get_or_create(federated_draft())
        assert account.pending is expected

    @pytest.mark.asyncio
    async def test_pre_authenticated_uses_global_default(self, account_manager):
        config = make_config(
            security=SecurityConfig(moderated_signup=True),
            providers={"acme": make_provider(moderated_signup=False)},
        )
        with use_config(config):
            account = await account_manager.get_or_create(UserDraft(identifier="proxy-user"))
        assert account.pending is True

    @pytest.mark.asyncio
    async def test_is_pending_reads_durable_state(self, account_manager, account_store):
        config = make_config(security=SecurityConfig(moderated_signup=True))
        with use_config(config):
            account = await account_manager.get_or_create(federated_draft())
            draft = UserDraft.from_account(account)
            assert await account_manager.is_pending_account(draft) is True

            account_store.set_pending(account.identifier, False)
            # the draft still carries the stale flag, the directory wins
            assert draft.pending is True
            assert await account_manager.is_pending_account(draft) is False

    @pytest.mark.asyncio
    async def test_is_pending_ignores_namesake_account(self, account_manager, account_store):
        with use_config(make_config()):
            await account_manager.get_or_create(UserDraft(identifier="jdoe"))
            account_store.set_pending("jdoe", True)

            federated = await account_manager.get_or_create(federated_draft())
            assert federated.identifier == "jdoe1"
            assert await account_manager.is_pending_account(federated_draft()) is False

            account_store.set_pending("jdoe1", True)
            assert await account_manager.is_pending_account(federated_draft()) is True


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_first_logins_create_one_account(
        self, account_manager, account_store
    ):
        with use_config(make_config()):
            accounts = await asyncio.gather(
                *(account_manager.get_or_create(federated_draft()) for _ in range(20))
            )

        assert len({account.id for account in accounts}) == 1
        assert account_store.insert_calls == 1

    @pytest.mark.asyncio
    async def test_duplicate_key_from_another_process_is_recovered(self):
        class RacingStore(CountingAccountStore):
            """Simulates another process committing the same account first."""

            async def insert(self, account: Account) -> Account:
                if self.insert_calls == 0:
                    self.insert_calls += 1
                    await InMemoryAccountStore.insert(self, account.model_copy())
                    raise DuplicateKey("uq_account_external_identity")
                return await super().insert(account)

        store = RacingStore()
        manager = AccountManager(store)
        with use_config(make_config()):
            account = await manager.get_or_create(federated_draft())

        assert account.identifier == "jdoe"
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_unexplained_duplicate_is_an_invariant_violation(self):
        class BrokenStore(InMemoryAccountStore):
            async def insert(self, account: Account) -> Account:
                raise DuplicateKey("constraint")

        manager = AccountManager(BrokenStore())
        with use_config(make_config()):
            with pytest.raises(IdentityInvariantViolation):
                await manager.get_or_create(UserDraft(identifier="proxy-user"))

    @pytest.mark.asyncio
    async def test_cancelled_creation_commits_nothing(self):
        insert_started = asyncio.Event()

        class SlowStore(InMemoryAccountStore):
            slow = True

            async def insert(self, account: Account) -> Account:
                if self.slow:
                    insert_started.set()
                    await asyncio.sleep(3600)
                return await super().insert(account)

        store = SlowStore()
        manager = AccountManager(store)
        with use_config(make_config()):
            task = asyncio.create_task(manager.get_or_create(federated_draft()))
            await insert_started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            assert len(store) == 0

            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(manager.get_or_create(federated_draft()), 0.05)
            assert len(store) == 0

            # the per-identity lock was released by the cancelled calls
            store.slow = False
            account = await manager.get_or_create(federated_draft())

        assert account.identifier == "jdoe"
        assert len(store) == 1


class TestOrganizationUniqueId:
    @pytest.mark.asyncio
    async def test_assigns_and_creates_organization_once(self, account_manager, account_store):
        with use_config(make_config()):
            first = await account_manager.get_or_create(
                federated_draft(uid="1", organization="ACME")
            )
            second = await account_manager.get_or_create(
                federated_draft(uid="2", identifier="asmith", organization="ACME")
            )
            first_draft = UserDraft.from_account(first)
            second_draft = UserDraft.from_account(second)
            first_id = await account_manager.create_user_org_unique_id_if_missing(first_draft)
            second_id = await account_manager.create_user_org_unique_id_if_missing(second_draft)
            stored = await account_store.find_by_identifier("jdoe")
            organization = await account_store.find_organization("ACME")

        assert first_id and first_id == second_id
        assert first_draft.organization_unique_id == first_id
        assert stored.organization_unique_id == first_id
        assert account_store.organization_inserts == 1
        assert organization.id == first_id
        assert organization.members == ["jdoe", "asmith"]

    @pytest.mark.asyncio
    async def test_no_op_when_already_assigned(self, account_manager, account_store):
        draft = federated_draft(organization="ACME", organization_unique_id="existing")
        with use_config(make_config()):
            await account_manager.get_or_create(draft)
            assert await account_manager.create_user_org_unique_id_if_missing(draft) == "existing"
        assert account_store.organization_inserts == 0

    @pytest.mark.asyncio
    async def test_no_op_without_organization(self, account_manager, account_store):
        with use_config(make_config()):
            draft = federated_draft()
            await account_manager.get_or_create(draft)
            assert await account_manager.create_user_org_unique_id_if_missing(draft) is None
        assert account_store.organization_inserts == 0
