"""
Tests for balances, the zombie account lifecycle and dust sweeping
"""

import pytest

from featured_assets.accounts import AccountLedger
from featured_assets.arithmetic import BALANCE_MAX
from featured_assets.config import LedgerConfig
from featured_assets.currency import InMemoryCurrency
from featured_assets.errors import AssetError, ErrorKind
from featured_assets.events import LedgerEvent
from featured_assets.registry import (
    ACCOUNTS_TABLE, ASSETS_TABLE, FEATURES_TABLE, METADATA_TABLE, AssetRegistry
)
from featured_assets.roles import AssetRole, RoleRegistry
from featured_assets.storage import InMemoryStorage, SQLiteStorage
from featured_assets.system import InMemoryAccountRegistry


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Each ledger test runs against both backends"""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "ledger.db")
    yield backend
    backend.close()


@pytest.fixture
def host():
    """Host account registry; holders registered here are not zombies"""
    return InMemoryAccountRegistry()


@pytest.fixture
def roles(storage):
    roles = RoleRegistry(storage)
    roles.grant_all(1, "alice")
    return roles


@pytest.fixture
def registry(storage, roles):
    currency = InMemoryCurrency()
    currency.deposit_creating("alice", 10_000)
    registry = AssetRegistry(storage, LedgerConfig(), currency, roles)
    registry.create("alice", 1, 2, 10, 0x1)
    return registry


@pytest.fixture
def ledger(storage, registry, host, roles):
    return AccountLedger(storage, registry, host, roles)


def expect_error(kind, func, *args):
    with pytest.raises(AssetError) as exc_info:
        func(*args)
    assert exc_info.value.kind == kind


def snapshot(storage):
    """Every stored record keyed by table, comparable across backends"""
    tables = (ASSETS_TABLE, METADATA_TABLE, FEATURES_TABLE, ACCOUNTS_TABLE, "asset_roles")
    return {table: sorted(storage.load_all(table), key=repr) for table in tables}


def assert_invariants(ledger, registry, storage):
    """Check the ledger invariants for every asset class"""
    for details in registry.list_assets():
        entries = ledger.holders(details.asset_id)
        assert details.zombies <= details.max_zombies
        assert details.zombies <= details.accounts
        assert details.accounts == len(entries)
        assert details.zombies == sum(1 for e in entries if e.is_zombie)
        assert details.supply == sum(e.balance for e in entries)
        for entry in entries:
            assert entry.balance != 0
            assert entry.balance >= details.min_balance


class TestMint:
    """Test issuing new units"""

    def test_mint_to_zombie(self, ledger, registry, storage):
        """Test minting to a holder without a host account"""
        event = ledger.mint("alice", 1, "bob", 50)

        assert event.event_type == LedgerEvent.ISSUED
        assert event.data == {"owner": "bob", "amount": 50}
        assert ledger.balance(1, "bob") == 50
        assert ledger.account(1, "bob").is_zombie
        details = registry.asset_details(1)
        assert details.accounts == 1
        assert details.zombies == 1
        assert details.supply == 50
        assert_invariants(ledger, registry, storage)

    def test_mint_to_host_account(self, ledger, registry, host):
        """Test that a holder with a host footprint takes a consumer reference"""
        host.inc_providers("carol")
        ledger.mint("alice", 1, "carol", 20)

        assert not ledger.account(1, "carol").is_zombie
        assert host.consumers("carol") == 1
        details = registry.asset_details(1)
        assert details.accounts == 1
        assert details.zombies == 0

    def test_mint_to_existing_holder(self, ledger, registry):
        ledger.mint("alice", 1, "bob", 50)
        ledger.mint("alice", 1, "bob", 5)
        assert ledger.balance(1, "bob") == 55
        assert registry.asset_details(1).accounts == 1

    def test_zombie_capacity_exhausted(self, ledger, registry, storage):
        """Test that a third zombie is refused and nothing changes"""
        ledger.mint("alice", 1, "bob", 50)
        ledger.mint("alice", 1, "carol", 50)
        before = snapshot(storage)

        expect_error(ErrorKind.TOO_MANY_ZOMBIES, ledger.mint, "alice", 1, "dave", 50)

        assert snapshot(storage) == before
        assert ledger.balance(1, "dave") == 0
        assert registry.total_supply(1) == 100

    def test_mint_errors(self, ledger):
        expect_error(ErrorKind.UNKNOWN, ledger.mint, "alice", 9, "bob", 50)
        expect_error(ErrorKind.NO_PERMISSION, ledger.mint, "bob", 1, "bob", 50)
        expect_error(ErrorKind.BALANCE_LOW, ledger.mint, "alice", 1, "bob", 9)

    def test_mint_supply_overflow(self, ledger, registry):
        ledger.mint("alice", 1, "bob", BALANCE_MAX)
        expect_error(ErrorKind.OVERFLOW, ledger.mint, "alice", 1, "carol", 10)
        assert registry.total_supply(1) == BALANCE_MAX


class TestBurn:
    """Test burning units"""

    def test_partial_burn(self, ledger, registry):
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.burn("alice", 1, "bob", 20)

        assert event.event_type == LedgerEvent.BURNED
        assert event.data == {"owner": "bob", "amount": 20}
        assert ledger.balance(1, "bob") == 30
        assert registry.total_supply(1) == 30

    def test_burn_sweeps_dust(self, ledger, registry, storage):
        """Test that a remainder below min_balance is burned too"""
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.burn("alice", 1, "bob", 45)

        assert event.data["amount"] == 50
        assert ledger.account(1, "bob") is None
        details = registry.asset_details(1)
        assert details.supply == 0
        assert details.accounts == 0
        assert details.zombies == 0
        assert_invariants(ledger, registry, storage)

    def test_burn_clamps_to_balance(self, ledger, registry):
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.burn("alice", 1, "bob", 1000)
        assert event.data["amount"] == 50
        assert registry.total_supply(1) == 0

    def test_burn_releases_consumer(self, ledger, host):
        host.inc_providers("carol")
        ledger.mint("alice", 1, "carol", 20)
        ledger.burn("alice", 1, "carol", 20)
        assert host.consumers("carol") == 0

    def test_burn_errors(self, ledger, roles):
        ledger.mint("alice", 1, "bob", 50)
        expect_error(ErrorKind.UNKNOWN, ledger.burn, "alice", 9, "bob", 1)
        expect_error(ErrorKind.NO_PERMISSION, ledger.burn, "bob", 1, "bob", 1)
        expect_error(ErrorKind.BALANCE_ZERO, ledger.burn, "alice", 1, "nobody", 1)


class TestTransfer:
    """Test permissionless transfers"""

    def test_transfer(self, ledger, registry, storage):
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.transfer("bob", 1, "carol", 20)

        assert event.event_type == LedgerEvent.TRANSFERRED
        assert event.data == {"from": "bob", "to": "carol", "amount": 20}
        assert ledger.balance(1, "bob") == 30
        assert ledger.balance(1, "carol") == 20
        details = registry.asset_details(1)
        assert details.accounts == 2
        assert details.zombies == 2
        assert_invariants(ledger, registry, storage)

    def test_transfer_sweeps_dust(self, ledger, registry, storage):
        """Test that leaving 5 < min_balance moves the whole 50"""
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.transfer("bob", 1, "carol", 45)

        assert event.data["amount"] == 50
        assert ledger.account(1, "bob") is None
        assert ledger.balance(1, "carol") == 50
        details = registry.asset_details(1)
        assert details.accounts == 1
        assert details.zombies == 1
        assert_invariants(ledger, registry, storage)

    def test_transfer_to_self_is_noop(self, ledger, registry, storage):
        ledger.mint("alice", 1, "bob", 50)
        before = snapshot(storage)

        event = ledger.transfer("bob", 1, "bob", 45)

        assert event.event_type == LedgerEvent.TRANSFERRED
        assert event.data == {"from": "bob", "to": "bob", "amount": 45}
        assert snapshot(storage) == before

    def test_transfer_amount_zero(self, ledger):
        expect_error(ErrorKind.AMOUNT_ZERO, ledger.transfer, "bob", 1, "carol", 0)

    def test_transfer_balance_low(self, ledger):
        ledger.mint("alice", 1, "bob", 50)
        expect_error(ErrorKind.BALANCE_LOW, ledger.transfer, "bob", 1, "carol", 51)
        # An unknown asset has no balances, so the balance check fails first
        expect_error(ErrorKind.BALANCE_LOW, ledger.transfer, "bob", 9, "carol", 1)

    def test_transfer_below_min_at_destination(self, ledger, storage):
        """Test that the receiver must end at or above min_balance"""
        ledger.mint("alice", 1, "bob", 50)
        before = snapshot(storage)
        expect_error(ErrorKind.BALANCE_LOW, ledger.transfer, "bob", 1, "carol", 5)
        assert snapshot(storage) == before

    def test_transfer_frozen_holder(self, ledger):
        ledger.mint("alice", 1, "bob", 50)
        ledger.freeze("alice", 1, "bob")
        expect_error(ErrorKind.FROZEN, ledger.transfer, "bob", 1, "carol", 10)

        ledger.thaw("alice", 1, "bob")
        ledger.transfer("bob", 1, "carol", 10)
        assert ledger.balance(1, "carol") == 10

    def test_transfer_frozen_asset(self, ledger, registry):
        ledger.mint("alice", 1, "bob", 50)
        registry.freeze_asset("alice", 1)
        expect_error(ErrorKind.FROZEN, ledger.transfer, "bob", 1, "carol", 10)

    def test_transfer_needs_zombie_slot(self, ledger, storage):
        ledger.mint("alice", 1, "bob", 50)
        ledger.mint("alice", 1, "carol", 50)
        before = snapshot(storage)
        expect_error(ErrorKind.TOO_MANY_ZOMBIES, ledger.transfer, "bob", 1, "dave", 10)
        assert snapshot(storage) == before

    def test_sender_is_dezombified(self, ledger, registry, host, storage):
        """Test that a zombie sender that gained a host account is converted"""
        ledger.mint("alice", 1, "bob", 50)
        host.inc_providers("bob")

        ledger.transfer("bob", 1, "carol", 10)

        assert not ledger.account(1, "bob").is_zombie
        assert host.consumers("bob") == 1
        assert ledger.account(1, "carol").is_zombie
        details = registry.asset_details(1)
        assert details.zombies == 1
        assert details.accounts == 2
        assert_invariants(ledger, registry, storage)


class TestForceTransfer:
    """Test admin transfers"""

    def test_force_transfer_clamps(self, ledger, registry, storage):
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.force_transfer("alice", 1, "bob", "carol", 1000)

        assert event.event_type == LedgerEvent.FORCE_TRANSFERRED
        assert event.data == {"from": "bob", "to": "carol", "amount": 50}
        assert ledger.account(1, "bob") is None
        assert ledger.balance(1, "carol") == 50
        assert_invariants(ledger, registry, storage)

    def test_force_transfer_ignores_freeze(self, ledger, registry):
        ledger.mint("alice", 1, "bob", 50)
        ledger.freeze("alice", 1, "bob")
        registry.freeze_asset("alice", 1)
        ledger.force_transfer("alice", 1, "bob", "carol", 20)
        assert ledger.balance(1, "carol") == 20

    def test_force_transfer_sweeps_dust(self, ledger):
        ledger.mint("alice", 1, "bob", 50)
        event = ledger.force_transfer("alice", 1, "bob", "carol", 41)
        assert event.data["amount"] == 50
        assert ledger.account(1, "bob") is None

    def test_force_transfer_to_self_is_noop(self, ledger, storage):
        ledger.mint("alice", 1, "bob", 50)
        before = snapshot(storage)
        event = ledger.force_transfer("alice", 1, "bob", "bob", 10)
        assert event.data["amount"] == 10
        assert snapshot(storage) == before

    def test_force_transfer_errors(self, ledger):
        expect_error(ErrorKind.AMOUNT_ZERO, ledger.force_transfer, "alice", 1, "bob", "carol", 10)
        ledger.mint("alice", 1, "bob", 50)
        expect_error(ErrorKind.AMOUNT_ZERO, ledger.force_transfer, "alice", 1, "bob", "carol", 0)
        expect_error(ErrorKind.NO_PERMISSION, ledger.force_transfer, "bob", 1, "bob", "carol", 10)
        expect_error(ErrorKind.NO_PERMISSION, ledger.force_transfer, "bob", 1, "bob", "bob", 10)


class TestAccountFreeze:
    """Test freezing individual holders"""

    def test_freeze_and_thaw_events(self, ledger):
        ledger.mint("alice", 1, "bob", 50)
        frozen = ledger.freeze("alice", 1, "bob")
        assert frozen.event_type == LedgerEvent.FROZEN
        assert frozen.data == {"who": "bob"}
        assert ledger.account(1, "bob").is_frozen

        thawed = ledger.thaw("alice", 1, "bob")
        assert thawed.event_type == LedgerEvent.THAWED
        assert not ledger.account(1, "bob").is_frozen

    def test_freeze_errors(self, ledger, roles):
        ledger.mint("alice", 1, "bob", 50)
        roles.grant(1, AssetRole.FREEZER, "fred")

        expect_error(ErrorKind.NO_PERMISSION, ledger.freeze, "bob", 1, "bob")
        expect_error(ErrorKind.BALANCE_ZERO, ledger.freeze, "fred", 1, "nobody")
        ledger.freeze("fred", 1, "bob")
        expect_error(ErrorKind.NO_PERMISSION, ledger.thaw, "fred", 1, "bob")


class TestDestroyWithHolders:
    """Test class destruction against live holders"""

    def test_refs_left_with_host_holder(self, ledger, registry, host):
        """Test that a non-zombie holder blocks destroy"""
        host.inc_providers("carol")
        ledger.mint("alice", 1, "carol", 20)
        expect_error(ErrorKind.REFS_LEFT, registry.destroy, "alice", 1, 0)

    def test_destroy_with_only_zombies(self, ledger, registry, storage):
        ledger.mint("alice", 1, "bob", 50)
        ledger.mint("alice", 1, "carol", 50)
        expect_error(ErrorKind.BAD_WITNESS, registry.destroy, "alice", 1, 1)

        registry.destroy("alice", 1, 2)

        assert registry.asset_details(1) is None
        assert storage.find_keys_with_prefix(ACCOUNTS_TABLE, "1/") == []


class TestQueries:
    """Test read-only holder queries"""

    def test_holders_and_balances(self, ledger):
        ledger.mint("alice", 1, "carol", 20)
        ledger.mint("alice", 1, "bob", 50)
        assert [e.holder for e in ledger.holders(1)] == ["bob", "carol"]
        assert ledger.balances(1) == {"bob": 50, "carol": 20}
        assert ledger.balance(1, "nobody") == 0
        assert ledger.account(1, "nobody") is None
