"""
Test suite for the reserve currency and host account registry collaborators

Deposits are reserved, released and repatriated in whole currency units.
"""

import pytest

from featured_assets.currency import InMemoryCurrency, InsufficientBalance
from featured_assets.system import InMemoryAccountRegistry, NoProviders


@pytest.fixture
def currency():
    currency = InMemoryCurrency()
    currency.deposit_creating("alice", 1000)
    return currency


class TestReservableCurrency:
    """Test reserve, unreserve and repatriate"""

    def test_deposit_creating(self, currency):
        """Test crediting free balance"""
        assert currency.deposit_creating("alice", 500) == 1500
        assert currency.free_balance("bob") == 0

    def test_deposit_rejects_invalid_amounts(self, currency):
        """Test that negative and fractional amounts are refused"""
        with pytest.raises(ValueError):
            currency.deposit_creating("alice", -1)
        with pytest.raises(ValueError):
            currency.deposit_creating("alice", 1.5)

    def test_reserve(self, currency):
        """Test moving free balance into reserve"""
        currency.reserve("alice", 300)
        assert currency.free_balance("alice") == 700
        assert currency.reserved_balance("alice") == 300
        assert currency.total_balance("alice") == 1000

    def test_reserve_insufficient(self, currency):
        """Test that over-reserving raises and changes nothing"""
        with pytest.raises(InsufficientBalance) as exc_info:
            currency.reserve("alice", 1001)
        assert exc_info.value.requested == 1001
        assert exc_info.value.available == 1000
        assert currency.free_balance("alice") == 1000
        assert currency.reserved_balance("alice") == 0

    def test_reserve_zero_is_noop(self):
        """Test that a zero reservation succeeds without funds"""
        currency = InMemoryCurrency()
        currency.reserve("nobody", 0)
        assert currency.reserved_balance("nobody") == 0

    def test_unreserve_returns_shortfall(self, currency):
        """Test releasing more than reserved"""
        currency.reserve("alice", 100)
        assert currency.unreserve("alice", 40) == 0
        assert currency.unreserve("alice", 100) == 40
        assert currency.reserved_balance("alice") == 0
        assert currency.free_balance("alice") == 1000

    def test_repatriate_reserved(self, currency):
        """Test moving reserved funds to another holder's reserve"""
        currency.reserve("alice", 200)
        currency.repatriate_reserved("alice", "bob", 150)
        assert currency.reserved_balance("alice") == 50
        assert currency.reserved_balance("bob") == 150
        assert currency.free_balance("bob") == 0

    def test_repatriate_insufficient(self, currency):
        """Test that repatriating more than reserved fails"""
        currency.reserve("alice", 10)
        with pytest.raises(InsufficientBalance):
            currency.repatriate_reserved("alice", "bob", 11)
        assert currency.reserved_balance("alice") == 10


class TestAccountRegistry:
    """Test provider and consumer reference counting"""

    def test_account_exists_follows_providers(self):
        registry = InMemoryAccountRegistry()
        assert not registry.account_exists("carol")
        registry.inc_providers("carol")
        assert registry.account_exists("carol")
        registry.dec_providers("carol")
        assert not registry.account_exists("carol")

    def test_inc_consumers_requires_provider(self):
        registry = InMemoryAccountRegistry()
        with pytest.raises(NoProviders):
            registry.inc_consumers("ghost")

    def test_consumers_block_last_provider_removal(self):
        """Test that an account with consumers keeps its last provider"""
        registry = InMemoryAccountRegistry()
        registry.inc_providers("carol")
        registry.inc_consumers("carol")
        with pytest.raises(ValueError):
            registry.dec_providers("carol")

        registry.dec_consumers("carol")
        registry.dec_providers("carol")
        assert registry.providers("carol") == 0

    def test_dec_consumers_saturates(self):
        registry = InMemoryAccountRegistry()
        registry.dec_consumers("carol")
        assert registry.consumers("carol") == 0
