"""
Account Ledger Module

Per-(asset, holder) balances and the zombie account lifecycle. A holder that
has no footprint in the host account registry occupies one of the asset's
zombie slots; a holder that does takes a consumer reference there instead.

Entries never persist with a zero balance or a balance below the class
min_balance: any remainder below the minimum is swept into the amount being
burned or moved and the entry is removed.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .arithmetic import (
    COUNTER_MAX, checked_add, checked_sub, saturating_add, saturating_sub
)
from .errors import AssetError, ErrorKind, ensure
from .events import EventPayload, LedgerEvent, asset_event
from .logging_config import get_logger
from .registry import ACCOUNTS_TABLE, AssetClass, AssetRegistry, account_key_prefix
from .roles import AssetAdmin
from .storage import StorageInterface, StorageRecord, StagedView
from .system import AccountRegistry, NoProviders


@dataclass
class AccountEntry(StorageRecord):
    """Balance of one holder in one asset class"""
    asset_id: int
    holder: str
    balance: int = 0
    is_frozen: bool = False
    is_zombie: bool = False

    @property
    def storage_key(self) -> str:
        return entry_key(self.asset_id, self.holder)


def entry_key(asset_id: int, holder: str) -> str:
    return f"{account_key_prefix(asset_id)}{holder}"


class AccountLedger:
    """
    Balance operations over asset classes owned by an AssetRegistry
    """

    def __init__(
        self,
        storage: StorageInterface,
        registry: AssetRegistry,
        account_registry: AccountRegistry,
        asset_admin: AssetAdmin
    ):
        self.storage = storage
        self.registry = registry
        self.account_registry = account_registry
        self.asset_admin = asset_admin
        self.logger = get_logger("featured_assets.accounts")

    # Record access through a staged view

    def load_entry(self, view: StagedView, asset_id: int, holder: str) -> Optional[AccountEntry]:
        data = view.load(ACCOUNTS_TABLE, entry_key(asset_id, holder))
        return AccountEntry.from_dict(data) if data else None

    def get_entry(self, view: StagedView, asset_id: int, holder: str) -> AccountEntry:
        """Load an entry, defaulting to an empty one"""
        return self.load_entry(view, asset_id, holder) or AccountEntry(asset_id=asset_id, holder=holder)

    def save_entry(self, view: StagedView, entry: AccountEntry) -> None:
        view.save(ACCOUNTS_TABLE, entry.storage_key, entry.to_dict())

    def remove_entry(self, view: StagedView, entry: AccountEntry) -> None:
        view.delete(ACCOUNTS_TABLE, entry.storage_key)

    # Zombie lifecycle

    def new_account(self, holder: str, details: AssetClass) -> bool:
        """
        Account for a holder whose balance goes from zero to non-zero.

        Returns:
            True if the holder takes a zombie slot

        Raises:
            AssetError: Overflow, TooManyZombies, BadState
        """
        accounts = checked_add(details.accounts, 1, COUNTER_MAX)
        ensure(accounts is not None, ErrorKind.OVERFLOW)

        if self.account_registry.account_exists(holder):
            try:
                self.account_registry.inc_consumers(holder)
            except NoProviders as e:
                raise AssetError(ErrorKind.BAD_STATE, str(e)) from e
            is_zombie = False
        else:
            ensure(details.zombies < details.max_zombies, ErrorKind.TOO_MANY_ZOMBIES)
            details.zombies += 1
            is_zombie = True

        details.accounts = accounts
        return is_zombie

    def dezombify(self, holder: str, details: AssetClass, entry: AccountEntry) -> None:
        """Turn a zombie holder that now exists in the host registry into a referenced one"""
        if entry.is_zombie and self.account_registry.account_exists(holder):
            try:
                self.account_registry.inc_consumers(holder)
            except NoProviders:
                # account_exists guarantees a provider
                self.logger.error(f"Holder {holder} exists without providers")
                return
            entry.is_zombie = False
            details.zombies = saturating_sub(details.zombies, 1)

    def dead_account(self, holder: str, details: AssetClass, is_zombie: bool) -> None:
        """Account for a holder whose balance returns to zero"""
        if is_zombie:
            details.zombies = saturating_sub(details.zombies, 1)
        else:
            self.account_registry.dec_consumers(holder)
        details.accounts = saturating_sub(details.accounts, 1)

    def _credit(self, view: StagedView, details: AssetClass, holder: str, amount: int) -> None:
        """Credit amount to holder, opening an account when needed"""
        entry = self.get_entry(view, details.asset_id, holder)
        new_balance = saturating_add(entry.balance, amount)
        ensure(new_balance >= details.min_balance, ErrorKind.BALANCE_LOW)
        if entry.balance == 0:
            entry.is_zombie = self.new_account(holder, details)
        entry.balance = new_balance
        self.save_entry(view, entry)

    def _settle_source(self, view: StagedView, details: AssetClass, entry: AccountEntry) -> None:
        """Persist a debited source entry, or remove it once drained"""
        if entry.balance == 0:
            self.dead_account(entry.holder, details, entry.is_zombie)
            self.remove_entry(view, entry)
        else:
            self.dezombify(entry.holder, details, entry)
            self.save_entry(view, entry)

    # Operations

    def mint(self, caller: str, asset_id: int, beneficiary: str, amount: int) -> EventPayload:
        """
        Issue new units of an asset to beneficiary.

        Raises:
            AssetError: Unknown, NoPermission, Overflow, BalanceLow,
                TooManyZombies, BadState
        """
        with self.storage.staged() as view:
            details = self.registry.require_class(view, asset_id)
            ensure(self.asset_admin.is_issuer(asset_id, caller), ErrorKind.NO_PERMISSION)

            supply = checked_add(details.supply, amount)
            ensure(supply is not None, ErrorKind.OVERFLOW)
            details.supply = supply

            self._credit(view, details, beneficiary, amount)
            self.registry.save_class(view, details)

        return asset_event(LedgerEvent.ISSUED, asset_id, owner=beneficiary, amount=amount)

    def burn(self, caller: str, asset_id: int, holder: str, amount: int) -> EventPayload:
        """
        Destroy up to amount of holder's balance.

        A remainder below min_balance is burned as well and the entry removed.

        Raises:
            AssetError: Unknown, NoPermission, BalanceZero
        """
        with self.storage.staged() as view:
            details = self.registry.require_class(view, asset_id)
            ensure(self.asset_admin.is_admin(asset_id, caller), ErrorKind.NO_PERMISSION)

            entry = self.load_entry(view, asset_id, holder)
            ensure(entry is not None, ErrorKind.BALANCE_ZERO)

            burned = min(amount, entry.balance)
            entry.balance -= burned
            if entry.balance < details.min_balance:
                burned += entry.balance
                self.dead_account(holder, details, entry.is_zombie)
                self.remove_entry(view, entry)
            else:
                self.save_entry(view, entry)

            details.supply = saturating_sub(details.supply, burned)
            self.registry.save_class(view, details)

        return asset_event(LedgerEvent.BURNED, asset_id, owner=holder, amount=burned)

    def transfer(self, caller: str, asset_id: int, target: str, amount: int) -> EventPayload:
        """
        Move amount from caller to target.

        If caller would be left below min_balance, the whole remainder moves.

        Raises:
            AssetError: AmountZero, Frozen, BalanceLow, Unknown,
                TooManyZombies, Overflow, BadState
        """
        ensure(amount != 0, ErrorKind.AMOUNT_ZERO)

        with self.storage.staged() as view:
            source = self.get_entry(view, asset_id, caller)
            ensure(not source.is_frozen, ErrorKind.FROZEN)
            remaining = checked_sub(source.balance, amount)
            ensure(remaining is not None, ErrorKind.BALANCE_LOW)

            details = self.registry.require_class(view, asset_id)
            ensure(not details.is_frozen, ErrorKind.FROZEN)

            if target != caller:
                amount = self._move(view, details, source, remaining, target, amount)

        return asset_event(
            LedgerEvent.TRANSFERRED, asset_id, **{"from": caller, "to": target, "amount": amount}
        )

    def force_transfer(
        self,
        caller: str,
        asset_id: int,
        source_holder: str,
        dest: str,
        amount: int
    ) -> EventPayload:
        """
        Move up to amount from source_holder to dest as an asset admin.

        Freeze flags are ignored. If the source would be left below
        min_balance, the whole remainder moves.

        Raises:
            AssetError: AmountZero, Unknown, NoPermission, BalanceLow,
                TooManyZombies, Overflow, BadState
        """
        with self.storage.staged() as view:
            source = self.get_entry(view, asset_id, source_holder)
            amount = min(amount, source.balance)
            ensure(amount != 0, ErrorKind.AMOUNT_ZERO)

            details = self.registry.require_class(view, asset_id)
            ensure(self.asset_admin.is_admin(asset_id, caller), ErrorKind.NO_PERMISSION)

            if dest != source_holder:
                amount = self._move(view, details, source, source.balance - amount, dest, amount)

        return asset_event(
            LedgerEvent.FORCE_TRANSFERRED, asset_id,
            **{"from": source_holder, "to": dest, "amount": amount}
        )

    def _move(
        self,
        view: StagedView,
        details: AssetClass,
        source: AccountEntry,
        remaining: int,
        dest: str,
        amount: int
    ) -> int:
        """
        Debit source down to remaining and credit dest, sweeping dust.

        Returns:
            The amount actually moved
        """
        source.balance = remaining
        if source.balance < details.min_balance:
            amount += source.balance
            source.balance = 0

        self._credit(view, details, dest, amount)
        self._settle_source(view, details, source)
        self.registry.save_class(view, details)
        return amount

    def freeze(self, caller: str, asset_id: int, holder: str) -> EventPayload:
        """
        Block holder from sending the asset.

        Raises:
            AssetError: NoPermission, BalanceZero
        """
        return self._set_frozen(caller, asset_id, holder, True)

    def thaw(self, caller: str, asset_id: int, holder: str) -> EventPayload:
        """
        Allow holder to send the asset again.

        Raises:
            AssetError: NoPermission, BalanceZero
        """
        return self._set_frozen(caller, asset_id, holder, False)

    def _set_frozen(self, caller: str, asset_id: int, holder: str, frozen: bool) -> EventPayload:
        if frozen:
            allowed = self.asset_admin.is_freezer(asset_id, caller)
        else:
            allowed = self.asset_admin.is_admin(asset_id, caller)
        ensure(allowed, ErrorKind.NO_PERMISSION)

        with self.storage.staged() as view:
            entry = self.load_entry(view, asset_id, holder)
            ensure(entry is not None, ErrorKind.BALANCE_ZERO)
            entry.is_frozen = frozen
            self.save_entry(view, entry)

        event_type = LedgerEvent.FROZEN if frozen else LedgerEvent.THAWED
        return asset_event(event_type, asset_id, who=holder)

    # Read-only queries

    def account(self, asset_id: int, holder: str) -> Optional[AccountEntry]:
        """Get the entry of holder, None when the balance is zero"""
        data = self.storage.load(ACCOUNTS_TABLE, entry_key(asset_id, holder))
        return AccountEntry.from_dict(data) if data else None

    def balance(self, asset_id: int, holder: str) -> int:
        """Balance of holder, zero when absent"""
        entry = self.account(asset_id, holder)
        return entry.balance if entry else 0

    def holders(self, asset_id: int) -> List[AccountEntry]:
        """Every entry of an asset class ordered by holder"""
        entries = [AccountEntry.from_dict(d)
                   for d in self.storage.find(ACCOUNTS_TABLE, {"asset_id": asset_id})]
        return sorted(entries, key=lambda e: e.holder)

    def balances(self, asset_id: int) -> Dict[str, int]:
        """Mapping of holder to balance for an asset class"""
        return {e.holder: e.balance for e in self.holders(asset_id)}
