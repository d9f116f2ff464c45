"""
Ledger Dispatch Module

Entry point for every ledger call. The dispatcher checks the origin class of
a call, routes it to the AssetRegistry or AccountLedger, turns AssetError
failures into outcome values, publishes the resulting notification and logs
the call. Calls are applied one at a time.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type
import threading

from .accounts import AccountEntry, AccountLedger
from .calls import (
    Call, Origin, Create, ForceCreate, Destroy, ForceDestroy, Mint, Burn,
    Transfer, ForceTransfer, Freeze, Thaw, FreezeAsset, ThawAsset,
    TransferOwnership, SetMaxZombies, SetMetadata
)
from .config import LedgerConfig, get_config
from .currency import InMemoryCurrency, ReservableCurrency
from .errors import AssetError, ErrorKind
from .events import EventDispatcher, EventLog, EventPayload
from .features import AssetFeature, FeatureAssigner, RandomSource
from .logging_config import get_logger, log_action
from .registry import AssetClass, AssetMetadata, AssetRegistry
from .roles import AssetAdmin, RoleRegistry
from .storage import StorageInterface, create_storage
from .system import AccountRegistry, InMemoryAccountRegistry


@dataclass
class DispatchOutcome:
    """Result of one dispatched call: exactly one of event or error is set"""
    call: Call
    origin: Origin
    event: Optional[EventPayload] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> EventPayload:
        """Return the event, or raise the failure as an AssetError"""
        if self.error is not None:
            raise AssetError(self.error, self.message)
        return self.event


class Dispatcher:
    """
    Authenticates, routes and reports ledger calls
    """

    def __init__(
        self,
        registry: AssetRegistry,
        ledger: AccountLedger,
        event_dispatcher: Optional[EventDispatcher] = None
    ):
        self.registry = registry
        self.ledger = ledger
        self.events = event_dispatcher or EventDispatcher()
        self.logger = get_logger("featured_assets.dispatch")
        self._lock = threading.RLock()
        self._routes: Dict[Type[Call], Callable[[Origin, Call], EventPayload]] = {
            Create: lambda o, c: registry.create(o.who, c.asset_id, c.max_zombies, c.min_balance, c.feature_code),
            ForceCreate: lambda o, c: registry.force_create(c.asset_id, c.owner, c.max_zombies, c.min_balance),
            Destroy: lambda o, c: registry.destroy(o.who, c.asset_id, c.zombies_witness),
            ForceDestroy: lambda o, c: registry.force_destroy(c.asset_id, c.zombies_witness),
            Mint: lambda o, c: ledger.mint(o.who, c.asset_id, c.beneficiary, c.amount),
            Burn: lambda o, c: ledger.burn(o.who, c.asset_id, c.who, c.amount),
            Transfer: lambda o, c: ledger.transfer(o.who, c.asset_id, c.target, c.amount),
            ForceTransfer: lambda o, c: ledger.force_transfer(o.who, c.asset_id, c.source, c.dest, c.amount),
            Freeze: lambda o, c: ledger.freeze(o.who, c.asset_id, c.who),
            Thaw: lambda o, c: ledger.thaw(o.who, c.asset_id, c.who),
            FreezeAsset: lambda o, c: registry.freeze_asset(o.who, c.asset_id),
            ThawAsset: lambda o, c: registry.thaw_asset(o.who, c.asset_id),
            TransferOwnership: lambda o, c: registry.transfer_ownership(o.who, c.asset_id, c.owner),
            SetMaxZombies: lambda o, c: registry.set_max_zombies(o.who, c.asset_id, c.max_zombies),
            SetMetadata: lambda o, c: registry.set_metadata(o.who, c.asset_id, c.name, c.symbol, c.decimals),
        }

    def dispatch(self, origin: Origin, call: Call) -> DispatchOutcome:
        """
        Apply one call.

        Returns:
            DispatchOutcome carrying the emitted event on success or the
            ErrorKind on failure; ledger state is untouched on failure

        Raises:
            TypeError: If call is not a ledger call
        """
        route = self._routes.get(type(call))
        if route is None:
            raise TypeError(f"Unsupported call: {call!r}")

        resource = f"asset:{call.asset_id}"
        with self._lock:
            try:
                self._check_origin(origin, call)
                event = route(origin, call)
            except AssetError as e:
                log_action(
                    self.logger, "warning", f"{call.call_name} failed: {e.kind.value}",
                    caller=origin.label, action=call.call_name, resource=resource,
                    outcome=e.kind.value, extra={"detail": e.message}
                )
                return DispatchOutcome(call=call, origin=origin, error=e.kind, message=e.message)

            log_action(
                self.logger, "info", f"{call.call_name} succeeded: {event.event_type.value}",
                caller=origin.label, action=call.call_name, resource=resource,
                outcome="ok", extra=event.data
            )
            self.events.publish(event)
        return DispatchOutcome(call=call, origin=origin, event=event)

    @staticmethod
    def _check_origin(origin: Origin, call: Call) -> None:
        if call.privileged:
            if not origin.is_root:
                raise AssetError(ErrorKind.BAD_ORIGIN, f"{call.call_name} requires the root origin")
        elif origin.is_root or not origin.who:
            raise AssetError(ErrorKind.BAD_ORIGIN, f"{call.call_name} requires a signed origin")

    # Signed calls

    def create(self, who: str, asset_id: int, max_zombies: int, min_balance: int,
               feature_code: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Create(asset_id, max_zombies, min_balance, feature_code))

    def destroy(self, who: str, asset_id: int, zombies_witness: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Destroy(asset_id, zombies_witness))

    def mint(self, who: str, asset_id: int, beneficiary: str, amount: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Mint(asset_id, beneficiary, amount))

    def burn(self, who: str, asset_id: int, holder: str, amount: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Burn(asset_id, holder, amount))

    def transfer(self, who: str, asset_id: int, target: str, amount: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Transfer(asset_id, target, amount))

    def force_transfer(self, who: str, asset_id: int, source: str, dest: str,
                       amount: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), ForceTransfer(asset_id, source, dest, amount))

    def freeze(self, who: str, asset_id: int, holder: str) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Freeze(asset_id, holder))

    def thaw(self, who: str, asset_id: int, holder: str) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), Thaw(asset_id, holder))

    def freeze_asset(self, who: str, asset_id: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), FreezeAsset(asset_id))

    def thaw_asset(self, who: str, asset_id: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), ThawAsset(asset_id))

    def transfer_ownership(self, who: str, asset_id: int, owner: str) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), TransferOwnership(asset_id, owner))

    def set_max_zombies(self, who: str, asset_id: int, max_zombies: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), SetMaxZombies(asset_id, max_zombies))

    def set_metadata(self, who: str, asset_id: int, name: bytes, symbol: bytes,
                     decimals: int) -> DispatchOutcome:
        return self.dispatch(Origin.signed(who), SetMetadata(asset_id, name, symbol, decimals))

    # Privileged calls

    def force_create(self, asset_id: int, owner: str, max_zombies: int,
                     min_balance: int) -> DispatchOutcome:
        return self.dispatch(Origin.root(), ForceCreate(asset_id, owner, max_zombies, min_balance))

    def force_destroy(self, asset_id: int, zombies_witness: int) -> DispatchOutcome:
        return self.dispatch(Origin.root(), ForceDestroy(asset_id, zombies_witness))

    # Read-only queries

    def balance(self, asset_id: int, holder: str) -> int:
        return self.ledger.balance(asset_id, holder)

    def total_supply(self, asset_id: int) -> int:
        return self.registry.total_supply(asset_id)

    def zombie_allowance(self, asset_id: int) -> int:
        return self.registry.zombie_allowance(asset_id)

    def feature(self, asset_id: int) -> Optional[AssetFeature]:
        return self.registry.feature(asset_id)

    def asset_details(self, asset_id: int) -> Optional[AssetClass]:
        return self.registry.asset_details(asset_id)

    def metadata(self, asset_id: int) -> Optional[AssetMetadata]:
        return self.registry.metadata(asset_id)

    def account(self, asset_id: int, holder: str) -> Optional[AccountEntry]:
        return self.ledger.account(asset_id, holder)

    def holders(self, asset_id: int) -> List[AccountEntry]:
        return self.ledger.holders(asset_id)


class LedgerSystem:
    """Ledger with all collaborators initialized"""

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        storage: Optional[StorageInterface] = None,
        currency: Optional[ReservableCurrency] = None,
        account_registry: Optional[AccountRegistry] = None,
        asset_admin: Optional[AssetAdmin] = None,
        random_source: Optional[RandomSource] = None,
        event_dispatcher: Optional[EventDispatcher] = None
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)
        self.currency = currency or InMemoryCurrency()
        self.account_registry = account_registry or InMemoryAccountRegistry()
        self.asset_admin = asset_admin or RoleRegistry(self.storage)

        self.registry = AssetRegistry(
            self.storage, self.config, self.currency, self.asset_admin,
            feature_assigner=FeatureAssigner(random_source)
        )
        self.ledger = AccountLedger(
            self.storage, self.registry, self.account_registry, self.asset_admin
        )
        self.dispatcher = Dispatcher(self.registry, self.ledger, event_dispatcher)

        self.event_log = EventLog()
        self.dispatcher.events.subscribe_all(self.event_log)

    @property
    def events(self) -> EventDispatcher:
        return self.dispatcher.events

    def close(self) -> None:
        self.storage.close()
