"""
Asset Registry Module

Owns asset class, metadata and feature records. Implements the class-level
operations: creation, destruction, ownership transfer, zombie capacity,
asset-wide freezing and metadata. Every operation stages its writes in a
StagedView; deposit reservations are the last fallible step before commit
and releases happen only after commit.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional

from .arithmetic import saturating_add, saturating_sub
from .config import LedgerConfig
from .currency import ReservableCurrency, InsufficientBalance
from .deposits import asset_deposit, metadata_deposit, deposit_delta
from .errors import AssetError, ErrorKind, ensure
from .events import EventPayload, LedgerEvent, asset_event
from .features import AssetFeature, FeatureAssigner
from .logging_config import get_logger
from .roles import AssetAdmin
from .storage import StorageInterface, StorageRecord, StagedView


ASSETS_TABLE = "assets"
METADATA_TABLE = "asset_metadata"
FEATURES_TABLE = "asset_features"
ACCOUNTS_TABLE = "asset_accounts"


def account_key_prefix(asset_id: int) -> str:
    """Key prefix shared by every account entry of an asset class"""
    return f"{asset_id}/"


@dataclass
class AssetClass(StorageRecord):
    """
    Details of one asset class.

    The deposit pays for this record together with max_zombies virtual
    accounts. zombies never exceeds max_zombies nor accounts.
    """
    asset_id: int
    owner: str
    supply: int = 0
    deposit: int = 0
    max_zombies: int = 0
    min_balance: int = 1
    zombies: int = 0
    accounts: int = 0
    is_frozen: bool = False
    is_featured: bool = True

    @property
    def storage_key(self) -> str:
        return str(self.asset_id)

    @property
    def zombie_allowance(self) -> int:
        """Zombie slots still available"""
        return saturating_sub(self.max_zombies, self.zombies)

    def can_destroy(self) -> bool:
        """Only zombie holders may outlive the class"""
        return self.accounts == self.zombies


@dataclass
class AssetMetadata(StorageRecord):
    """User-facing name, symbol and decimals of an asset class"""
    asset_id: int
    deposit: int
    name: bytes
    symbol: bytes
    decimals: int

    @property
    def storage_key(self) -> str:
        return str(self.asset_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "deposit": self.deposit,
            "name": self.name.hex(),
            "symbol": self.symbol.hex(),
            "decimals": self.decimals,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssetMetadata':
        return cls(
            asset_id=data["asset_id"],
            deposit=data["deposit"],
            name=bytes.fromhex(data["name"]),
            symbol=bytes.fromhex(data["symbol"]),
            decimals=data["decimals"],
        )


class AssetRegistry:
    """
    Manages asset class lifecycle and class-level configuration
    """

    def __init__(
        self,
        storage: StorageInterface,
        config: LedgerConfig,
        currency: ReservableCurrency,
        asset_admin: AssetAdmin,
        feature_assigner: Optional[FeatureAssigner] = None
    ):
        self.storage = storage
        self.config = config
        self.currency = currency
        self.asset_admin = asset_admin
        self.feature_assigner = feature_assigner or FeatureAssigner()
        self.logger = get_logger("featured_assets.registry")

    # Record access through a staged view

    def load_class(self, view: StagedView, asset_id: int) -> Optional[AssetClass]:
        data = view.load(ASSETS_TABLE, str(asset_id))
        return AssetClass.from_dict(data) if data else None

    def require_class(self, view: StagedView, asset_id: int) -> AssetClass:
        """Load an asset class or fail with Unknown"""
        details = self.load_class(view, asset_id)
        if details is None:
            raise AssetError(ErrorKind.UNKNOWN, f"Asset {asset_id} is unknown")
        return details

    def save_class(self, view: StagedView, details: AssetClass) -> None:
        view.save(ASSETS_TABLE, details.storage_key, details.to_dict())

    def load_metadata(self, view: StagedView, asset_id: int) -> Optional[AssetMetadata]:
        data = view.load(METADATA_TABLE, str(asset_id))
        return AssetMetadata.from_dict(data) if data else None

    def _reserve(self, who: str, amount: int) -> None:
        try:
            self.currency.reserve(who, amount)
        except InsufficientBalance as e:
            raise AssetError(ErrorKind.INSUFFICIENT_FUNDS, str(e)) from e

    def _unreserve(self, who: str, amount: int) -> None:
        shortfall = self.currency.unreserve(who, amount)
        if shortfall:
            self.logger.warning(f"Could not unreserve {shortfall} of {amount} for {who}")

    # Operations

    def create(
        self,
        caller: str,
        asset_id: int,
        max_zombies: int,
        min_balance: int,
        feature_code: int
    ) -> EventPayload:
        """
        Issue a new asset class owned by caller.

        Reserves asset_deposit(max_zombies) from caller and derives the
        class feature from feature_code.

        Raises:
            AssetError: InUse, MinBalanceZero, BadFeaturePoint, InsufficientFunds
        """
        with self.storage.staged() as view:
            ensure(not view.exists(ASSETS_TABLE, str(asset_id)), ErrorKind.IN_USE)
            ensure(min_balance != 0, ErrorKind.MIN_BALANCE_ZERO)
            ensure(feature_code != 0, ErrorKind.BAD_FEATURE_POINT)

            deposit = asset_deposit(self.config, max_zombies)
            details = AssetClass(
                asset_id=asset_id,
                owner=caller,
                deposit=deposit,
                max_zombies=max_zombies,
                min_balance=min_balance,
            )
            feature = self.feature_assigner.from_code(asset_id, feature_code)
            self.save_class(view, details)
            view.save(FEATURES_TABLE, feature.storage_key, feature.to_dict())

            self._reserve(caller, deposit)

        return asset_event(LedgerEvent.CREATED, asset_id, owner=caller)

    def force_create(
        self,
        asset_id: int,
        owner: str,
        max_zombies: int,
        min_balance: int
    ) -> EventPayload:
        """
        Issue a new asset class without reserving a deposit.

        The feature is derived from the random source.

        Raises:
            AssetError: InUse, MinBalanceZero
        """
        with self.storage.staged() as view:
            ensure(not view.exists(ASSETS_TABLE, str(asset_id)), ErrorKind.IN_USE)
            ensure(min_balance != 0, ErrorKind.MIN_BALANCE_ZERO)

            details = AssetClass(
                asset_id=asset_id,
                owner=owner,
                deposit=0,
                max_zombies=max_zombies,
                min_balance=min_balance,
            )
            feature = self.feature_assigner.from_random(asset_id)
            self.save_class(view, details)
            view.save(FEATURES_TABLE, feature.storage_key, feature.to_dict())

        return asset_event(LedgerEvent.FORCE_CREATED, asset_id, owner=owner)

    def destroy(self, caller: str, asset_id: int, zombies_witness: int) -> EventPayload:
        """
        Destroy an asset class owned by caller.

        Raises:
            AssetError: Unknown, NoPermission, RefsLeft, BadWitness
        """
        return self._destroy(asset_id, zombies_witness, caller=caller)

    def force_destroy(self, asset_id: int, zombies_witness: int) -> EventPayload:
        """
        Destroy an asset class regardless of its owner.

        Raises:
            AssetError: Unknown, RefsLeft, BadWitness
        """
        return self._destroy(asset_id, zombies_witness, caller=None)

    def _destroy(self, asset_id: int, zombies_witness: int, caller: Optional[str]) -> EventPayload:
        with self.storage.staged() as view:
            details = self.require_class(view, asset_id)
            if caller is not None:
                ensure(details.owner == caller, ErrorKind.NO_PERMISSION)
            ensure(details.can_destroy(), ErrorKind.REFS_LEFT)
            ensure(details.zombies <= zombies_witness, ErrorKind.BAD_WITNESS)

            metadata = self.load_metadata(view, asset_id)
            released = saturating_add(details.deposit, metadata.deposit if metadata else 0)

            key = details.storage_key
            view.delete(ASSETS_TABLE, key)
            view.delete(METADATA_TABLE, key)
            view.delete(FEATURES_TABLE, key)
            revoked = self.asset_admin.revoke_all(view, asset_id)
            removed = view.delete_prefix(ACCOUNTS_TABLE, account_key_prefix(asset_id))
            if removed != details.zombies:
                raise AssetError(
                    ErrorKind.BAD_STATE,
                    f"Asset {asset_id} has {removed} entries but {details.zombies} zombies"
                )

        self._unreserve(details.owner, released)
        self.logger.debug(
            f"Destroyed asset {asset_id}, removed {removed} zombie entries and {revoked} role grants"
        )
        return asset_event(LedgerEvent.DESTROYED, asset_id)

    def transfer_ownership(self, caller: str, asset_id: int, new_owner: str) -> EventPayload:
        """
        Hand the asset class and its reserved deposits to new_owner.

        Raises:
            AssetError: Unknown, NoPermission, InsufficientFunds
        """
        with self.storage.staged() as view:
            details = self.require_class(view, asset_id)
            ensure(details.owner == caller, ErrorKind.NO_PERMISSION)

            if details.owner != new_owner:
                metadata = self.load_metadata(view, asset_id)
                moved = saturating_add(details.deposit, metadata.deposit if metadata else 0)
                old_owner = details.owner
                details.owner = new_owner
                self.save_class(view, details)

                try:
                    self.currency.repatriate_reserved(old_owner, new_owner, moved)
                except InsufficientBalance as e:
                    raise AssetError(ErrorKind.INSUFFICIENT_FUNDS, str(e)) from e

        return asset_event(LedgerEvent.OWNER_CHANGED, asset_id, owner=new_owner)

    def set_max_zombies(self, caller: str, asset_id: int, max_zombies: int) -> EventPayload:
        """
        Resize the zombie capacity, adjusting the reserved deposit.

        Raises:
            AssetError: Unknown, NoPermission, TooManyZombies, InsufficientFunds
        """
        with self.storage.staged() as view:
            details = self.require_class(view, asset_id)
            ensure(details.owner == caller, ErrorKind.NO_PERMISSION)
            ensure(max_zombies >= details.zombies, ErrorKind.TOO_MANY_ZOMBIES)

            new_deposit = asset_deposit(self.config, max_zombies)
            to_reserve, to_release = deposit_delta(details.deposit, new_deposit)

            details.max_zombies = max_zombies
            details.deposit = new_deposit
            self.save_class(view, details)

            if to_reserve:
                self._reserve(caller, to_reserve)

        if to_release:
            self._unreserve(caller, to_release)
        return asset_event(LedgerEvent.MAX_ZOMBIES_CHANGED, asset_id, max_zombies=max_zombies)

    def freeze_asset(self, caller: str, asset_id: int) -> EventPayload:
        """
        Block permissionless transfers for every holder.

        Raises:
            AssetError: Unknown, NoPermission
        """
        with self.storage.staged() as view:
            details = self.require_class(view, asset_id)
            ensure(self.asset_admin.is_freezer(asset_id, caller), ErrorKind.NO_PERMISSION)
            details.is_frozen = True
            self.save_class(view, details)

        return asset_event(LedgerEvent.ASSET_FROZEN, asset_id)

    def thaw_asset(self, caller: str, asset_id: int) -> EventPayload:
        """
        Allow permissionless transfers again.

        Raises:
            AssetError: Unknown, NoPermission
        """
        with self.storage.staged() as view:
            details = self.require_class(view, asset_id)
            ensure(self.asset_admin.is_admin(asset_id, caller), ErrorKind.NO_PERMISSION)
            details.is_frozen = False
            self.save_class(view, details)

        return asset_event(LedgerEvent.ASSET_THAWED, asset_id)

    def set_metadata(
        self,
        caller: str,
        asset_id: int,
        name: bytes,
        symbol: bytes,
        decimals: int
    ) -> EventPayload:
        """
        Set or clear the metadata of an asset class.

        Empty name and symbol together with zero decimals clear the record
        and release its whole deposit.

        Raises:
            AssetError: BadMetadata, Unknown, NoPermission, InsufficientFunds
        """
        limit = self.config.string_limit
        ensure(len(name) <= limit, ErrorKind.BAD_METADATA, f"name longer than {limit} bytes")
        ensure(len(symbol) <= limit, ErrorKind.BAD_METADATA, f"symbol longer than {limit} bytes")

        to_release = 0
        with self.storage.staged() as view:
            details = self.require_class(view, asset_id)
            ensure(details.owner == caller, ErrorKind.NO_PERMISSION)

            existing = self.load_metadata(view, asset_id)
            old_deposit = existing.deposit if existing else 0

            if not name and not symbol and decimals == 0:
                view.delete(METADATA_TABLE, details.storage_key)
                to_release = old_deposit
            else:
                new_deposit = metadata_deposit(self.config, name, symbol)
                to_reserve, to_release = deposit_delta(old_deposit, new_deposit)
                metadata = AssetMetadata(
                    asset_id=asset_id,
                    deposit=new_deposit,
                    name=bytes(name),
                    symbol=bytes(symbol),
                    decimals=decimals,
                )
                view.save(METADATA_TABLE, metadata.storage_key, metadata.to_dict())
                if to_reserve:
                    self._reserve(caller, to_reserve)

        if to_release:
            self._unreserve(caller, to_release)
        return asset_event(
            LedgerEvent.METADATA_SET, asset_id,
            name=bytes(name).hex(),
            symbol=bytes(symbol).hex(),
            decimals=decimals,
        )

    # Read-only queries

    def asset_details(self, asset_id: int) -> Optional[AssetClass]:
        """Get an asset class by id"""
        data = self.storage.load(ASSETS_TABLE, str(asset_id))
        return AssetClass.from_dict(data) if data else None

    def metadata(self, asset_id: int) -> Optional[AssetMetadata]:
        """Get the metadata of an asset class, None when unset"""
        data = self.storage.load(METADATA_TABLE, str(asset_id))
        return AssetMetadata.from_dict(data) if data else None

    def feature(self, asset_id: int) -> Optional[AssetFeature]:
        """Get the feature record of an asset class"""
        data = self.storage.load(FEATURES_TABLE, str(asset_id))
        return AssetFeature.from_dict(data) if data else None

    def total_supply(self, asset_id: int) -> int:
        """Total supply of an asset class, zero when unknown"""
        details = self.asset_details(asset_id)
        return details.supply if details else 0

    def zombie_allowance(self, asset_id: int) -> int:
        """Zombie slots still available, zero when unknown"""
        details = self.asset_details(asset_id)
        return details.zombie_allowance if details else 0

    def list_assets(self) -> List[AssetClass]:
        """All asset classes ordered by id"""
        assets = [AssetClass.from_dict(d) for d in self.storage.load_all(ASSETS_TABLE)]
        return sorted(assets, key=lambda a: a.asset_id)
