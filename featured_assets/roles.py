"""
Asset Role Module

Issuer, admin and freezer permissions over asset classes. The ledger only
consumes the AssetAdmin predicates; RoleRegistry is the storage-backed
implementation used by the bundled service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Set

from .storage import StagedView, StorageInterface, StorageRecord
from .logging_config import get_logger


class AssetRole(Enum):
    """Administrative roles over an asset class"""
    ISSUER = "issuer"    # May mint
    ADMIN = "admin"      # May burn, force-transfer, thaw accounts and assets
    FREEZER = "freezer"  # May freeze accounts and assets


class AssetAdmin(ABC):
    """Authorization predicates keyed by asset id and caller"""

    @abstractmethod
    def is_issuer(self, asset_id: int, who: str) -> bool:
        pass

    @abstractmethod
    def is_admin(self, asset_id: int, who: str) -> bool:
        pass

    @abstractmethod
    def is_freezer(self, asset_id: int, who: str) -> bool:
        pass

    def revoke_all(self, view: StagedView, asset_id: int) -> int:
        """
        Stage the removal of every grant over asset_id.

        Called when the asset class is destroyed so a later class reusing
        the id starts without grants. Implementations that keep no grants
        have nothing to remove.
        """
        return 0


@dataclass
class RoleGrant(StorageRecord):
    """A single role granted to a holder over one asset class"""
    asset_id: int
    role: AssetRole
    who: str

    @property
    def storage_key(self) -> str:
        return f"{self.asset_id}/{self.role.value}/{self.who}"

    def to_dict(self) -> Dict[str, Any]:
        return {"asset_id": self.asset_id, "role": self.role.value, "who": self.who}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoleGrant':
        return cls(asset_id=data["asset_id"], role=AssetRole(data["role"]), who=data["who"])


class RoleRegistry(AssetAdmin):
    """Storage-backed role grants"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "asset_roles"
        self.logger = get_logger("featured_assets.roles")

    def grant(self, asset_id: int, role: AssetRole, who: str) -> RoleGrant:
        """Grant role over asset_id to who (idempotent)"""
        grant = RoleGrant(asset_id=asset_id, role=role, who=who)
        self.storage.save(self.table_name, grant.storage_key, grant.to_dict())
        self.logger.info(f"Granted {role.value} on asset {asset_id} to {who}")
        return grant

    def grant_all(self, asset_id: int, who: str) -> List[RoleGrant]:
        """Grant every role over asset_id to who"""
        return [self.grant(asset_id, role, who) for role in AssetRole]

    def revoke(self, asset_id: int, role: AssetRole, who: str) -> bool:
        """Revoke role over asset_id from who"""
        key = RoleGrant(asset_id=asset_id, role=role, who=who).storage_key
        removed = self.storage.delete(self.table_name, key)
        if removed:
            self.logger.info(f"Revoked {role.value} on asset {asset_id} from {who}")
        return removed

    def revoke_all(self, view: StagedView, asset_id: int) -> int:
        """Stage the removal of every grant over asset_id"""
        return view.delete_prefix(self.table_name, f"{asset_id}/")

    def roles_of(self, asset_id: int, who: str) -> Set[AssetRole]:
        """Roles held by who over asset_id"""
        grants = self.storage.find(self.table_name, {"asset_id": asset_id, "who": who})
        return {AssetRole(g["role"]) for g in grants}

    def holders_of(self, asset_id: int, role: AssetRole) -> List[str]:
        """Identities holding role over asset_id"""
        grants = self.storage.find(self.table_name, {"asset_id": asset_id, "role": role.value})
        return sorted(g["who"] for g in grants)

    def has_role(self, asset_id: int, role: AssetRole, who: str) -> bool:
        key = RoleGrant(asset_id=asset_id, role=role, who=who).storage_key
        return self.storage.exists(self.table_name, key)

    def is_issuer(self, asset_id: int, who: str) -> bool:
        return self.has_role(asset_id, AssetRole.ISSUER, who)

    def is_admin(self, asset_id: int, who: str) -> bool:
        return self.has_role(asset_id, AssetRole.ADMIN, who)

    def is_freezer(self, asset_id: int, who: str) -> bool:
        return self.has_role(asset_id, AssetRole.FREEZER, who)
