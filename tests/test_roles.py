"""
Test suite for asset role grants
"""

import pytest

from featured_assets.roles import AssetRole, RoleGrant, RoleRegistry
from featured_assets.storage import InMemoryStorage, StagedView


@pytest.fixture
def storage():
    """Create in-memory storage for tests"""
    return InMemoryStorage()


@pytest.fixture
def roles(storage):
    return RoleRegistry(storage)


class TestRoleGrants:
    """Test granting and revoking roles"""

    def test_grant_and_check(self, roles):
        roles.grant(1, AssetRole.ISSUER, "alice")
        assert roles.is_issuer(1, "alice")
        assert not roles.is_admin(1, "alice")
        assert not roles.is_issuer(2, "alice")
        assert not roles.is_issuer(1, "bob")

    def test_grant_is_idempotent(self, roles, storage):
        roles.grant(1, AssetRole.ADMIN, "alice")
        roles.grant(1, AssetRole.ADMIN, "alice")
        assert storage.count("asset_roles") == 1

    def test_grant_all(self, roles):
        grants = roles.grant_all(3, "alice")
        assert {g.role for g in grants} == set(AssetRole)
        assert roles.is_issuer(3, "alice")
        assert roles.is_admin(3, "alice")
        assert roles.is_freezer(3, "alice")

    def test_revoke(self, roles):
        roles.grant(1, AssetRole.FREEZER, "alice")
        assert roles.revoke(1, AssetRole.FREEZER, "alice")
        assert not roles.is_freezer(1, "alice")
        assert not roles.revoke(1, AssetRole.FREEZER, "alice")

    def test_revoke_all_is_staged(self, roles, storage):
        """Test that every grant over one asset goes with the staged commit"""
        roles.grant_all(1, "alice")
        roles.grant(1, AssetRole.ADMIN, "bob")
        roles.grant(10, AssetRole.ADMIN, "bob")

        view = StagedView(storage)
        assert roles.revoke_all(view, 1) == 4
        assert roles.is_admin(1, "bob")

        view.commit()
        assert roles.roles_of(1, "alice") == set()
        assert not roles.is_admin(1, "bob")
        assert roles.is_admin(10, "bob")

    def test_roles_of_and_holders_of(self, roles):
        roles.grant(1, AssetRole.ISSUER, "alice")
        roles.grant(1, AssetRole.ADMIN, "alice")
        roles.grant(1, AssetRole.ADMIN, "bob")
        roles.grant(2, AssetRole.ADMIN, "carol")

        assert roles.roles_of(1, "alice") == {AssetRole.ISSUER, AssetRole.ADMIN}
        assert roles.holders_of(1, AssetRole.ADMIN) == ["alice", "bob"]

    def test_grant_record_round_trip(self):
        grant = RoleGrant(asset_id=4, role=AssetRole.FREEZER, who="dave")
        assert grant.storage_key == "4/freezer/dave"
        assert RoleGrant.from_dict(grant.to_dict()) == grant
