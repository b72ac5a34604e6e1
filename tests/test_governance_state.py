"""
Tests for the OpenShelf GlobalState aggregate.

Tests:
- Initialization from the configured super admin
- Admin and curator roster management
- Capacity limits and duplicate checks
- Pause flag
- Serialization
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from conftest import make_principal
from errors import (
    AdminAlreadyExists,
    AdminNotFound,
    AlreadyInitialized,
    CuratorAlreadyExists,
    CuratorNotFound,
    InsufficientPermissions,
    InvalidPrincipal,
    NotConfigured,
    OnlySuperAdmin,
    RoleLimitExceeded,
)
from governance_state import (
    DEFAULT_RECOVERY_THRESHOLD,
    DEFAULT_TRANSFER_TIMELOCK,
    MAX_ADMINS,
    MAX_CURATORS,
    GlobalState,
    RoleRoster,
    add_admin,
    add_curator,
    initialize_state,
    remove_admin,
    remove_curator,
    set_paused,
)
from principal import Principal
from rate_limiter import AdditionWindow


class TestInitialization:
    """Tests for initialize_state."""

    def test_initial_values(self, super_admin):
        state = initialize_state(None, super_admin, super_admin)
        assert state.super_admin == super_admin
        assert len(state.admins) == 0
        assert len(state.curators) == 0
        assert state.catalog_count == 0
        assert state.version == 1
        assert state.paused is False
        assert state.pending_super_admin is None
        assert state.transfer_timelock == DEFAULT_TRANSFER_TIMELOCK == 604800
        assert state.emergency_candidate is None
        assert state.emergency_recovery_threshold == DEFAULT_RECOVERY_THRESHOLD == 2

    def test_custom_protocol_settings(self, super_admin):
        state = initialize_state(
            None, super_admin, super_admin, transfer_timelock=3600, recovery_threshold=3
        )
        assert state.transfer_timelock == 3600
        assert state.emergency_recovery_threshold == 3

    def test_second_initialization_fails(self, state, super_admin):
        with pytest.raises(AlreadyInitialized):
            initialize_state(state, super_admin, super_admin)

    def test_wrong_caller_fails(self, super_admin, outsider):
        with pytest.raises(OnlySuperAdmin):
            initialize_state(None, outsider, super_admin)

    def test_unconfigured_fails(self, super_admin):
        with pytest.raises(NotConfigured):
            initialize_state(None, super_admin, None)
        with pytest.raises(NotConfigured):
            initialize_state(None, Principal.zero(), Principal.zero())


class TestAdminRoster:
    """Tests for admin management."""

    def test_super_admin_adds_admin(self, state, super_admin, admin_a):
        new_state = add_admin(state, super_admin, admin_a)
        assert admin_a in new_state.admins
        assert admin_a not in state.admins

    def test_admin_adds_admin(self, state, super_admin, admin_a, admin_b):
        state = add_admin(state, super_admin, admin_a)
        state = add_admin(state, admin_a, admin_b)
        assert list(state.admins) == [admin_a, admin_b]

    def test_fourth_admin_fails(self, state, super_admin):
        for n in range(10, 10 + MAX_ADMINS):
            state = add_admin(state, super_admin, make_principal(n))
        assert len(state.admins) == 3

        with pytest.raises(RoleLimitExceeded) as exc_info:
            add_admin(state, super_admin, make_principal(20))
        assert "Admin limit reached" in exc_info.value.message

    def test_fourth_admin_fails_for_admin_caller(self, state, super_admin, admin_a):
        """Test that an admin caller hits the same limit as the super admin."""
        state = add_admin(state, super_admin, admin_a)
        state = add_admin(state, admin_a, make_principal(10))
        state = add_admin(state, admin_a, make_principal(11))
        assert len(state.admins) == MAX_ADMINS

        with pytest.raises(RoleLimitExceeded):
            add_admin(state, admin_a, make_principal(20))

    def test_capacity_checked_before_duplicate(self, state, super_admin):
        members = [make_principal(n) for n in range(10, 13)]
        for member in members:
            state = add_admin(state, super_admin, member)
        with pytest.raises(RoleLimitExceeded):
            add_admin(state, super_admin, members[0])

    def test_duplicate_admin_fails(self, governed_state, super_admin, admin_a):
        with pytest.raises(AdminAlreadyExists):
            add_admin(governed_state, super_admin, admin_a)

    def test_zero_principal_fails(self, state, super_admin):
        with pytest.raises(InvalidPrincipal):
            add_admin(state, super_admin, Principal.zero())

    def test_curator_cannot_add_admin(self, governed_state, curator, outsider):
        with pytest.raises(InsufficientPermissions):
            add_admin(governed_state, curator, outsider)

    def test_permission_checked_before_zero(self, governed_state, outsider):
        with pytest.raises(InsufficientPermissions):
            add_admin(governed_state, outsider, Principal.zero())

    def test_remove_admin(self, governed_state, super_admin, admin_a, admin_b):
        state = remove_admin(governed_state, super_admin, admin_a)
        assert list(state.admins) == [admin_b]

    def test_admin_cannot_remove_admin(self, governed_state, admin_a, admin_b):
        with pytest.raises(OnlySuperAdmin):
            remove_admin(governed_state, admin_a, admin_b)

    def test_remove_missing_admin(self, governed_state, super_admin, outsider):
        with pytest.raises(AdminNotFound) as exc_info:
            remove_admin(governed_state, super_admin, outsider)
        assert exc_info.value.http_status == 404

    def test_remove_withdraws_recovery_vote(self, governed_state, super_admin, admin_a, admin_b):
        state = governed_state.evolve(
            emergency_candidate=make_principal(30),
            emergency_votes=governed_state.emergency_votes.with_member(admin_a),
        )
        state = remove_admin(state, super_admin, admin_a)
        assert admin_a not in state.emergency_votes
        assert state.emergency_candidate == make_principal(30)


class TestCuratorRoster:
    """Tests for curator management."""

    def test_admin_adds_curator(self, governed_state, admin_a, other_curator):
        state = add_curator(governed_state, admin_a, other_curator)
        assert state.is_curator(other_curator)

    def test_eleventh_curator_fails(self, state, super_admin):
        for n in range(40, 40 + MAX_CURATORS):
            state = add_curator(state, super_admin, make_principal(n))

        with pytest.raises(RoleLimitExceeded) as exc_info:
            add_curator(state, super_admin, make_principal(60))
        assert exc_info.value.details["role"] == "curator"

    def test_duplicate_curator_fails(self, governed_state, admin_a, curator):
        with pytest.raises(CuratorAlreadyExists):
            add_curator(governed_state, admin_a, curator)

    def test_curator_cannot_add_curator(self, governed_state, curator, outsider):
        with pytest.raises(InsufficientPermissions):
            add_curator(governed_state, curator, outsider)

    def test_admin_removes_curator(self, governed_state, admin_b, curator):
        state = remove_curator(governed_state, admin_b, curator)
        assert not state.is_curator(curator)

    def test_remove_missing_curator(self, governed_state, admin_a, outsider):
        with pytest.raises(CuratorNotFound):
            remove_curator(governed_state, admin_a, outsider)

    def test_re_add_after_removal(self, governed_state, super_admin, curator):
        state = remove_curator(governed_state, super_admin, curator)
        state = add_curator(state, super_admin, curator)
        assert state.is_curator(curator)


class TestPause:
    """Tests for set_paused."""

    def test_pause_and_unpause(self, state, super_admin):
        paused = set_paused(state, super_admin, True)
        assert paused.paused is True
        assert state.paused is False
        assert set_paused(paused, super_admin, False).paused is False

    def test_admin_cannot_pause(self, governed_state, admin_a):
        with pytest.raises(OnlySuperAdmin):
            set_paused(governed_state, admin_a, True)

    def test_pause_is_idempotent(self, state, super_admin):
        once = set_paused(state, super_admin, True)
        twice = set_paused(once, super_admin, True)
        assert twice == once


class TestRoleRoster:
    """Tests for RoleRoster."""

    def test_preserves_insertion_order(self):
        a, b, c = make_principal(1), make_principal(2), make_principal(3)
        roster = RoleRoster("r", 3, [b, a, c])
        assert list(roster) == [b, a, c]

    def test_over_capacity_construction_fails(self):
        with pytest.raises(ValueError):
            RoleRoster("r", 1, [make_principal(1), make_principal(2)])

    def test_mutators_return_new_roster(self):
        roster = RoleRoster("r", 2)
        grown = roster.with_member(make_principal(1))
        assert len(roster) == 0
        assert len(grown) == 1
        assert grown.is_full is False


class TestSerialization:
    """Tests for GlobalState.to_dict / from_dict."""

    def test_round_trip_with_pending_protocols(self, governed_state, admin_a, candidate):
        state = governed_state.evolve(
            paused=True,
            catalog_count=7,
            pending_super_admin=candidate,
            transfer_initiated_at=123,
            emergency_votes=governed_state.emergency_votes.with_member(admin_a),
        )
        restored = GlobalState.from_dict(state.to_dict())
        assert restored == state

    def test_to_dict_uses_hex(self, governed_state, super_admin):
        data = governed_state.to_dict()
        assert data["super_admin"] == super_admin.to_hex()
        assert data["pending_super_admin"] is None
        assert len(data["admins"]) == 2

    def test_evolve_does_not_mutate(self, governed_state):
        changed = governed_state.evolve(catalog_count=5)
        assert governed_state.catalog_count == 0
        assert changed.catalog_count == 5

    def test_with_addition_window(self, state):
        window = AdditionWindow(1000, 0, 1, 49)
        new_state = state.with_addition_window(window, catalog_count=1)
        assert new_state.last_addition_timestamp == 1000
        assert new_state.additions_today == 1
        assert new_state.catalog_count == 1
        assert state.additions_today == 0
