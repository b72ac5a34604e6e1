"""
OpenShelf - Global Governance State

The single GlobalState aggregate: role rosters, pause flag, catalog
counter, rate limiter fields, and the two super-admin recovery
sub-states. Exactly one instance exists per catalog; the persistence layer
owns loading and saving it.

Transitions in this module are pure: each takes a GlobalState and returns
a new one, raising before anything is built if a check fails. The input
state is never mutated.

Roster capacities:
    admins      3
    curators   10
    moderators  5  (reserved, no operation uses it)
"""

import copy
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from errors import (
    AdminAlreadyExists,
    AdminNotFound,
    AlreadyInitialized,
    CuratorAlreadyExists,
    CuratorNotFound,
    InvalidPrincipal,
    NotConfigured,
    OnlySuperAdmin,
    RoleLimitExceeded,
)
from principal import Principal, optional_hex, optional_principal
from rbac import Permission, require_permission

if TYPE_CHECKING:
    from rate_limiter import AdditionWindow

logger = logging.getLogger(__name__)

MAX_ADMINS = 3
MAX_CURATORS = 10
MAX_MODERATORS = 5

STATE_VERSION = 1
DEFAULT_TRANSFER_TIMELOCK = 7 * 24 * 60 * 60  # 7 days
DEFAULT_RECOVERY_THRESHOLD = 2


class RoleRoster:
    """
    Bounded, insertion-ordered set of principals.

    Capacity is an explicit check, not an artifact of storage layout.
    Instances are treated as values: mutators return a new roster.
    """

    def __init__(self, name: str, capacity: int, members: Iterable[Principal] = ()):
        self.name = name
        self.capacity = capacity
        self._members: list[Principal] = []
        for member in members:
            if member in self._members:
                continue
            self._members.append(member)
        if len(self._members) > capacity:
            raise ValueError(f"{name} roster exceeds capacity of {capacity}")

    def __contains__(self, principal: object) -> bool:
        return principal in self._members

    def __iter__(self) -> Iterator[Principal]:
        return iter(list(self._members))

    def __len__(self) -> int:
        return len(self._members)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RoleRoster):
            return NotImplemented
        return (
            self.name == other.name
            and self.capacity == other.capacity
            and self._members == other._members
        )

    def __repr__(self) -> str:
        return f"RoleRoster({self.name!r}, {len(self)}/{self.capacity})"

    @property
    def is_full(self) -> bool:
        return len(self._members) >= self.capacity

    def with_member(self, principal: Principal) -> "RoleRoster":
        return RoleRoster(self.name, self.capacity, [*self._members, principal])

    def without_member(self, principal: Principal) -> "RoleRoster":
        return RoleRoster(self.name, self.capacity, [m for m in self._members if m != principal])

    def to_list(self) -> list[str]:
        return [m.to_hex() for m in self._members]


def _roster(name: str, capacity: int):
    return field(default_factory=lambda: RoleRoster(name, capacity))


@dataclass
class GlobalState:
    """The catalog's singleton governance aggregate."""

    super_admin: Principal
    admins: RoleRoster = _roster("admins", MAX_ADMINS)
    curators: RoleRoster = _roster("curators", MAX_CURATORS)
    moderators: RoleRoster = _roster("moderators", MAX_MODERATORS)

    catalog_count: int = 0
    version: int = STATE_VERSION
    paused: bool = False

    # Rate limiter
    last_addition_timestamp: int = 0
    last_addition_day: int = 0
    additions_today: int = 0

    # Timelocked super admin transfer
    pending_super_admin: Principal | None = None
    transfer_initiated_at: int = 0
    transfer_timelock: int = DEFAULT_TRANSFER_TIMELOCK

    # Emergency recovery
    emergency_candidate: Principal | None = None
    emergency_votes: RoleRoster = _roster("emergency_votes", MAX_ADMINS)
    emergency_recovery_initiated_at: int = 0
    emergency_recovery_threshold: int = DEFAULT_RECOVERY_THRESHOLD

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_super_admin(self, principal: Principal) -> bool:
        return self.super_admin == principal

    def is_admin(self, principal: Principal) -> bool:
        return principal in self.admins

    def is_curator(self, principal: Principal) -> bool:
        return principal in self.curators

    @property
    def has_pending_transfer(self) -> bool:
        return self.pending_super_admin is not None

    @property
    def has_pending_recovery(self) -> bool:
        return self.emergency_candidate is not None

    def copy(self) -> "GlobalState":
        return copy.deepcopy(self)

    def evolve(self, **changes: Any) -> "GlobalState":
        """New state with the given fields replaced."""
        return replace(self.copy(), **changes)

    def with_addition_window(self, window: "AdditionWindow", **changes: Any) -> "GlobalState":
        """New state carrying the rate limiter fields of an accepted addition."""
        return self.evolve(
            last_addition_timestamp=window.last_addition_timestamp,
            last_addition_day=window.last_addition_day,
            additions_today=window.additions_today,
            **changes,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "super_admin": self.super_admin.to_hex(),
            "admins": self.admins.to_list(),
            "curators": self.curators.to_list(),
            "moderators": self.moderators.to_list(),
            "catalog_count": self.catalog_count,
            "version": self.version,
            "paused": self.paused,
            "last_addition_timestamp": self.last_addition_timestamp,
            "last_addition_day": self.last_addition_day,
            "additions_today": self.additions_today,
            "pending_super_admin": optional_hex(self.pending_super_admin),
            "transfer_initiated_at": self.transfer_initiated_at,
            "transfer_timelock": self.transfer_timelock,
            "emergency_candidate": optional_hex(self.emergency_candidate),
            "emergency_votes": self.emergency_votes.to_list(),
            "emergency_recovery_initiated_at": self.emergency_recovery_initiated_at,
            "emergency_recovery_threshold": self.emergency_recovery_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GlobalState":
        """Create from dictionary."""

        def roster(name: str, capacity: int) -> RoleRoster:
            return RoleRoster(name, capacity, [Principal.from_hex(h) for h in data.get(name, [])])

        return cls(
            super_admin=Principal.from_hex(data["super_admin"]),
            admins=roster("admins", MAX_ADMINS),
            curators=roster("curators", MAX_CURATORS),
            moderators=roster("moderators", MAX_MODERATORS),
            catalog_count=data.get("catalog_count", 0),
            version=data.get("version", STATE_VERSION),
            paused=data.get("paused", False),
            last_addition_timestamp=data.get("last_addition_timestamp", 0),
            last_addition_day=data.get("last_addition_day", 0),
            additions_today=data.get("additions_today", 0),
            pending_super_admin=optional_principal(data.get("pending_super_admin")),
            transfer_initiated_at=data.get("transfer_initiated_at", 0),
            transfer_timelock=data.get("transfer_timelock", DEFAULT_TRANSFER_TIMELOCK),
            emergency_candidate=optional_principal(data.get("emergency_candidate")),
            emergency_votes=roster("emergency_votes", MAX_ADMINS),
            emergency_recovery_initiated_at=data.get("emergency_recovery_initiated_at", 0),
            emergency_recovery_threshold=data.get(
                "emergency_recovery_threshold", DEFAULT_RECOVERY_THRESHOLD
            ),
        )


# =============================================================================
# Initialization
# =============================================================================


def initialize_state(
    existing: GlobalState | None,
    caller: Principal,
    configured_super_admin: Principal | None,
    transfer_timelock: int = DEFAULT_TRANSFER_TIMELOCK,
    recovery_threshold: int = DEFAULT_RECOVERY_THRESHOLD,
) -> GlobalState:
    """
    Create the GlobalState singleton.

    The first super admin is fixed at deploy time: only the configured
    principal may initialize, and only once.
    """
    if configured_super_admin is None or configured_super_admin.is_zero:
        raise NotConfigured("No super admin principal configured")
    if existing is not None:
        raise AlreadyInitialized()
    if caller != configured_super_admin:
        raise OnlySuperAdmin("Only the configured super admin can initialize the catalog")

    return GlobalState(
        super_admin=caller,
        transfer_timelock=transfer_timelock,
        emergency_recovery_threshold=recovery_threshold,
    )


# =============================================================================
# Role management
# =============================================================================


def _require_assignable(principal: Principal) -> None:
    if principal.is_zero:
        raise InvalidPrincipal("The zero principal cannot hold a role")


def add_admin(state: GlobalState, caller: Principal, new_admin: Principal) -> GlobalState:
    """Add an admin (super admin or admin)."""
    require_permission(state, caller, Permission.ADMIN_ADD)
    _require_assignable(new_admin)

    if state.admins.is_full:
        raise RoleLimitExceeded(
            f"Admin limit reached: cannot add more than {MAX_ADMINS} admins",
            role="admin",
            capacity=MAX_ADMINS,
        )
    if new_admin in state.admins:
        raise AdminAlreadyExists(principal=new_admin.to_hex())

    return state.evolve(admins=state.admins.with_member(new_admin))


def remove_admin(state: GlobalState, caller: Principal, admin: Principal) -> GlobalState:
    """
    Remove an admin (super admin only).

    The removed admin's emergency recovery vote is withdrawn with it.
    """
    require_permission(state, caller, Permission.ADMIN_REMOVE)

    if admin not in state.admins:
        raise AdminNotFound(principal=admin.to_hex())

    return state.evolve(
        admins=state.admins.without_member(admin),
        emergency_votes=state.emergency_votes.without_member(admin),
    )


def add_curator(state: GlobalState, caller: Principal, new_curator: Principal) -> GlobalState:
    """Add a curator (super admin or admin)."""
    require_permission(state, caller, Permission.CURATOR_ADD)
    _require_assignable(new_curator)

    if state.curators.is_full:
        raise RoleLimitExceeded(
            f"Curator limit reached: cannot add more than {MAX_CURATORS} curators",
            role="curator",
            capacity=MAX_CURATORS,
        )
    if new_curator in state.curators:
        raise CuratorAlreadyExists(principal=new_curator.to_hex())

    return state.evolve(curators=state.curators.with_member(new_curator))


def remove_curator(state: GlobalState, caller: Principal, curator: Principal) -> GlobalState:
    """Remove a curator (super admin or admin)."""
    require_permission(state, caller, Permission.CURATOR_REMOVE)

    if curator not in state.curators:
        raise CuratorNotFound(principal=curator.to_hex())

    return state.evolve(curators=state.curators.without_member(curator))


# =============================================================================
# Pause
# =============================================================================


def set_paused(state: GlobalState, caller: Principal, paused: bool) -> GlobalState:
    """Pause or resume catalog writes (super admin only)."""
    require_permission(state, caller, Permission.PROGRAM_PAUSE)
    return state.evolve(paused=paused)
