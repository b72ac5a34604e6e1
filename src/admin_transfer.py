"""
OpenShelf - Timelocked Super Admin Transfer

Two-phase handover of the super admin role:

    Idle --initiate(candidate)--> PendingTransfer(candidate, initiated_at)
    PendingTransfer --confirm()--> Idle   (after the timelock, role moves)
    PendingTransfer --cancel()---> Idle   (any time, never timelocked)

The delay gives an observation window in which an erroneous or coerced
transfer can be spotted and cancelled before it takes effect. All three
steps are reserved to the current super admin.

A transfer cannot be initiated while an emergency recovery is pending.
The candidate checks run again at confirmation, so a candidate who joined
the admin roster meanwhile blocks the handover until removed or cancelled.
"""

import logging
from typing import Any

from errors import (
    InvalidSuperAdmin,
    NoPendingTransfer,
    RecoveryAlreadyPending,
    SelfTransferNotAllowed,
    TimelockNotExpired,
    TransferAlreadyPending,
)
from governance_state import GlobalState
from principal import Principal, optional_hex
from rbac import Permission, require_permission

logger = logging.getLogger(__name__)


def validate_super_admin_candidate(state: GlobalState, candidate: Principal) -> None:
    """
    Checks shared by both super admin handover protocols.

    Raises:
        InvalidSuperAdmin: Zero principal, or already a roster admin
        SelfTransferNotAllowed: Candidate is the current super admin
    """
    if candidate.is_zero:
        raise InvalidSuperAdmin("Invalid super admin address: cannot be the zero principal")

    if candidate == state.super_admin:
        raise SelfTransferNotAllowed()

    if candidate in state.admins:
        raise InvalidSuperAdmin(
            "Invalid super admin address: candidate is already an admin",
            candidate=candidate.to_hex(),
        )


def initiate_transfer(
    state: GlobalState, caller: Principal, candidate: Principal, now: int
) -> GlobalState:
    """Step 1: start the timelock towards ``candidate``."""
    require_permission(state, caller, Permission.TRANSFER_MANAGE)
    validate_super_admin_candidate(state, candidate)

    if state.has_pending_transfer:
        raise TransferAlreadyPending(pending=state.pending_super_admin.to_hex())
    if state.has_pending_recovery:
        raise RecoveryAlreadyPending(
            "Cannot initiate a transfer while an emergency recovery is pending"
        )

    return state.evolve(pending_super_admin=candidate, transfer_initiated_at=now)


def confirm_transfer(state: GlobalState, caller: Principal, now: int) -> GlobalState:
    """Step 2: hand the role to the pending candidate once the timelock expired."""
    require_permission(state, caller, Permission.TRANSFER_MANAGE)

    if not state.has_pending_transfer:
        raise NoPendingTransfer()

    elapsed = now - state.transfer_initiated_at
    if elapsed < state.transfer_timelock:
        raise TimelockNotExpired(
            remaining=state.transfer_timelock - elapsed,
            confirmable_at=state.transfer_initiated_at + state.transfer_timelock,
        )

    # Roster may have changed while the timelock ran
    validate_super_admin_candidate(state, state.pending_super_admin)

    return state.evolve(
        super_admin=state.pending_super_admin,
        pending_super_admin=None,
        transfer_initiated_at=0,
    )


def cancel_transfer(state: GlobalState, caller: Principal) -> GlobalState:
    """Abort a pending transfer."""
    require_permission(state, caller, Permission.TRANSFER_MANAGE)

    if not state.has_pending_transfer:
        raise NoPendingTransfer()

    return state.evolve(pending_super_admin=None, transfer_initiated_at=0)


def transfer_status(state: GlobalState) -> dict[str, Any]:
    """Read-only view of the transfer sub-state."""
    pending = state.has_pending_transfer
    return {
        "pending": pending,
        "candidate": optional_hex(state.pending_super_admin),
        "initiated_at": state.transfer_initiated_at if pending else None,
        "timelock": state.transfer_timelock,
        "confirmable_at": (
            state.transfer_initiated_at + state.transfer_timelock if pending else None
        ),
    }
