"""
OpenShelf - Emergency Super Admin Recovery

Quorum handover of the super admin role, for when the super admin key is
lost or compromised:

    Idle --initiate(candidate)--> PendingRecovery(candidate, {initiator})
    PendingRecovery --vote()--> PendingRecovery(candidate, votes + caller)
    PendingRecovery --vote() reaching threshold--> Idle   (role moves)
    PendingRecovery --cancel()--> Idle

There is no time lock here: a lost key cannot wait out a delay. Instead
the handover needs independent corroboration from ``threshold`` distinct
roster admins, and executes atomically inside the vote that reaches it.

Only roster admins initiate and vote; only the current super admin (old
or newly installed) cancels. A recovery cannot be initiated while a
timelocked transfer is pending. The candidate checks run again on the
executing vote, which fails with InvalidSuperAdmin if the candidate has
since joined the admin roster.
"""

import logging
from typing import Any

from admin_transfer import validate_super_admin_candidate
from errors import (
    AlreadyVotedForRecovery,
    InsufficientAdminsForRecovery,
    NoPendingRecovery,
    RecoveryAlreadyPending,
    TransferAlreadyPending,
)
from governance_state import MAX_ADMINS, GlobalState, RoleRoster
from principal import Principal, optional_hex
from rbac import Permission, require_admin_member, require_permission

logger = logging.getLogger(__name__)


def _empty_votes() -> RoleRoster:
    return RoleRoster("emergency_votes", MAX_ADMINS)


def initiate_recovery(
    state: GlobalState, caller: Principal, candidate: Principal, now: int
) -> GlobalState:
    """Open a recovery towards ``candidate``; the initiator's vote counts."""
    require_admin_member(state, caller)

    if len(state.admins) < state.emergency_recovery_threshold:
        raise InsufficientAdminsForRecovery(
            admins=len(state.admins),
            threshold=state.emergency_recovery_threshold,
        )

    validate_super_admin_candidate(state, candidate)

    if state.has_pending_recovery:
        raise RecoveryAlreadyPending(candidate=state.emergency_candidate.to_hex())
    if state.has_pending_transfer:
        raise TransferAlreadyPending(
            "Cannot initiate an emergency recovery while a transfer is pending"
        )

    return state.evolve(
        emergency_candidate=candidate,
        emergency_votes=_empty_votes().with_member(caller),
        emergency_recovery_initiated_at=now,
    )


def vote_recovery(state: GlobalState, caller: Principal) -> tuple[GlobalState, bool]:
    """
    Add the caller's vote.

    Returns:
        (new_state, executed) where executed is True when this vote reached
        the threshold and the super admin role moved to the candidate.
    """
    require_admin_member(state, caller)

    if not state.has_pending_recovery:
        raise NoPendingRecovery()
    if caller in state.emergency_votes:
        raise AlreadyVotedForRecovery(voter=caller.to_hex())

    votes = state.emergency_votes.with_member(caller)

    if len(votes) >= state.emergency_recovery_threshold:
        validate_super_admin_candidate(state, state.emergency_candidate)
        return (
            state.evolve(
                super_admin=state.emergency_candidate,
                emergency_candidate=None,
                emergency_votes=_empty_votes(),
                emergency_recovery_initiated_at=0,
            ),
            True,
        )

    return state.evolve(emergency_votes=votes), False


def cancel_recovery(state: GlobalState, caller: Principal) -> GlobalState:
    """Abort a pending recovery (current super admin only)."""
    require_permission(state, caller, Permission.RECOVERY_CANCEL)

    if not state.has_pending_recovery:
        raise NoPendingRecovery()

    return state.evolve(
        emergency_candidate=None,
        emergency_votes=_empty_votes(),
        emergency_recovery_initiated_at=0,
    )


def recovery_status(state: GlobalState) -> dict[str, Any]:
    """Read-only view of the recovery sub-state."""
    pending = state.has_pending_recovery
    return {
        "pending": pending,
        "candidate": optional_hex(state.emergency_candidate),
        "votes": state.emergency_votes.to_list(),
        "threshold": state.emergency_recovery_threshold,
        "initiated_at": state.emergency_recovery_initiated_at if pending else None,
    }
