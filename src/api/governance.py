"""
Governance blueprint.

Role management, pause control, and the two super admin handover
protocols (timelocked transfer and emergency recovery).
"""

from flask import Blueprint, g, jsonify, request

from .state import get_service
from .utils import parse_principal, require_principal, validate_json_schema

# Create the blueprint
governance_bp = Blueprint("governance", __name__, url_prefix="/governance")


def _roster_response(state):
    return jsonify({
        "super_admin": state.super_admin.to_hex(),
        "admins": state.admins.to_list(),
        "curators": state.curators.to_list(),
    })


def _candidate_from_body():
    """Parse {"candidate": "<hex>"}; returns (principal, error_response)."""
    data = request.get_json(silent=True)
    if not data:
        return None, (jsonify({"error": "No data provided"}), 400)

    is_valid, error_msg = validate_json_schema(data, required_fields={"candidate": str})
    if not is_valid:
        return None, (jsonify({"error": error_msg}), 400)

    return parse_principal(data["candidate"]), None


# ============================================================
# Roles
# ============================================================

@governance_bp.route("/admins/<principal>", methods=["POST"])
@require_principal
def add_admin(principal: str):
    state = get_service().add_admin(g.caller, parse_principal(principal))
    return _roster_response(state), 201


@governance_bp.route("/admins/<principal>", methods=["DELETE"])
@require_principal
def remove_admin(principal: str):
    state = get_service().remove_admin(g.caller, parse_principal(principal))
    return _roster_response(state)


@governance_bp.route("/curators/<principal>", methods=["POST"])
@require_principal
def add_curator(principal: str):
    state = get_service().add_curator(g.caller, parse_principal(principal))
    return _roster_response(state), 201


@governance_bp.route("/curators/<principal>", methods=["DELETE"])
@require_principal
def remove_curator(principal: str):
    state = get_service().remove_curator(g.caller, parse_principal(principal))
    return _roster_response(state)


# ============================================================
# Pause
# ============================================================

@governance_bp.route("/pause", methods=["POST"])
@require_principal
def pause():
    """Pause catalog writes (super admin only)."""
    state = get_service().pause(g.caller)
    return jsonify({"paused": state.paused})


@governance_bp.route("/unpause", methods=["POST"])
@require_principal
def unpause():
    state = get_service().unpause(g.caller)
    return jsonify({"paused": state.paused})


# ============================================================
# Timelocked transfer
# ============================================================

@governance_bp.route("/transfer", methods=["POST"])
@require_principal
def initiate_transfer():
    """
    Start a super admin transfer.

    Request body: {"candidate": "<64 hex chars>"}
    """
    candidate, error = _candidate_from_body()
    if error:
        return error
    service = get_service()
    service.initiate_transfer(g.caller, candidate)
    return jsonify(service.transfer_status()), 201


@governance_bp.route("/transfer/confirm", methods=["POST"])
@require_principal
def confirm_transfer():
    state = get_service().confirm_transfer(g.caller)
    return jsonify({"super_admin": state.super_admin.to_hex()})


@governance_bp.route("/transfer/cancel", methods=["POST"])
@require_principal
def cancel_transfer():
    service = get_service()
    service.cancel_transfer(g.caller)
    return jsonify(service.transfer_status())


@governance_bp.route("/transfer", methods=["GET"])
def transfer_status():
    return jsonify(get_service().transfer_status())


# ============================================================
# Emergency recovery
# ============================================================

@governance_bp.route("/recovery", methods=["POST"])
@require_principal
def initiate_recovery():
    """
    Open an emergency recovery (roster admins only). The initiator's vote
    counts towards the threshold.

    Request body: {"candidate": "<64 hex chars>"}
    """
    candidate, error = _candidate_from_body()
    if error:
        return error
    service = get_service()
    service.initiate_recovery(g.caller, candidate)
    return jsonify(service.recovery_status()), 201


@governance_bp.route("/recovery/vote", methods=["POST"])
@require_principal
def vote_recovery():
    service = get_service()
    state, executed = service.vote_recovery(g.caller)
    return jsonify({
        "executed": executed,
        "super_admin": state.super_admin.to_hex(),
        "recovery": service.recovery_status(),
    })


@governance_bp.route("/recovery/cancel", methods=["POST"])
@require_principal
def cancel_recovery():
    service = get_service()
    service.cancel_recovery(g.caller)
    return jsonify(service.recovery_status())


@governance_bp.route("/recovery", methods=["GET"])
def recovery_status():
    return jsonify(get_service().recovery_status())
