"""
Catalog blueprint.

This blueprint handles catalog state, entries and access credentials:
- State initialization and retrieval
- Catalog entry create / read / update / delete
- Access credential minting and verification
"""

from flask import Blueprint, g, jsonify, request

from validation import generate_catalog_id

from .state import get_service
from .utils import parse_principal, require_principal, validate_json_schema

# Create the blueprint
catalog_bp = Blueprint("catalog", __name__, url_prefix="/catalog")

ENTRY_FIELDS = {
    "title": str,
    "author": str,
    "content_pointer": str,
    "category": str,
}


# ============================================================
# State
# ============================================================

@catalog_bp.route("/state/initialize", methods=["POST"])
@require_principal
def initialize_state():
    """
    Initialize the catalog. Only the deploy-time super admin may call this,
    and only once.
    """
    state = get_service().initialize(g.caller)
    return jsonify({"initialized": True, "state": state.to_dict()}), 201


@catalog_bp.route("/state", methods=["GET"])
def get_state():
    """Get the full GlobalState."""
    return jsonify(get_service().get_state().to_dict())


# ============================================================
# Entries
# ============================================================

@catalog_bp.route("/entries", methods=["POST"])
@require_principal
def add_entry():
    """
    Add a catalog entry (admin or curator).

    Request body:
    {
        "id": "uuid v4 text" (optional, generated when absent),
        "title": "...",
        "author": "...",
        "content_pointer": "Qm... or baf...",
        "category": "...",
        "publication_year": 1999 (optional)
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    is_valid, error_msg = validate_json_schema(
        data,
        required_fields=ENTRY_FIELDS,
        optional_fields={"id": str, "publication_year": int},
    )
    if not is_valid:
        return jsonify({"error": error_msg}), 400

    entry, window = get_service().add_catalog_entry_with_window(
        g.caller,
        data.get("id") or generate_catalog_id(),
        data["title"],
        data["author"],
        data["content_pointer"],
        data["category"],
        publication_year=data.get("publication_year"),
    )
    return jsonify(entry.to_dict()), 201, window.to_headers()


@catalog_bp.route("/entries/<entry_id>", methods=["GET"])
def get_entry(entry_id: str):
    """Read a catalog entry (public)."""
    return jsonify(get_service().read_catalog_entry(entry_id).to_dict())


@catalog_bp.route("/entries/<entry_id>", methods=["PATCH"])
@require_principal
def update_entry(entry_id: str):
    """
    Partially update a catalog entry (admin, or the curator who created it).

    Request body: any subset of title, author, content_pointer, category,
    publication_year. A null publication_year clears it.
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({"error": "No data provided"}), 400

    is_valid, error_msg = validate_json_schema(
        data,
        required_fields={},
        optional_fields={**ENTRY_FIELDS, "publication_year": int},
    )
    if not is_valid:
        return jsonify({"error": error_msg}), 400

    updates = {k: v for k, v in data.items() if k in ENTRY_FIELDS and v is not None}
    if "publication_year" in data:
        updates["publication_year"] = data["publication_year"]

    entry = get_service().update_catalog_entry(g.caller, entry_id, **updates)
    return jsonify(entry.to_dict())


@catalog_bp.route("/entries/<entry_id>", methods=["DELETE"])
@require_principal
def remove_entry(entry_id: str):
    """Remove a catalog entry (admin only)."""
    state = get_service().remove_catalog_entry(g.caller, entry_id)
    return jsonify({"removed": entry_id, "catalog_count": state.catalog_count})


# ============================================================
# Credentials
# ============================================================

@catalog_bp.route("/credentials", methods=["POST"])
@require_principal
def mint_credential():
    """Mint the caller's access credential (once per principal)."""
    credential = get_service().mint_credential(g.caller)
    return jsonify(credential.to_dict()), 201


@catalog_bp.route("/credentials/<owner>", methods=["GET"])
def verify_credential(owner: str):
    """Look up a principal's access credential (public)."""
    credential = get_service().verify_credential(parse_principal(owner))
    return jsonify({"valid": True, **credential.to_dict()})

