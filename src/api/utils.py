"""
Shared utilities for the OpenShelf API.

This module contains common utilities, decorators, and helpers
used across all API blueprints.

The calling boundary authenticates principals before a request reaches
this API; the authenticated principal arrives in the X-Principal header
as 64 hex characters.
"""

from functools import wraps
from typing import Any

from flask import g, jsonify, request

from errors import CatalogError, InvalidPrincipal, RateLimitExceeded
from principal import Principal

PRINCIPAL_HEADER = "X-Principal"


# ============================================================
# Validation Utilities
# ============================================================

def validate_json_schema(
    data: dict[str, Any],
    required_fields: dict[str, type],
    optional_fields: dict[str, type] | None = None,
) -> tuple:
    """
    Validate JSON payload against a simple schema.

    Args:
        data: The JSON data to validate
        required_fields: Dict mapping field names to expected types
        optional_fields: Dict mapping optional field names to expected types

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    for field_name, expected_type in required_fields.items():
        if field_name not in data:
            return False, f"Missing required field: {field_name}"
        if not isinstance(data[field_name], expected_type):
            return False, f"Field '{field_name}' must be of type {expected_type.__name__}"

    if optional_fields:
        for field_name, expected_type in optional_fields.items():
            if field_name in data and data[field_name] is not None:
                if not isinstance(data[field_name], expected_type):
                    return False, f"Field '{field_name}' must be of type {expected_type.__name__}"

    unknown = set(data) - set(required_fields) - set(optional_fields or {})
    if unknown:
        return False, f"Unknown field: {sorted(unknown)[0]}"

    return True, None


def parse_principal(text: str) -> Principal:
    """Parse a principal given in hex, as in a URL segment or JSON field."""
    return Principal.from_hex(text.strip().lower())


# ============================================================
# Responses
# ============================================================

def error_response(error: CatalogError):
    """JSON body and status for a catalog error."""
    response = jsonify(error.to_dict())
    response.status_code = error.http_status
    if isinstance(error, RateLimitExceeded) and error.retry_after > 0:
        response.headers["Retry-After"] = str(error.retry_after)
    return response


# ============================================================
# Caller Decorator
# ============================================================

def require_principal(f):
    """Decorator resolving the authenticated caller into ``g.caller``."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        provided = request.headers.get(PRINCIPAL_HEADER)

        if not provided:
            return jsonify({
                "error": "Caller principal required",
                "hint": f"Provide the caller principal in the {PRINCIPAL_HEADER} header",
            }), 401

        try:
            g.caller = parse_principal(provided)
        except InvalidPrincipal as e:
            return error_response(e)

        return f(*args, **kwargs)
    return decorated_function
