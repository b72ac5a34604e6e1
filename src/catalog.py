"""
OpenShelf - Catalog Entries and Access Credentials

Records and the pure operations that create, change and remove them.

Each operation takes the current GlobalState plus the record found at the
target address (or None), and returns the new values to commit. Nothing
here touches storage or mutates its inputs; the service layer loads,
calls and commits.

Check order:
    add      paused -> fields -> role -> rate limit -> duplicate id
    update   paused -> id, present fields -> exists -> admin or creating curator
    remove   paused -> id -> role -> exists
    mint     paused -> zero principal -> duplicate
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any

from errors import (
    DuplicateCredential,
    DuplicateIdentifier,
    InsufficientPermissions,
    InvalidPrincipal,
    NotFound,
    ProgramPaused,
)
from governance_state import GlobalState
from principal import Principal, optional_hex, optional_principal
from rate_limiter import AdditionRateLimiter, AdditionWindow
from rbac import Permission, Role, has_permission, require_permission, resolve_role
from validation import (
    format_identifier,
    validate_author,
    validate_category,
    validate_content_pointer,
    validate_identifier,
    validate_publication_year,
    validate_title,
)

logger = logging.getLogger(__name__)

_UNSET = object()


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class CatalogEntry:
    """A validated metadata record pointing at externally stored content."""

    id: bytes
    title: str
    author: str
    content_pointer: str
    category: str
    created_at: int
    created_by: Principal
    publication_year: int | None = None
    updated_at: int | None = None
    updated_by: Principal | None = None

    @property
    def id_text(self) -> str:
        return format_identifier(self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id_text,
            "title": self.title,
            "author": self.author,
            "content_pointer": self.content_pointer,
            "category": self.category,
            "publication_year": self.publication_year,
            "created_at": self.created_at,
            "created_by": self.created_by.to_hex(),
            "updated_at": self.updated_at,
            "updated_by": optional_hex(self.updated_by),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogEntry":
        """Create from dictionary."""
        return cls(
            id=uuid.UUID(data["id"]).bytes,
            title=data["title"],
            author=data["author"],
            content_pointer=data["content_pointer"],
            category=data["category"],
            publication_year=data.get("publication_year"),
            created_at=data["created_at"],
            created_by=Principal.from_hex(data["created_by"]),
            updated_at=data.get("updated_at"),
            updated_by=optional_principal(data.get("updated_by")),
        )


@dataclass(frozen=True)
class AccessCredential:
    """One-per-principal read credential. Immutable, never revoked."""

    owner: Principal
    issued_at: int

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner.to_hex(), "issued_at": self.issued_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccessCredential":
        return cls(owner=Principal.from_hex(data["owner"]), issued_at=data["issued_at"])


def _require_not_paused(state: GlobalState, operation: str) -> None:
    if state.paused:
        raise ProgramPaused(operation=operation)


# =============================================================================
# Credentials
# =============================================================================


def mint_credential(
    state: GlobalState,
    existing: AccessCredential | None,
    owner: Principal,
    now: int,
) -> AccessCredential:
    """Issue the owner's access credential; at most once per principal."""
    _require_not_paused(state, "mint_credential")

    if owner.is_zero:
        raise InvalidPrincipal("The zero principal cannot hold a credential")
    if existing is not None:
        raise DuplicateCredential(owner=owner.to_hex())

    return AccessCredential(owner=owner, issued_at=now)


def verify_credential(existing: AccessCredential | None, owner: Principal) -> AccessCredential:
    if existing is None:
        raise NotFound("No access credential for this principal", owner=owner.to_hex())
    return existing


# =============================================================================
# Catalog entries
# =============================================================================


def add_catalog_entry(
    state: GlobalState,
    existing: CatalogEntry | None,
    caller: Principal,
    entry_id: bytes,
    title: str,
    author: str,
    content_pointer: str,
    category: str,
    now: int,
    limiter: AdditionRateLimiter,
    publication_year: int | None = None,
) -> tuple[GlobalState, CatalogEntry, AdditionWindow]:
    """
    Create a catalog entry.

    Returns:
        (new_state, entry, window): the state with the counter and rate
        limiter fields advanced, the new record, and the limiter window.
    """
    _require_not_paused(state, "add_catalog_entry")

    validate_identifier(entry_id)
    validate_title(title)
    validate_author(author)
    validate_content_pointer(content_pointer)
    validate_category(category)
    validate_publication_year(publication_year)

    require_permission(state, caller, Permission.CATALOG_ADD)

    window = limiter.check(state, now)

    if existing is not None:
        raise DuplicateIdentifier(id=format_identifier(entry_id))

    entry = CatalogEntry(
        id=entry_id,
        title=title,
        author=author,
        content_pointer=content_pointer,
        category=category,
        publication_year=publication_year,
        created_at=now,
        created_by=caller,
    )
    new_state = state.with_addition_window(window, catalog_count=state.catalog_count + 1)
    return new_state, entry, window


def update_catalog_entry(
    state: GlobalState,
    existing: CatalogEntry | None,
    caller: Principal,
    entry_id: bytes,
    now: int,
    title: str | None = None,
    author: str | None = None,
    content_pointer: str | None = None,
    category: str | None = None,
    publication_year: Any = _UNSET,
) -> CatalogEntry:
    """
    Partially update a catalog entry.

    Fields left as None are kept. ``publication_year`` may be passed as
    None to clear it. An update with no fields returns the entry as is.
    """
    _require_not_paused(state, "update_catalog_entry")

    validate_identifier(entry_id)
    changes: dict[str, Any] = {}
    if title is not None:
        changes["title"] = validate_title(title)
    if author is not None:
        changes["author"] = validate_author(author)
    if content_pointer is not None:
        changes["content_pointer"] = validate_content_pointer(content_pointer)
    if category is not None:
        changes["category"] = validate_category(category)
    if publication_year is not _UNSET:
        changes["publication_year"] = validate_publication_year(publication_year)

    if existing is None:
        raise NotFound("Catalog entry not found", id=format_identifier(entry_id))

    _require_update_permission(state, caller, existing)

    if not changes:
        return existing

    return replace(existing, updated_at=now, updated_by=caller, **changes)


def _require_update_permission(state: GlobalState, caller: Principal, entry: CatalogEntry) -> None:
    if has_permission(state, caller, Permission.CATALOG_UPDATE_ANY):
        return

    role = resolve_role(state, caller)
    if role is Role.CURATOR and entry.created_by == caller:
        return

    raise InsufficientPermissions(
        "Access denied: curators may only update entries they created",
        role=role.value,
    )


def remove_catalog_entry(
    state: GlobalState,
    existing: CatalogEntry | None,
    caller: Principal,
    entry_id: bytes,
) -> GlobalState:
    """Delete an entry (admin only); the counter never drops below zero."""
    _require_not_paused(state, "remove_catalog_entry")
    validate_identifier(entry_id)
    require_permission(state, caller, Permission.CATALOG_REMOVE)

    if existing is None:
        raise NotFound("Catalog entry not found", id=format_identifier(entry_id))

    return state.evolve(catalog_count=max(0, state.catalog_count - 1))


def read_catalog_entry(existing: CatalogEntry | None, entry_id: bytes) -> CatalogEntry:
    validate_identifier(entry_id)
    if existing is None:
        raise NotFound("Catalog entry not found", id=format_identifier(entry_id))
    return existing


def entry_summary(entry: CatalogEntry) -> dict[str, Any]:
    """Short form used in log extras."""
    return {"id": entry.id_text, "title": entry.title, "category": entry.category}
