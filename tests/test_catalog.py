"""
Tests for catalog entries and access credentials.

Tests:
- Entry creation checks and counter bookkeeping
- Partial updates and curator ownership
- Removal with a saturating counter
- Pause behaviour across catalog operations
- Credential minting and verification
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from catalog import (
    AccessCredential,
    CatalogEntry,
    add_catalog_entry,
    entry_summary,
    mint_credential,
    read_catalog_entry,
    remove_catalog_entry,
    update_catalog_entry,
    verify_credential,
)
from conftest import CID_V0, CID_V1, START_TIME
from errors import (
    DuplicateCredential,
    DuplicateIdentifier,
    FieldEmpty,
    InsufficientPermissions,
    InvalidContentPointer,
    InvalidIdentifier,
    InvalidPrincipal,
    NotFound,
    ProgramPaused,
    RateLimitExceeded,
)
from governance_state import add_curator, set_paused
from principal import Principal
from rate_limiter import AdditionRateLimiter
from validation import generate_catalog_id


@pytest.fixture
def limiter():
    return AdditionRateLimiter()


def add(state, caller, limiter, entry_id=None, existing=None, now=START_TIME, **fields):
    values = {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "content_pointer": CID_V0,
        "category": "fiction",
    }
    values.update(fields)
    return add_catalog_entry(
        state,
        existing,
        caller,
        entry_id or generate_catalog_id(),
        now=now,
        limiter=limiter,
        **values,
    )


class TestAddCatalogEntry:
    """Tests for add_catalog_entry."""

    def test_curator_adds_entry(self, governed_state, curator, limiter):
        entry_id = generate_catalog_id()
        state, entry, window = add(governed_state, curator, limiter, entry_id, publication_year=1969)

        assert state.catalog_count == 1
        assert state.additions_today == 1
        assert state.last_addition_timestamp == START_TIME
        assert entry.id == entry_id
        assert entry.created_by == curator
        assert entry.created_at == START_TIME
        assert entry.publication_year == 1969
        assert entry.updated_at is None
        assert window.remaining_today == 49
        assert governed_state.catalog_count == 0

    def test_admin_and_super_admin_can_add(self, governed_state, super_admin, admin_a, limiter):
        state, _, _ = add(governed_state, admin_a, limiter)
        state, _, _ = add(state, super_admin, limiter, now=START_TIME + 60)
        assert state.catalog_count == 2

    def test_public_cannot_add(self, governed_state, outsider, limiter):
        with pytest.raises(InsufficientPermissions):
            add(governed_state, outsider, limiter)

    def test_invalid_pointer(self, governed_state, curator, limiter):
        with pytest.raises(InvalidContentPointer):
            add(governed_state, curator, limiter, content_pointer="invalid_hash")

    def test_validation_before_permission(self, governed_state, outsider, limiter):
        with pytest.raises(FieldEmpty):
            add(governed_state, outsider, limiter, title="")

    def test_invalid_identifier(self, governed_state, curator, limiter):
        with pytest.raises(InvalidIdentifier):
            add(governed_state, curator, limiter, entry_id=bytes(16))

    def test_duplicate_identifier(self, governed_state, curator, limiter):
        entry_id = generate_catalog_id()
        state, entry, _ = add(governed_state, curator, limiter, entry_id)
        with pytest.raises(DuplicateIdentifier):
            add(state, curator, limiter, entry_id, existing=entry, now=START_TIME + 60)

    def test_rate_limit_before_duplicate(self, governed_state, curator, limiter):
        entry_id = generate_catalog_id()
        state, entry, _ = add(governed_state, curator, limiter, entry_id)
        with pytest.raises(RateLimitExceeded):
            add(state, curator, limiter, entry_id, existing=entry, now=START_TIME + 1)

    def test_cooldown_is_global(self, governed_state, curator, admin_a, limiter):
        """Test that the cooldown applies across callers."""
        state, _, _ = add(governed_state, curator, limiter)
        with pytest.raises(RateLimitExceeded):
            add(state, admin_a, limiter, now=START_TIME + 30)

    def test_cidv1_pointer(self, governed_state, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter, content_pointer=CID_V1)
        assert entry.content_pointer == CID_V1


class TestUpdateCatalogEntry:
    """Tests for update_catalog_entry."""

    @pytest.fixture
    def entry(self, governed_state, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter)
        return entry

    def test_partial_update(self, governed_state, curator, entry):
        updated = update_catalog_entry(
            governed_state, entry, curator, entry.id, START_TIME + 10, title="New Title"
        )
        assert updated.title == "New Title"
        assert updated.author == entry.author
        assert updated.updated_at == START_TIME + 10
        assert updated.updated_by == curator
        assert entry.title == "The Left Hand of Darkness"

    def test_no_fields_returns_entry(self, governed_state, curator, entry):
        same = update_catalog_entry(governed_state, entry, curator, entry.id, START_TIME + 10)
        assert same == entry

    def test_admin_updates_any_entry(self, governed_state, admin_a, entry):
        updated = update_catalog_entry(
            governed_state, entry, admin_a, entry.id, START_TIME, category="classics"
        )
        assert updated.category == "classics"
        assert updated.updated_by == admin_a

    def test_other_curator_cannot_update(self, governed_state, super_admin, other_curator, entry):
        state = add_curator(governed_state, super_admin, other_curator)
        with pytest.raises(InsufficientPermissions):
            update_catalog_entry(state, entry, other_curator, entry.id, START_TIME, title="X")

    def test_public_cannot_update(self, governed_state, outsider, entry):
        with pytest.raises(InsufficientPermissions):
            update_catalog_entry(governed_state, entry, outsider, entry.id, START_TIME, title="X")

    def test_missing_entry(self, governed_state, admin_a):
        with pytest.raises(NotFound):
            update_catalog_entry(
                governed_state, None, admin_a, generate_catalog_id(), START_TIME, title="X"
            )

    def test_invalid_field(self, governed_state, curator, entry):
        with pytest.raises(InvalidContentPointer):
            update_catalog_entry(
                governed_state, entry, curator, entry.id, START_TIME, content_pointer="nope"
            )

    def test_clear_publication_year(self, governed_state, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter, publication_year=2001)
        updated = update_catalog_entry(
            governed_state, entry, curator, entry.id, START_TIME, publication_year=None
        )
        assert updated.publication_year is None

    def test_updates_ignore_rate_limit(self, governed_state, curator, entry):
        state = governed_state.evolve(last_addition_timestamp=START_TIME, additions_today=50)
        updated = update_catalog_entry(state, entry, curator, entry.id, START_TIME, title="T")
        assert updated.title == "T"


class TestRemoveCatalogEntry:
    """Tests for remove_catalog_entry."""

    def test_admin_removes(self, governed_state, admin_a, curator, limiter):
        state, entry, _ = add(governed_state, curator, limiter)
        state = remove_catalog_entry(state, entry, admin_a, entry.id)
        assert state.catalog_count == 0

    def test_curator_cannot_remove_own_entry(self, governed_state, curator, limiter):
        state, entry, _ = add(governed_state, curator, limiter)
        with pytest.raises(InsufficientPermissions):
            remove_catalog_entry(state, entry, curator, entry.id)

    def test_missing_entry(self, governed_state, admin_a):
        with pytest.raises(NotFound):
            remove_catalog_entry(governed_state, None, admin_a, generate_catalog_id())

    def test_counter_saturates_at_zero(self, governed_state, admin_a, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter)
        state = remove_catalog_entry(governed_state, entry, admin_a, entry.id)
        assert governed_state.catalog_count == 0
        assert state.catalog_count == 0

    def test_removal_leaves_rate_limiter(self, governed_state, admin_a, curator, limiter):
        state, entry, _ = add(governed_state, curator, limiter)
        state = remove_catalog_entry(state, entry, admin_a, entry.id)
        assert state.additions_today == 1


class TestPause:
    """Tests for pause behaviour across catalog operations."""

    @pytest.fixture
    def paused(self, governed_state, super_admin):
        return set_paused(governed_state, super_admin, True)

    def test_writes_fail_while_paused(self, governed_state, paused, curator, admin_a, limiter):
        _, entry, _ = add(governed_state, curator, limiter)

        with pytest.raises(ProgramPaused):
            add(paused, curator, limiter)
        with pytest.raises(ProgramPaused):
            update_catalog_entry(paused, entry, curator, entry.id, START_TIME, title="X")
        with pytest.raises(ProgramPaused):
            remove_catalog_entry(paused, entry, admin_a, entry.id)
        with pytest.raises(ProgramPaused):
            mint_credential(paused, None, curator, START_TIME)

    def test_paused_checked_before_validation(self, paused, outsider, limiter):
        with pytest.raises(ProgramPaused):
            add(paused, outsider, limiter, title="")

    def test_reads_succeed_while_paused(self, governed_state, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter)
        assert read_catalog_entry(entry, entry.id) == entry
        credential = AccessCredential(owner=curator, issued_at=START_TIME)
        assert verify_credential(credential, curator) == credential


class TestReadCatalogEntry:
    """Tests for read_catalog_entry."""

    def test_missing(self):
        with pytest.raises(NotFound):
            read_catalog_entry(None, generate_catalog_id())

    def test_invalid_identifier_before_lookup(self):
        with pytest.raises(InvalidIdentifier):
            read_catalog_entry(None, bytes(16))


class TestCredentials:
    """Tests for mint_credential and verify_credential."""

    def test_mint(self, governed_state, outsider):
        credential = mint_credential(governed_state, None, outsider, START_TIME)
        assert credential.owner == outsider
        assert credential.issued_at == START_TIME

    def test_duplicate(self, governed_state, outsider):
        credential = mint_credential(governed_state, None, outsider, START_TIME)
        with pytest.raises(DuplicateCredential):
            mint_credential(governed_state, credential, outsider, START_TIME)

    def test_zero_principal(self, governed_state):
        with pytest.raises(InvalidPrincipal):
            mint_credential(governed_state, None, Principal.zero(), START_TIME)

    def test_verify_missing(self, outsider):
        with pytest.raises(NotFound):
            verify_credential(None, outsider)


class TestRecordSerialization:
    """Tests for record dictionaries."""

    def test_entry_round_trip(self, governed_state, curator, admin_a, limiter):
        _, entry, _ = add(governed_state, curator, limiter, publication_year=1969)
        entry = update_catalog_entry(
            governed_state, entry, admin_a, entry.id, START_TIME + 5, author="U. K. Le Guin"
        )
        assert CatalogEntry.from_dict(entry.to_dict()) == entry

    def test_entry_dict_uses_uuid_text(self, governed_state, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter)
        data = entry.to_dict()
        assert data["id"] == entry.id_text
        assert len(data["id"]) == 36
        assert data["created_by"] == curator.to_hex()

    def test_credential_round_trip(self, outsider):
        credential = AccessCredential(owner=outsider, issued_at=42)
        assert AccessCredential.from_dict(credential.to_dict()) == credential

    def test_entry_summary(self, governed_state, curator, limiter):
        _, entry, _ = add(governed_state, curator, limiter)
        assert entry_summary(entry) == {
            "id": entry.id_text,
            "title": entry.title,
            "category": "fiction",
        }
