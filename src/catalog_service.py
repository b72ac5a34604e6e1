"""
OpenShelf - Catalog Service

Serialized, all-or-nothing execution of every catalog operation.

One CatalogService owns one storage backend, one clock and one lock. Each
public method:

    1. takes the lock for its whole duration
    2. loads GlobalState and the record it touches
    3. reads the clock at most once (never for read-only queries)
    4. runs the pure transition, which raises or returns new values
    5. commits every write in a single storage.commit() call

Any exception before step 5 leaves storage exactly as it was.

Usage:
    service = CatalogService(storage=MemoryStorage(), clock=ManualClock(1_700_000_000))
    service.initialize(super_admin)
    service.add_curator(super_admin, curator)
    entry = service.add_catalog_entry(curator, generate_catalog_id(), "Title", ...)
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any

import admin_transfer
import catalog
import emergency_recovery
import governance_state
from catalog import AccessCredential, CatalogEntry
from clock import Clock, SystemClock
from config import CatalogConfig
from errors import CatalogError, NotInitialized
from governance_state import GlobalState
from monitoring.logging import LoggingContext
from monitoring.metrics import MetricsCollector
from monitoring.metrics import metrics as default_metrics
from principal import Principal
from rate_limiter import AdditionRateLimiter, AdditionWindow
from storage import (
    StorageBackend,
    StorageError,
    credential_address,
    entry_address,
    get_storage_backend,
    state_address,
)
from validation import coerce_identifier

logger = logging.getLogger(__name__)


class CatalogService:
    """Transaction layer between callers and the pure catalog transitions."""

    def __init__(
        self,
        storage: StorageBackend | None = None,
        clock: Clock | None = None,
        config: CatalogConfig | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.config = (config or CatalogConfig.from_env()).validate()
        self.storage = storage or get_storage_backend(
            self.config.storage_backend, self.config.data_file
        )
        self.clock = clock or SystemClock()
        self.metrics = metrics or default_metrics
        self.limiter = AdditionRateLimiter(self.config.rate_limit)
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Transaction plumbing
    # -------------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str):
        """Hold the lock, time the operation and count its outcome."""
        start = time.perf_counter()
        outcome = "ok"
        try:
            with self._lock, LoggingContext(operation=name):
                yield
        except CatalogError as e:
            outcome = e.code
            logger.info(
                f"Rejected {name}: {e.code}",
                extra={"operation": name, "error_code": e.code},
            )
            raise
        except StorageError as e:
            outcome = "storage_error"
            logger.error(f"Storage failure during {name}: {e}", extra={"operation": name})
            raise
        except Exception:
            outcome = "error"
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            labels = {"operation": name}
            self.metrics.timing("operation_duration_ms", elapsed_ms, labels)
            self.metrics.increment("operations_total", labels={**labels, "outcome": outcome})

    def _load_state(self) -> GlobalState | None:
        record = self.storage.load_record(state_address())
        return GlobalState.from_dict(record) if record is not None else None

    def _require_state(self) -> GlobalState:
        state = self._load_state()
        if state is None:
            raise NotInitialized()
        return state

    def _load_entry(self, entry_id: bytes) -> CatalogEntry | None:
        record = self.storage.load_record(entry_address(entry_id))
        return CatalogEntry.from_dict(record) if record is not None else None

    def _load_credential(self, owner: Principal) -> AccessCredential | None:
        record = self.storage.load_record(credential_address(owner.value))
        return AccessCredential.from_dict(record) if record is not None else None

    def _commit(self, writes: dict[str, dict[str, Any] | None], state: GlobalState | None = None) -> None:
        if state is not None:
            writes = {state_address(): state.to_dict(), **writes}
        self.storage.commit(writes)
        if state is not None:
            self._publish_gauges(state)

    def _commit_state(self, state: GlobalState) -> GlobalState:
        self._commit({}, state)
        return state

    def _publish_gauges(self, state: GlobalState) -> None:
        self.metrics.set_gauge("catalog_entries", state.catalog_count)
        self.metrics.set_gauge("admins", len(state.admins))
        self.metrics.set_gauge("curators", len(state.curators))
        self.metrics.set_gauge("paused", 1 if state.paused else 0)

    def _security_event(self, message: str, level: int = logging.INFO, **extra: Any) -> None:
        logger.log(level, f"SECURITY_EVENT: {message}", extra=extra)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def initialize(self, caller: Principal) -> GlobalState:
        """Create the GlobalState singleton (configured super admin, once)."""
        with self._operation("initialize"):
            state = governance_state.initialize_state(
                self._load_state(),
                caller,
                self.config.super_admin,
                transfer_timelock=self.config.transfer_timelock,
                recovery_threshold=self.config.recovery_threshold,
            )
            self._commit_state(state)
            self._security_event(
                "catalog initialized",
                operation="initialize",
                super_admin=caller.to_hex(),
            )
            return state

    def is_initialized(self) -> bool:
        with self._lock:
            return self._load_state() is not None

    def get_state(self) -> GlobalState:
        with self._operation("get_state"):
            return self._require_state()

    # -------------------------------------------------------------------------
    # Roles and pause
    # -------------------------------------------------------------------------

    def add_admin(self, caller: Principal, new_admin: Principal) -> GlobalState:
        with self._operation("add_admin"):
            state = governance_state.add_admin(self._require_state(), caller, new_admin)
            self._commit_state(state)
            self._security_event(
                "admin added",
                operation="add_admin",
                caller=caller.to_hex(),
                principal=new_admin.to_hex(),
            )
            return state

    def remove_admin(self, caller: Principal, admin: Principal) -> GlobalState:
        with self._operation("remove_admin"):
            state = governance_state.remove_admin(self._require_state(), caller, admin)
            self._commit_state(state)
            self._security_event(
                "admin removed",
                operation="remove_admin",
                caller=caller.to_hex(),
                principal=admin.to_hex(),
            )
            return state

    def add_curator(self, caller: Principal, new_curator: Principal) -> GlobalState:
        with self._operation("add_curator"):
            state = governance_state.add_curator(self._require_state(), caller, new_curator)
            self._commit_state(state)
            self._security_event(
                "curator added",
                operation="add_curator",
                caller=caller.to_hex(),
                principal=new_curator.to_hex(),
            )
            return state

    def remove_curator(self, caller: Principal, curator: Principal) -> GlobalState:
        with self._operation("remove_curator"):
            state = governance_state.remove_curator(self._require_state(), caller, curator)
            self._commit_state(state)
            self._security_event(
                "curator removed",
                operation="remove_curator",
                caller=caller.to_hex(),
                principal=curator.to_hex(),
            )
            return state

    def pause(self, caller: Principal) -> GlobalState:
        with self._operation("pause"):
            state = governance_state.set_paused(self._require_state(), caller, True)
            self._commit_state(state)
            self._security_event(
                "catalog paused", logging.WARNING, operation="pause", caller=caller.to_hex()
            )
            return state

    def unpause(self, caller: Principal) -> GlobalState:
        with self._operation("unpause"):
            state = governance_state.set_paused(self._require_state(), caller, False)
            self._commit_state(state)
            self._security_event("catalog unpaused", operation="unpause", caller=caller.to_hex())
            return state

    # -------------------------------------------------------------------------
    # Super admin transfer
    # -------------------------------------------------------------------------

    def initiate_transfer(self, caller: Principal, candidate: Principal) -> GlobalState:
        with self._operation("initiate_transfer"):
            state = self._require_state()
            now = self.clock.now()
            state = admin_transfer.initiate_transfer(state, caller, candidate, now)
            self._commit_state(state)
            self._security_event(
                "super admin transfer initiated",
                logging.WARNING,
                operation="initiate_transfer",
                caller=caller.to_hex(),
                candidate=candidate.to_hex(),
                confirmable_at=now + state.transfer_timelock,
            )
            return state

    def confirm_transfer(self, caller: Principal) -> GlobalState:
        with self._operation("confirm_transfer"):
            state = self._require_state()
            now = self.clock.now()
            state = admin_transfer.confirm_transfer(state, caller, now)
            self._commit_state(state)
            self._security_event(
                "super admin transfer completed",
                logging.WARNING,
                operation="confirm_transfer",
                previous_super_admin=caller.to_hex(),
                super_admin=state.super_admin.to_hex(),
            )
            return state

    def cancel_transfer(self, caller: Principal) -> GlobalState:
        with self._operation("cancel_transfer"):
            state = admin_transfer.cancel_transfer(self._require_state(), caller)
            self._commit_state(state)
            self._security_event(
                "super admin transfer cancelled",
                operation="cancel_transfer",
                caller=caller.to_hex(),
            )
            return state

    def transfer_status(self) -> dict[str, Any]:
        with self._operation("transfer_status"):
            return admin_transfer.transfer_status(self._require_state())

    # -------------------------------------------------------------------------
    # Emergency recovery
    # -------------------------------------------------------------------------

    def initiate_recovery(self, caller: Principal, candidate: Principal) -> GlobalState:
        with self._operation("initiate_recovery"):
            state = self._require_state()
            now = self.clock.now()
            state = emergency_recovery.initiate_recovery(state, caller, candidate, now)
            self._commit_state(state)
            self._security_event(
                "emergency recovery initiated",
                logging.WARNING,
                operation="initiate_recovery",
                caller=caller.to_hex(),
                candidate=candidate.to_hex(),
                threshold=state.emergency_recovery_threshold,
            )
            return state

    def vote_recovery(self, caller: Principal) -> tuple[GlobalState, bool]:
        """Returns (new_state, executed)."""
        with self._operation("vote_recovery"):
            previous = self._require_state()
            state, executed = emergency_recovery.vote_recovery(previous, caller)
            self._commit_state(state)
            if executed:
                self._security_event(
                    "emergency recovery executed",
                    logging.WARNING,
                    operation="vote_recovery",
                    caller=caller.to_hex(),
                    previous_super_admin=previous.super_admin.to_hex(),
                    super_admin=state.super_admin.to_hex(),
                )
            else:
                self._security_event(
                    "emergency recovery vote recorded",
                    operation="vote_recovery",
                    caller=caller.to_hex(),
                    votes=len(state.emergency_votes),
                    threshold=state.emergency_recovery_threshold,
                )
            return state, executed

    def cancel_recovery(self, caller: Principal) -> GlobalState:
        with self._operation("cancel_recovery"):
            state = emergency_recovery.cancel_recovery(self._require_state(), caller)
            self._commit_state(state)
            self._security_event(
                "emergency recovery cancelled",
                operation="cancel_recovery",
                caller=caller.to_hex(),
            )
            return state

    def recovery_status(self) -> dict[str, Any]:
        with self._operation("recovery_status"):
            return emergency_recovery.recovery_status(self._require_state())

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    def mint_credential(self, owner: Principal) -> AccessCredential:
        """Issue the caller's own access credential."""
        with self._operation("mint_credential"):
            state = self._require_state()
            existing = self._load_credential(owner)
            now = self.clock.now()
            credential = catalog.mint_credential(state, existing, owner, now)
            self._commit({credential_address(owner.value): credential.to_dict()})
            logger.info("Access credential issued", extra={"owner": owner.to_hex()})
            return credential

    def verify_credential(self, owner: Principal) -> AccessCredential:
        with self._operation("verify_credential"):
            self._require_state()
            return catalog.verify_credential(self._load_credential(owner), owner)

    # -------------------------------------------------------------------------
    # Catalog entries
    # -------------------------------------------------------------------------

    def add_catalog_entry(
        self,
        caller: Principal,
        entry_id: Any,
        title: str,
        author: str,
        content_pointer: str,
        category: str,
        publication_year: int | None = None,
    ) -> CatalogEntry:
        entry, _ = self.add_catalog_entry_with_window(
            caller,
            entry_id,
            title,
            author,
            content_pointer,
            category,
            publication_year=publication_year,
        )
        return entry

    def add_catalog_entry_with_window(
        self,
        caller: Principal,
        entry_id: Any,
        title: str,
        author: str,
        content_pointer: str,
        category: str,
        publication_year: int | None = None,
    ) -> tuple[CatalogEntry, AdditionWindow]:
        """Add an entry and also return the rate limiter window it consumed."""
        with self._operation("add_catalog_entry"):
            raw_id = coerce_identifier(entry_id)
            state = self._require_state()
            existing = self._load_entry(raw_id)
            now = self.clock.now()
            state, entry, window = catalog.add_catalog_entry(
                state,
                existing,
                caller,
                raw_id,
                title,
                author,
                content_pointer,
                category,
                now,
                self.limiter,
                publication_year=publication_year,
            )
            self._commit({entry_address(raw_id): entry.to_dict()}, state)
            logger.info(
                f"Catalog entry added: {entry.id_text}",
                extra={
                    "operation": "add_catalog_entry",
                    "caller": caller.to_hex(),
                    "remaining_today": window.remaining_today,
                    **catalog.entry_summary(entry),
                },
            )
            return entry, window

    def update_catalog_entry(self, caller: Principal, entry_id: Any, **updates: Any) -> CatalogEntry:
        """
        Partially update an entry.

        Keyword arguments: title, author, content_pointer, category,
        publication_year. Unknown keys raise TypeError.
        """
        with self._operation("update_catalog_entry"):
            raw_id = coerce_identifier(entry_id)
            state = self._require_state()
            existing = self._load_entry(raw_id)
            now = self.clock.now()
            entry = catalog.update_catalog_entry(state, existing, caller, raw_id, now, **updates)
            if entry is not existing:
                self._commit({entry_address(raw_id): entry.to_dict()})
                logger.info(
                    f"Catalog entry updated: {entry.id_text}",
                    extra={
                        "operation": "update_catalog_entry",
                        "caller": caller.to_hex(),
                        "fields": sorted(updates),
                    },
                )
            return entry

    def remove_catalog_entry(self, caller: Principal, entry_id: Any) -> GlobalState:
        with self._operation("remove_catalog_entry"):
            raw_id = coerce_identifier(entry_id)
            state = self._require_state()
            existing = self._load_entry(raw_id)
            state = catalog.remove_catalog_entry(state, existing, caller, raw_id)
            self._commit({entry_address(raw_id): None}, state)
            logger.info(
                f"Catalog entry removed: {existing.id_text}",
                extra={"operation": "remove_catalog_entry", "caller": caller.to_hex()},
            )
            return state

    def read_catalog_entry(self, entry_id: Any) -> CatalogEntry:
        with self._operation("read_catalog_entry"):
            raw_id = coerce_identifier(entry_id)
            self._require_state()
            existing = self._load_entry(raw_id)
            return catalog.read_catalog_entry(existing, raw_id)

    # -------------------------------------------------------------------------
    # Info
    # -------------------------------------------------------------------------

    def get_info(self) -> dict[str, Any]:
        """Deployment summary for the CLI and health endpoint."""
        with self._lock:
            state = self._load_state()
            info: dict[str, Any] = {
                "initialized": state is not None,
                "storage": self.storage.get_info(),
                "config": self.config.to_dict(),
            }
            if state is not None:
                info.update(
                    {
                        "paused": state.paused,
                        "catalog_count": state.catalog_count,
                        "admins": len(state.admins),
                        "curators": len(state.curators),
                        "version": state.version,
                    }
                )
            return info
