# File: store.py
"""Transactional document storage for the Coin Vault integration.

Documents are JSON dicts addressed by (collection, doc_id) and grouped the
same way they are persisted:

    {"documents": {"coinClaims": {"<user>": {...}}, "users": {...}, ...}}

Writes happen only through async_run_transaction(), which provides optimistic
concurrency control:

- Transaction.async_get() records the version of every document it reads and
  is the only point where the transaction body yields to the event loop.
- Transaction.set() stages writes; nothing is visible until commit.
- Commit validates every observed version and applies every staged write in
  one synchronous step, so no other coroutine can interleave with it.
- On a version mismatch the body is re-run on fresh reads, up to
  max_attempts times, before TransactionConflictError is raised.
- An exception raised by the body discards the attempt with nothing written.

InMemoryDocumentStore is the deterministic implementation used by tests.
HomeAssistantDocumentStore persists committed state through Home Assistant's
Storage helper so it survives restarts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import copy
from typing import TYPE_CHECKING, TypeVar

from homeassistant.helpers.storage import Store

from . import const

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from homeassistant.core import HomeAssistant

    from .type_defs import Document

_T = TypeVar("_T")


class TransactionConflictError(Exception):
    """Raised when a transaction could not commit within its retry budget.

    Attributes:
        attempts: Number of attempts made before giving up
        paths: Document paths whose versions changed under the last attempt
    """

    def __init__(self, attempts: int, paths: list[str]) -> None:
        """Initialize TransactionConflictError."""
        self.attempts = attempts
        self.paths = paths
        super().__init__(
            f"Transaction aborted after {attempts} attempt(s); "
            f"conflicting documents: {', '.join(paths) or 'unknown'}"
        )


def document_path(collection: str, doc_id: str) -> str:
    """Return the canonical path of a document ("collection/doc_id")."""
    return f"{collection}/{doc_id}"


def deep_merge(base: Document, patch: Document) -> Document:
    """Merge patch into a copy of base, recursing into nested dicts.

    Non-dict values in patch replace the value in base. Lists are replaced,
    not concatenated.
    """
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        existing = merged.get(key)
        if isinstance(value, dict) and isinstance(existing, dict):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class Transaction:
    """One attempt of a read-validate-write transaction.

    Created by DocumentStore.async_run_transaction(); never instantiated
    directly by callers.
    """

    def __init__(self, store: DocumentStore) -> None:
        """Initialize an empty transaction bound to a store."""
        self._store = store
        self._read_versions: dict[str, int] = {}
        self._writes: list[tuple[str, str, Document, bool]] = []

    @property
    def read_versions(self) -> dict[str, int]:
        """Versions observed by this attempt, keyed by document path."""
        return self._read_versions

    @property
    def writes(self) -> list[tuple[str, str, Document, bool]]:
        """Staged writes as (collection, doc_id, data, merge) tuples."""
        return self._writes

    async def async_get(self, collection: str, doc_id: str) -> Document | None:
        """Read a document and record the version observed.

        Returns a private copy, or None when the document does not exist.
        Re-reading a path keeps the version from the first read.
        """
        # Yield like a remote round-trip so concurrent transactions interleave
        await asyncio.sleep(0)
        document, version = self._store.snapshot(collection, doc_id)
        self._read_versions.setdefault(document_path(collection, doc_id), version)
        return document

    def set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        *,
        merge: bool = False,
    ) -> None:
        """Stage a write. With merge=True, data is deep-merged into the document."""
        self._writes.append((collection, doc_id, copy.deepcopy(data), merge))


class DocumentStore(ABC):
    """Document store strategy with an optimistic transaction primitive.

    Subclasses provide versioned snapshots and the synchronous apply step;
    the retry loop lives here so every store has the same semantics.
    """

    @abstractmethod
    def snapshot(self, collection: str, doc_id: str) -> tuple[Document | None, int]:
        """Return (copy of document or None, current version)."""

    @abstractmethod
    def version(self, collection: str, doc_id: str) -> int:
        """Return the current version of a document (0 when never written)."""

    @abstractmethod
    def collection_ids(self, collection: str) -> list[str]:
        """Return the ids of all documents in a collection."""

    @abstractmethod
    def as_dict(self) -> dict[str, dict[str, Document]]:
        """Return a copy of every document, grouped by collection."""

    @abstractmethod
    def _apply_writes(self, writes: list[tuple[str, str, Document, bool]]) -> None:
        """Apply staged writes and bump versions. Must not await."""

    async def _async_after_commit(self) -> None:
        """Run after a successful commit (persistence hook)."""

    async def async_get(self, collection: str, doc_id: str) -> Document | None:
        """Read a committed document outside of any transaction."""
        document, _version = self.snapshot(collection, doc_id)
        return document

    async def async_set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        *,
        merge: bool = False,
    ) -> None:
        """Write one document outside of a transaction.

        Used for seeding. The write still bumps the document version, so any
        transaction that read the old version will retry.
        """
        self._apply_writes([(collection, doc_id, copy.deepcopy(data), merge)])
        await self._async_after_commit()

    def _conflicting_paths(self, transaction: Transaction) -> list[str]:
        """Return paths whose version moved since the transaction read them."""
        conflicts = []
        for path, observed in transaction.read_versions.items():
            collection, _, doc_id = path.partition("/")
            if self.version(collection, doc_id) != observed:
                conflicts.append(path)
        return conflicts

    async def async_run_transaction(
        self,
        update_fn: Callable[[Transaction], Awaitable[_T]],
        *,
        max_attempts: int = const.DEFAULT_TRANSACTION_MAX_ATTEMPTS,
    ) -> _T:
        """Run update_fn atomically, retrying on version conflicts.

        Args:
            update_fn: Coroutine function receiving a Transaction. It must read
                through the transaction and stage writes with Transaction.set().
            max_attempts: Attempts before TransactionConflictError is raised.

        Returns:
            Whatever update_fn returned on the attempt that committed.

        Raises:
            TransactionConflictError: Every attempt hit a version conflict.
            Exception: Anything raised by update_fn, with nothing written.
        """
        conflicts: list[str] = []
        for attempt in range(1, max_attempts + 1):
            transaction = Transaction(self)
            result = await update_fn(transaction)

            # Validate and apply without awaiting in between
            conflicts = self._conflicting_paths(transaction)
            if not conflicts:
                self._apply_writes(transaction.writes)
                await self._async_after_commit()
                return result

            const.LOGGER.debug(
                "DEBUG: Transaction conflict on %s (attempt %s/%s)",
                conflicts,
                attempt,
                max_attempts,
            )

        const.LOGGER.warning(
            "WARNING: Transaction gave up after %s attempts, conflicting documents: %s",
            max_attempts,
            conflicts,
        )
        raise TransactionConflictError(max_attempts, conflicts)


class InMemoryDocumentStore(DocumentStore):
    """Deterministic in-process document store.

    Versions start at 0 for absent documents and increase by one on every
    committed write to that document.
    """

    def __init__(self, documents: dict[str, dict[str, Document]] | None = None) -> None:
        """Initialize the store, optionally seeded with documents."""
        self._documents: dict[str, dict[str, Document]] = copy.deepcopy(documents or {})
        self._versions: dict[str, int] = {}

    def snapshot(self, collection: str, doc_id: str) -> tuple[Document | None, int]:
        """Return (copy of document or None, current version)."""
        document = self._documents.get(collection, {}).get(doc_id)
        return copy.deepcopy(document), self.version(collection, doc_id)

    def version(self, collection: str, doc_id: str) -> int:
        """Return the current version of a document (0 when never written)."""
        return self._versions.get(document_path(collection, doc_id), 0)

    def collection_ids(self, collection: str) -> list[str]:
        """Return the ids of all documents in a collection."""
        return list(self._documents.get(collection, {}))

    def as_dict(self) -> dict[str, dict[str, Document]]:
        """Return a copy of every document, grouped by collection."""
        return copy.deepcopy(self._documents)

    def _apply_writes(self, writes: list[tuple[str, str, Document, bool]]) -> None:
        """Apply staged writes in order and bump versions."""
        for collection, doc_id, data, merge in writes:
            documents = self._documents.setdefault(collection, {})
            current = documents.get(doc_id)
            if merge and isinstance(current, dict):
                documents[doc_id] = deep_merge(current, data)
            else:
                documents[doc_id] = copy.deepcopy(data)
            path = document_path(collection, doc_id)
            self._versions[path] = self._versions.get(path, 0) + 1


class HomeAssistantDocumentStore(InMemoryDocumentStore):
    """Document store persisted with Home Assistant's Storage helper.

    The in-memory state is authoritative while running; it is saved after
    every commit. Versions are not persisted because no transaction survives
    a restart.
    """

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).
        """
        super().__init__()
        self.hass = hass
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)

    async def async_initialize(self) -> None:
        """Load documents from storage during startup."""
        const.LOGGER.debug("DEBUG: Document store: Loading data from storage")
        existing_data = await self._store.async_load()

        if not existing_data:
            const.LOGGER.info("INFO: No existing storage found. Starting empty")
            self._documents = {}
            return

        documents = existing_data.get(const.DATA_DOCUMENTS, {})
        self._documents = documents if isinstance(documents, dict) else {}
        const.LOGGER.debug(
            "DEBUG: Loaded documents from storage: %s",
            {name: len(docs) for name, docs in self._documents.items()},
        )

    async def _async_after_commit(self) -> None:
        """Persist committed state."""
        await self.async_save()

    async def async_save(self) -> None:
        """Save all documents to storage.

        Errors are logged and do not propagate: the commit already happened
        in memory and the next successful save will include it.
        """
        try:
            await self._store.async_save(
                {const.DATA_DOCUMENTS: copy.deepcopy(self._documents)}
            )
            const.LOGGER.debug("DEBUG: Documents saved successfully to storage")
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
        except TypeError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to non-serializable data: %s. "
                "Data contains types that cannot be converted to JSON",
                err,
            )
        except ValueError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to invalid data format: %s",
                err,
            )

    async def async_delete_storage(self) -> None:
        """Clear in-memory documents and remove the storage file."""
        self._documents = {}
        self._versions = {}
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "INFO: Storage file removed successfully: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )
