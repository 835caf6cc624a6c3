# storefront/sync.py
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, List, Optional, TypeVar

from pydantic import ValidationError

from storefront.api import ApiError
from storefront.session import Session, SyncState, on_clear, on_clear_persisted, on_merge_started

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """The server refused a change; nothing was applied locally."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SyncedStore(ABC, Generic[T]):
    """
    A collection kept in local storage and, while logged in, on the server.

    Subclasses supply the item codec and the server calls. This class
    owns the shared rules:

    * anonymous reads and writes touch local storage only
    * the first refresh after login merges local items into the server
      copy, once per login episode
    * server-first mutations fall back to the local copy when the server
      is unreachable, answers 502/503/504, or answers 404
    * an empty collection is written to storage only after an explicit clear
    """

    collection: str = ""
    label: str = ""

    def __init__(self, session: Session):
        self.session = session
        self.items: List[T] = self._load_local()

    # --- Hooks ---
    @abstractmethod
    def _decode(self, raw: Any) -> T:
        ...

    @abstractmethod
    def _encode(self, item: T) -> Any:
        ...

    @abstractmethod
    def _fetch_remote(self) -> List[T]:
        ...

    @abstractmethod
    def _push(self, item: T):
        """Add one local item to the server during a merge."""

    @abstractmethod
    def _merge_key(self, item: T) -> Optional[str]:
        ...

    def _stored_items(self, raw: Any) -> List[Any]:
        return raw if isinstance(raw, list) else []

    def _to_storage(self, items: List[T]) -> Any:
        return [self._encode(item) for item in items]

    def _set_items(self, items: List[T]):
        self.items = list(items)

    # --- State ---
    @property
    def state(self) -> SyncState:
        return self.session.state(self.collection)

    @property
    def notifier(self):
        return self.session.notifier

    @property
    def api(self):
        return self.session.api

    # --- Local storage ---
    def _load_local(self) -> List[T]:
        raw = self.session.storage.get(self.collection)
        if raw is None:
            return []
        try:
            return [self._decode(entry) for entry in self._stored_items(raw)]
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.error("Error parsing local %s: %s", self.label, e)
            self.session.storage.remove(self.collection)
            return []

    def _persist(self):
        if self.items:
            self.session.storage.set(self.collection, self._to_storage(self.items))
        elif self.state.clear_requested:
            self.session.storage.remove(self.collection)
            self.session.transition(self.collection, on_clear_persisted)
        else:
            logger.debug("Not writing empty %s to local storage", self.label)

    def _adopt(self, items: List[T]) -> List[T]:
        self._set_items(items)
        self._persist()
        return self.items

    def _commit(self, items: List[T]) -> List[T]:
        """Apply the result of a user action, which may legitimately empty the collection."""
        if not items:
            self.session.transition(self.collection, on_clear)
        return self._adopt(items)

    # --- Reading ---
    def refresh(self) -> List[T]:
        local = self._load_local()
        if not self.session.authenticated:
            self._set_items(local)
            return self.items
        if self.state.needs_merge:
            return self.merge(local)
        return self._sync_from_server(local)

    def _sync_from_server(self, local: List[T]) -> List[T]:
        try:
            remote = self._fetch_remote()
        except ApiError as e:
            logger.error("Error fetching %s from server: %s", self.label, e)
            self._set_items(local)
            if local:
                self.notifier.error(f"Server unavailable. Showing locally saved {self.label}.")
            return self.items
        if remote:
            return self._adopt(remote)
        # An empty server copy never wipes local items
        self._set_items(local)
        return self.items

    def merge(self, local: Optional[List[T]] = None) -> List[T]:
        local = self._load_local() if local is None else local
        # Marked before any network call so a failed merge is not retried
        self.session.transition(self.collection, on_merge_started)
        if not local:
            return self._sync_from_server(local)

        try:
            remote = self._fetch_remote()
        except ApiError as e:
            logger.error("Error merging %s: %s", self.label, e)
            self.notifier.error(f"Failed to restore your previous {self.label}")
            self._set_items(local)
            return self.items

        self.notifier.success(f"Restoring your {self.label} from your previous session")
        # Only the server's first answer counts as already present; a product
        # may have several local lines in different sizes or colours
        known = {self._merge_key(item) for item in remote}
        merged = 0
        for item in local:
            key = self._merge_key(item)
            if not key or key in known:
                continue
            try:
                self._push(item)
            except ApiError as e:
                logger.warning("Error merging %s item %s: %s", self.label, key, e)
                continue
            merged += 1
        logger.info("Merged %d of %d local %s into the server copy", merged, len(local), self.label)

        try:
            remote = self._fetch_remote()
        except ApiError as e:
            logger.error("Error fetching %s after merge: %s", self.label, e)
            self.notifier.error(f"Server unavailable. Using local {self.label} data.")
            self._set_items(local)
            return self.items
        if remote:
            return self._adopt(remote)
        self._set_items(local)
        return self.items

    # --- Writing ---
    def _mutate(
        self,
        remote: Callable[[], Any],
        local: Callable[[List[T]], List[T]],
        offline_message: str,
    ) -> List[T]:
        """
        Run `remote` when logged in and adopt the collection it returns.
        Otherwise, or when the server is unavailable, apply `local` to the
        current items instead.
        """
        if not self.session.authenticated:
            return self._commit(local(list(self.items)))

        try:
            payload = remote()
        except ApiError as e:
            if e.is_transient:
                logger.warning("Server unavailable, applying %s change locally: %s", self.label, e)
                self.notifier.error(offline_message)
                return self._commit(local(list(self.items)))
            if e.is_not_found:
                logger.info("Server answered 404, applying %s change locally", self.label)
                return self._commit(local(list(self.items)))
            raise StoreError(e.message, e.status_code) from e
        return self._commit(self._from_response(payload))

    def _from_response(self, payload: Any) -> List[T]:
        return [self._decode(entry) for entry in self._stored_items(payload)]

    @abstractmethod
    def _remote_clear(self):
        ...

    def clear(self) -> List[T]:
        if self.session.authenticated:
            try:
                self._remote_clear()
            except ApiError as e:
                if e.is_transient:
                    self.notifier.error(
                        f"Server unavailable. {self.label.capitalize()} cleared locally but may reappear when you reconnect."
                    )
                elif not e.is_not_found:
                    raise StoreError(e.message, e.status_code) from e
        return self._commit([])
