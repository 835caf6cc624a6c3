# storefront/session.py
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from storefront.api import ApiError, StoreAPI
from storefront.notify import Notifier
from storefront.storage import LocalStorage

logger = logging.getLogger(__name__)

CART = "cart"
FAVORITES = "favorites"
TOKEN_KEY = "token"


class SyncState(BaseModel):
    """Where one locally held collection stands relative to the server."""

    model_config = ConfigDict(frozen=True)

    authenticated: bool = False
    merge_done: bool = False
    reset_on_login: bool = False
    clear_requested: bool = False

    @property
    def needs_merge(self) -> bool:
        return self.authenticated and not self.merge_done


# --- Transitions ---
def on_login(state: SyncState) -> SyncState:
    # A login that follows a logout starts a new episode with one merge allowed
    merge_done = False if state.reset_on_login else state.merge_done
    return state.model_copy(update={"authenticated": True, "merge_done": merge_done, "reset_on_login": False})


def on_logout(state: SyncState) -> SyncState:
    return state.model_copy(update={"authenticated": False, "reset_on_login": True})


def on_merge_started(state: SyncState) -> SyncState:
    return state.model_copy(update={"merge_done": True})


def on_clear(state: SyncState) -> SyncState:
    return state.model_copy(update={"clear_requested": True})


def on_clear_persisted(state: SyncState) -> SyncState:
    return state.model_copy(update={"clear_requested": False})


class Session:
    """Token, current user and per-collection sync state, shared by the stores."""

    def __init__(self, api: StoreAPI, storage: LocalStorage, notifier: Optional[Notifier] = None):
        self.api = api
        self.storage = storage
        self.notifier = notifier or Notifier()
        self.user: Optional[Dict[str, Any]] = None
        self.states: Dict[str, SyncState] = {CART: SyncState(), FAVORITES: SyncState()}

    @property
    def token(self) -> Optional[str]:
        return self.api.token

    @property
    def authenticated(self) -> bool:
        return bool(self.api.token) and self.user is not None

    def state(self, collection: str) -> SyncState:
        return self.states[collection]

    def transition(self, collection: str, fn: Callable[[SyncState], SyncState]) -> SyncState:
        self.states[collection] = fn(self.states[collection])
        return self.states[collection]

    def _start(self, token: str, user: Dict[str, Any]):
        self.api.token = token
        self.user = user
        self.storage.set(TOKEN_KEY, token)
        for collection in self.states:
            self.transition(collection, on_login)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self.api.login(email, password)
        self._start(data["token"], data["user"])
        name = data["user"].get("name", "")
        if CART in self.storage or FAVORITES in self.storage:
            self.notifier.success(f"Welcome back, {name}! Your cart and favorites will be restored.")
        else:
            self.notifier.success(f"Welcome back, {name}!")
        return self.user

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        data = self.api.register(name, email, password)
        self._start(data["token"], data["user"])
        return self.user

    def restore(self) -> bool:
        """Resume a saved session. A token the server rejects is discarded."""
        token = self.storage.get(TOKEN_KEY)
        if not token:
            return False
        self.api.token = token
        try:
            user = self.api.get_profile()
        except ApiError as e:
            logger.error("Failed to fetch user profile: %s", e)
            self.api.token = None
            self.storage.remove(TOKEN_KEY)
            return False
        self._start(token, user)
        return True

    def logout(self):
        # Cart and favorites stay in local storage for the next login
        self.storage.remove(TOKEN_KEY)
        self.api.token = None
        self.user = None
        for collection in self.states:
            self.transition(collection, on_logout)
        self.notifier.success("Logged out successfully. Your cart and favorites have been saved.")

    def update_profile(self, **fields) -> Dict[str, Any]:
        self.user = self.api.update_profile(**fields)
        return self.user
