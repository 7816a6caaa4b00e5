"""
Profile preferences editor state.

Edits are saved automatically after a quiet period (2 s by default). At most
one save is in flight; edits made meanwhile are queued in a single slot and
the newest one is sent once the current save settles. A failed save keeps the
edit marked as unsaved and is not retried automatically.
"""
import logging
import threading
from typing import Callable, List, Optional

from app.client.api import ApiClientError
from app.lib.preferences import MAX_PREFERENCES, MAX_PREFERENCES_MESSAGE

logger = logging.getLogger(__name__)


AUTO_SAVE_DELAY = 2.0  # seconds
MASKED_API_KEY = '•' * 48

LOAD_ERROR = "Błąd podczas ładowania profilu"
SAVE_ERROR = "Błąd podczas zapisywania preferencji"
API_KEY_UPDATE_ERROR = "Błąd podczas aktualizacji klucza API"
API_KEY_DELETE_ERROR = "Błąd podczas usuwania klucza API"


class PreferencesEditor:
    """
    Client-side owner of the working preference list.

    `api` is a RecipeApiClient (or anything with the same methods).
    `timer_factory(delay, fn, args)` must return an object with start() and
    cancel(); it defaults to threading.Timer.
    """

    def __init__(self, api, auto_save_delay: float = AUTO_SAVE_DELAY,
                 timer_factory: Optional[Callable] = None):
        self.api = api
        self.auto_save_delay = auto_save_delay
        self.timer_factory = timer_factory or threading.Timer

        self._lock = threading.RLock()
        self._timer = None
        self._edit_version = 0
        self._in_flight = False
        self._queued = False

        self.preferences: List[str] = []
        self.saved_preferences: List[str] = []
        self.profile = None
        self.is_loading = False
        self.is_saving = False
        self.error: Optional[str] = None

        self.api_key: Optional[str] = None
        self.is_api_key_active = False
        self.api_key_last_used_at = None
        self.api_key_usage_count = 0
        self.api_usage_limits = None

    # -- derived state -----------------------------------------------------

    @property
    def has_changes(self) -> bool:
        with self._lock:
            return sorted(self.preferences) != sorted(self.saved_preferences)

    @property
    def preferences_count(self) -> int:
        return len(self.preferences)

    @property
    def max_preferences(self) -> int:
        return MAX_PREFERENCES

    @property
    def is_valid(self) -> bool:
        return len(self.preferences) <= MAX_PREFERENCES

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None

    # -- loading -----------------------------------------------------------

    def load(self) -> bool:
        with self._lock:
            self.is_loading = True
            self.error = None
        try:
            try:
                profile = self.api.get_profile()
            except ApiClientError as e:
                if e.status != 404:
                    raise
                profile = {'preferences': []}
            key_info = self._optional(self.api.get_api_key)
            usage = self._optional(self.api.get_api_usage)
        except ApiClientError as e:
            logger.warning(f"Loading profile failed: {e.message}")
            with self._lock:
                self.error = e.message or LOAD_ERROR
                self.is_loading = False
            return False

        with self._lock:
            self.profile = profile
            self.preferences = list(profile.get('preferences') or [])
            self.saved_preferences = list(self.preferences)
            self._apply_key_info(key_info)
            self.api_usage_limits = (usage or {}).get('limits')
            self.is_loading = False
        return True

    @staticmethod
    def _optional(fetch):
        # Key metadata and usage limits are optional extras
        try:
            return fetch()
        except ApiClientError as e:
            logger.info(f"Optional profile data unavailable: {e.message}")
            return None

    def _apply_key_info(self, key_info):
        data = (key_info or {}).get('data') if key_info else None
        if key_info and key_info.get('has_api_key') and data:
            self.api_key = MASKED_API_KEY
            self.is_api_key_active = bool(data.get('is_active'))
            self.api_key_last_used_at = data.get('last_used_at')
            self.api_key_usage_count = data.get('usage_count') or 0
        else:
            self.api_key = None
            self.is_api_key_active = False
            self.api_key_last_used_at = None
            self.api_key_usage_count = 0

    # -- editing -----------------------------------------------------------

    def update_preferences(self, preferences: List[str]) -> bool:
        """
        Replace the working list and (re)start the auto-save timer.

        Lists over the limit are rejected locally without a network call.
        """
        preferences = list(preferences)
        with self._lock:
            if len(preferences) > MAX_PREFERENCES:
                self.error = MAX_PREFERENCES_MESSAGE
                return False
            self.preferences = preferences
            self.error = None
            self._edit_version += 1
            self._schedule(self._edit_version)
        return True

    def toggle_preference(self, preference_id: str) -> bool:
        with self._lock:
            if preference_id in self.preferences:
                updated = [p for p in self.preferences if p != preference_id]
            else:
                updated = self.preferences + [preference_id]
        return self.update_preferences(updated)

    def _schedule(self, version):
        self._cancel_timer()
        timer = self.timer_factory(self.auto_save_delay, self._on_timer, args=(version,))
        if hasattr(timer, 'daemon'):
            timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, version):
        with self._lock:
            if version != self._edit_version:
                return
            self._timer = None
        self._request_save()

    # -- saving ------------------------------------------------------------

    def save_preferences(self) -> bool:
        """
        Save now, cancelling any pending auto-save.

        Returns False when the save failed. When a save is already in flight
        the request is queued and True is returned.
        """
        with self._lock:
            self._cancel_timer()
        return self._request_save()

    def _request_save(self) -> bool:
        with self._lock:
            if self._in_flight:
                self._queued = True
                return True
            self._in_flight = True
            self.is_saving = True

        ok = True
        while True:
            with self._lock:
                snapshot = list(self.preferences)
                self._queued = False
            ok = self._persist(snapshot)
            with self._lock:
                if not self._queued:
                    self._in_flight = False
                    self.is_saving = False
                    return ok

    def _persist(self, snapshot) -> bool:
        try:
            self.api.update_preferences(snapshot)
        except ApiClientError as e:
            logger.warning(f"Saving preferences failed: {e.message}")
            with self._lock:
                self.error = e.message or SAVE_ERROR
            return False
        with self._lock:
            self.saved_preferences = snapshot
            self.error = None
        return True

    def clear_error(self):
        with self._lock:
            self.error = None

    # -- API key -----------------------------------------------------------

    def update_api_key(self, api_key: str):
        try:
            self.api.update_api_key(api_key)
        except ApiClientError as e:
            with self._lock:
                self.error = e.message or API_KEY_UPDATE_ERROR
            raise
        key_info = self._optional(self.api.get_api_key)
        with self._lock:
            if key_info is not None:
                self._apply_key_info(key_info)
            else:
                self.api_key = MASKED_API_KEY
                self.is_api_key_active = True
            self.error = None

    def delete_api_key(self):
        try:
            self.api.delete_api_key()
        except ApiClientError as e:
            with self._lock:
                self.error = e.message or API_KEY_DELETE_ERROR
            raise
        with self._lock:
            self._apply_key_info(None)
            self.error = None

    def close(self):
        with self._lock:
            self._cancel_timer()
