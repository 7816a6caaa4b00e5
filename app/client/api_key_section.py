"""
State of the "own API key" section of the profile screen.
"""
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from app.client.api import ApiClientError
from app.lib.llm_utils import MIN_API_KEY_LENGTH

logger = logging.getLogger(__name__)


EMPTY_KEY_MESSAGE = "Klucz API nie może być pusty"
SHORT_KEY_MESSAGE = "Klucz API wydaje się być nieprawidłowy"
UPDATED_MESSAGE = "Klucz API został zaktualizowany"
UPDATE_FAILED_MESSAGE = "Nie udało się zaktualizować klucza API"
DELETE_CONFIRMATION = ("Czy na pewno chcesz usunąć swój klucz API? Przepisy będą generowane "
                       "z użyciem domyślnego klucza aplikacji.")
DELETED_MESSAGE = "Klucz API został usunięty"
DELETE_FAILED_MESSAGE = "Nie udało się usunąć klucza API"


class KeySectionState(Enum):
    VIEWING_MASKED = 'viewing-masked'
    EDITING = 'editing'
    SAVING = 'saving'
    DELETING = 'deleting'


def _log_notification(level, message):
    logger.info(f"[{level}] {message}")


class ApiKeySection:
    """
    Drives save/delete of the user's key through a PreferencesEditor.

    `notify(level, message)` receives 'success' / 'error' notifications;
    `confirm(message)` must return True before a key is deleted.
    """

    def __init__(self, editor, notify: Optional[Callable] = None,
                 confirm: Optional[Callable[[str], bool]] = None):
        self.editor = editor
        self.notify = notify or _log_notification
        self.confirm = confirm or (lambda message: False)
        self._lock = threading.Lock()
        self.draft = ''
        self.state = KeySectionState.VIEWING_MASKED if editor.has_api_key else KeySectionState.EDITING

    @property
    def is_editing(self) -> bool:
        return self.state is KeySectionState.EDITING

    @property
    def is_busy(self) -> bool:
        return self.state in (KeySectionState.SAVING, KeySectionState.DELETING)

    @property
    def display_key(self) -> str:
        return self.editor.api_key or ''

    def _enter(self, *allowed, target):
        with self._lock:
            if self.state not in allowed:
                return None
            previous = self.state
            self.state = target
            return previous

    def handle_save(self, api_key: str) -> bool:
        key = (api_key or '').strip()
        if not key:
            self.notify('error', EMPTY_KEY_MESSAGE)
            return False
        if len(key) < MIN_API_KEY_LENGTH:
            self.notify('error', SHORT_KEY_MESSAGE)
            return False

        if self._enter(KeySectionState.EDITING, target=KeySectionState.SAVING) is None:
            return False
        try:
            self.editor.update_api_key(key)
        except ApiClientError as e:
            logger.warning(f"API key update failed: {e.message}")
            self.state = KeySectionState.EDITING
            self.notify('error', UPDATE_FAILED_MESSAGE)
            return False

        self.draft = ''
        self.state = KeySectionState.VIEWING_MASKED
        self.notify('success', UPDATED_MESSAGE)
        return True

    def handle_delete(self) -> bool:
        if not self.confirm(DELETE_CONFIRMATION):
            return False

        previous = self._enter(KeySectionState.VIEWING_MASKED, KeySectionState.EDITING,
                               target=KeySectionState.DELETING)
        if previous is None:
            return False
        try:
            self.editor.delete_api_key()
        except ApiClientError as e:
            logger.warning(f"API key delete failed: {e.message}")
            self.state = previous
            self.notify('error', DELETE_FAILED_MESSAGE)
            return False

        self.draft = ''
        self.state = KeySectionState.EDITING
        self.notify('success', DELETED_MESSAGE)
        return True

    def handle_edit(self):
        if self._enter(KeySectionState.VIEWING_MASKED, target=KeySectionState.EDITING) is not None:
            self.draft = ''

    def handle_cancel(self):
        if not self.editor.has_api_key:
            return
        if self._enter(KeySectionState.EDITING, target=KeySectionState.VIEWING_MASKED) is not None:
            self.draft = ''
