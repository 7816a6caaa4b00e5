"""
Tests for the client-side preferences editor.

Timers are replaced with ManualTimer so auto-save runs only when a test
fires it.
"""

import threading

import pytest

from app.client.api import ApiClientError
from app.client.preferences import MASKED_API_KEY, PreferencesEditor
from app.lib.preferences import ALL_PREFERENCES, MAX_PREFERENCES_MESSAGE


class ManualTimer:
    def __init__(self, delay, fn, args=()):
        self.delay = delay
        self.fn = fn
        self.args = args
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.fn(*self.args)


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, fn, args=()):
        timer = ManualTimer(delay, fn, args)
        self.timers.append(timer)
        return timer

    @property
    def latest(self):
        return self.timers[-1]


class FakeApi:
    def __init__(self, preferences=None, key_info=None):
        self.profile = {'user_id': 'u1', 'preferences': list(preferences or []), 'status': 'active'}
        self.key_info = key_info or {'data': None, 'has_api_key': False}
        self.saved = []
        self.fail_next_save = None
        self.profile_error = None

    def get_profile(self):
        if self.profile_error:
            raise self.profile_error
        return self.profile

    def update_preferences(self, preferences):
        if self.fail_next_save:
            error, self.fail_next_save = self.fail_next_save, None
            raise error
        self.saved.append(list(preferences))
        return {'preferences': list(preferences)}

    def get_api_key(self):
        return self.key_info

    def update_api_key(self, api_key):
        self.key_info = {'data': {'is_active': True, 'usage_count': 0, 'last_used_at': None},
                         'has_api_key': True}
        return {'message': 'API key updated successfully'}

    def delete_api_key(self):
        self.key_info = {'data': None, 'has_api_key': False}
        return {'message': 'API key deleted successfully'}

    def get_api_usage(self):
        return {'limits': {'daily_limit': 50, 'current_usage': 2, 'remaining_usage': 48,
                           'reset_time': '2026-10-19T00:00:00Z'}}


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def api():
    return FakeApi(preferences=['vegan'])


@pytest.fixture
def editor(api, timers):
    editor = PreferencesEditor(api, timer_factory=timers)
    assert editor.load()
    return editor


class TestLoad:

    def test_loads_profile_key_and_usage(self, timers):
        api = FakeApi(preferences=['keto', 'thai'], key_info={
            'data': {'is_active': True, 'usage_count': 7, 'last_used_at': '2026-10-01T10:00:00Z'},
            'has_api_key': True,
        })
        editor = PreferencesEditor(api, timer_factory=timers)

        assert editor.load() is True
        assert editor.preferences == ['keto', 'thai']
        assert editor.saved_preferences == ['keto', 'thai']
        assert not editor.has_changes
        assert editor.api_key == MASKED_API_KEY
        assert editor.has_api_key
        assert editor.api_key_usage_count == 7
        assert editor.api_usage_limits['remaining_usage'] == 48
        assert not editor.is_loading

    def test_missing_profile_starts_empty(self, timers):
        api = FakeApi()
        api.profile_error = ApiClientError('Nie znaleziono zasobu', 404)
        editor = PreferencesEditor(api, timer_factory=timers)
        assert editor.load() is True
        assert editor.preferences == []

    def test_load_failure_sets_error(self, timers):
        api = FakeApi()
        api.profile_error = ApiClientError('Błąd serwera. Spróbuj ponownie później', 500)
        editor = PreferencesEditor(api, timer_factory=timers)
        assert editor.load() is False
        assert editor.error == 'Błąd serwera. Spróbuj ponownie później'
        assert not editor.is_loading


class TestAutoSave:

    def test_edit_schedules_save_after_delay(self, editor, api, timers):
        editor.update_preferences(['vegan', 'polish'])
        assert editor.has_changes
        assert timers.latest.delay == 2.0
        assert timers.latest.started
        assert api.saved == []

        timers.latest.fire()

        assert api.saved == [['vegan', 'polish']]
        assert not editor.has_changes
        assert not editor.is_saving

    def test_new_edit_restarts_timer(self, editor, api, timers):
        editor.update_preferences(['vegan', 'polish'])
        first = timers.latest
        editor.update_preferences(['vegan', 'polish', 'nuts'])

        assert first.cancelled
        first.fire()
        assert api.saved == []

        timers.latest.fire()
        assert api.saved == [['vegan', 'polish', 'nuts']]

    def test_stale_timer_ignored(self, editor, api, timers):
        editor.update_preferences(['keto'])
        stale = timers.latest
        editor.update_preferences(['paleo'])
        # fires even though it was cancelled (timer raced the cancel)
        stale.fn(*stale.args)
        assert api.saved == []

    def test_reorder_is_not_a_change(self, editor):
        editor.update_preferences(['vegan'])
        assert not editor.has_changes

    def test_toggle(self, editor, timers):
        editor.toggle_preference('nuts')
        assert editor.preferences == ['vegan', 'nuts']
        editor.toggle_preference('vegan')
        assert editor.preferences == ['nuts']

    def test_over_limit_rejected_locally(self, editor, api, timers):
        before = len(timers.timers)
        assert editor.update_preferences(list(ALL_PREFERENCES)[:21]) is False
        assert editor.error == MAX_PREFERENCES_MESSAGE
        assert editor.preferences == ['vegan']
        assert len(timers.timers) == before
        assert api.saved == []

    def test_exactly_twenty_is_saved(self, editor, api, timers):
        twenty = list(ALL_PREFERENCES)[:20]
        assert editor.update_preferences(twenty) is True
        assert editor.error is None
        assert editor.is_valid

        timers.latest.fire()

        assert api.saved == [twenty]
        assert editor.saved_preferences == twenty
        assert not editor.has_changes

    def test_failed_save_keeps_changes(self, editor, api, timers):
        api.fail_next_save = ApiClientError('Nieprawidłowe dane wejściowe', 400)
        editor.update_preferences(['vegan', 'italian'])
        timers.latest.fire()

        assert editor.error == 'Nieprawidłowe dane wejściowe'
        assert editor.has_changes
        assert editor.saved_preferences == ['vegan']
        # no automatic retry
        assert len(timers.timers) == 1

    def test_manual_save_cancels_pending_timer(self, editor, api, timers):
        editor.update_preferences(['vegan', 'greek'])
        assert editor.save_preferences() is True
        assert timers.latest.cancelled
        assert api.saved == [['vegan', 'greek']]

    def test_close_cancels_timer(self, editor, timers):
        editor.update_preferences(['vegan', 'greek'])
        editor.close()
        assert timers.latest.cancelled


class BlockingApi(FakeApi):
    """First save blocks until released so a second edit lands mid-flight."""

    def __init__(self):
        super().__init__(preferences=[])
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self.max_concurrent = 0
        self._active = 0
        self._lock = threading.Lock()

    def update_preferences(self, preferences):
        with self._lock:
            self.calls += 1
            self._active += 1
            self.max_concurrent = max(self.max_concurrent, self._active)
            first = self.calls == 1
        if first:
            self.entered.set()
            self.release.wait(5)
        with self._lock:
            self._active -= 1
        self.saved.append(list(preferences))
        return {'preferences': list(preferences)}


class TestSingleFlight:

    def test_edits_during_save_are_queued(self, timers):
        api = BlockingApi()
        editor = PreferencesEditor(api, timer_factory=timers)
        editor.load()

        editor.update_preferences(['vegan'])
        worker = threading.Thread(target=timers.latest.fire)
        worker.start()
        assert api.entered.wait(5)
        assert editor.is_saving

        editor.update_preferences(['vegan', 'keto'])
        timers.latest.fire()  # queued behind the in-flight save
        editor.update_preferences(['vegan', 'keto', 'soy'])
        timers.latest.fire()

        api.release.set()
        worker.join(5)

        assert api.max_concurrent == 1
        # the queued slot holds only the newest list
        assert api.saved == [['vegan'], ['vegan', 'keto', 'soy']]
        assert editor.saved_preferences == ['vegan', 'keto', 'soy']
        assert not editor.has_changes
        assert not editor.is_saving


class TestApiKey:

    def test_update_marks_key_present(self, editor):
        assert not editor.has_api_key
        editor.update_api_key('sk-' + 'x' * 40)
        assert editor.api_key == MASKED_API_KEY
        assert editor.is_api_key_active

    def test_delete_clears_key(self, editor):
        editor.update_api_key('sk-' + 'x' * 40)
        editor.delete_api_key()
        assert editor.api_key is None
        assert not editor.has_api_key

    def test_update_failure_propagates(self, editor, api):
        def fail(api_key):
            raise ApiClientError('Invalid or expired API key', 400)
        api.update_api_key = fail

        with pytest.raises(ApiClientError):
            editor.update_api_key('sk-' + 'x' * 40)
        assert editor.error == 'Invalid or expired API key'
        assert not editor.has_api_key
