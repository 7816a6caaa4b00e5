"""
State holder behind the sign-in, register and reset-password forms.
"""
import dataclasses
import threading
from typing import Dict

from app.auth.validation import (
    FORM_FIELDS,
    AuthFormData,
    FormIntent,
    FormKind,
    form_intent,
    validate_field,
    validate_form,
)


class AuthForm:
    """
    Holds one form's data, per-field errors and loading flag.

    Typing never adds errors; it only clears an error once the field becomes
    valid. The full check runs on submit.
    """

    def __init__(self, kind):
        self.kind = FormKind(kind)
        self._lock = threading.Lock()
        self._submission = 0
        self.data = AuthFormData()
        self.errors: Dict[str, str] = {}
        self.touched = set()
        self.is_loading = False

    def update_field(self, name: str, value):
        if name not in FORM_FIELDS:
            raise KeyError(name)
        with self._lock:
            setattr(self.data, name, value)
            self.touched.add(name)
            if name in self.errors and validate_field(self.kind, name, value, self.data) is None:
                del self.errors[name]
            # the confirmation depends on the password as well
            if (name == 'password' and 'confirm_password' in self.errors
                    and validate_field(self.kind, 'confirm_password', self.data.confirm_password,
                                       self.data) is None):
                del self.errors['confirm_password']

    def set_default_email(self, value: str):
        with self._lock:
            self.data.email = value

    def handle_submit(self) -> bool:
        """
        Validate the whole form and replace the error map.

        Overlapping calls are sequenced; only the newest one writes errors.
        """
        with self._lock:
            self._submission += 1
            submission = self._submission
            snapshot = dataclasses.replace(self.data)

        result = validate_form(self.kind, snapshot)

        with self._lock:
            if submission == self._submission:
                self.errors = dict(result.errors)
        return result.is_valid

    def reset_form(self):
        with self._lock:
            self._submission += 1
            self.data = AuthFormData()
            self.errors = {}
            self.touched = set()
            self.is_loading = False

    @property
    def intent(self) -> FormIntent:
        return form_intent(self.kind, self.data)

    @property
    def is_dirty(self) -> bool:
        return bool(self.touched)
