"""
Auth form validation rules.

Pure functions shared by the server-side WTForms forms and the client-side
AuthForm state. Every rule returns a Polish message or None; nothing here
touches the network or the request context.

Field sets per form kind:
- sign-in: email, password
- register: email, password, confirm_password, accept_terms
- reset-password: email
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

MSG_EMAIL_REQUIRED = "Email jest wymagany"
MSG_EMAIL_INVALID = "Wprowadź poprawny adres email"
MSG_PASSWORD_REQUIRED = "Hasło jest wymagane"
MSG_PASSWORD_TOO_SHORT = f"Hasło musi mieć minimum {MIN_PASSWORD_LENGTH} znaków"
MSG_PASSWORD_WEAK = "Hasło musi zawierać wielką literę, małą literę i cyfrę"
MSG_PASSWORDS_DIFFER = "Hasła nie są identyczne"
MSG_TERMS_REQUIRED = "Musisz zaakceptować warunki użytkowania"


class FormKind(str, Enum):
    SIGN_IN = 'sign-in'
    REGISTER = 'register'
    RESET_PASSWORD = 'reset-password'


FORM_FIELDS = ('email', 'password', 'confirm_password', 'remember_me', 'accept_terms')

VALIDATED_FIELDS = {
    FormKind.SIGN_IN: ('email', 'password'),
    FormKind.REGISTER: ('email', 'password', 'confirm_password', 'accept_terms'),
    FormKind.RESET_PASSWORD: ('email',),
}


@dataclass
class AuthFormData:
    """Snapshot of every field any auth form can hold."""
    email: str = ''
    password: str = ''
    confirm_password: str = ''
    remember_me: bool = False
    accept_terms: bool = False


@dataclass(frozen=True)
class SignInIntent:
    email: str
    password: str

    kind = FormKind.SIGN_IN


@dataclass(frozen=True)
class RegisterIntent:
    email: str
    password: str
    confirm_password: str
    accept_terms: bool

    kind = FormKind.REGISTER


@dataclass(frozen=True)
class ResetPasswordIntent:
    email: str

    kind = FormKind.RESET_PASSWORD


FormIntent = Union[SignInIntent, RegisterIntent, ResetPasswordIntent]


@dataclass
class ValidationResult:
    is_valid: bool
    errors: Dict[str, str] = field(default_factory=dict)


def form_intent(kind, data: AuthFormData) -> FormIntent:
    """Build the intent for `kind` carrying only the fields that form submits."""
    kind = FormKind(kind)
    if kind is FormKind.SIGN_IN:
        return SignInIntent(email=data.email, password=data.password)
    if kind is FormKind.REGISTER:
        return RegisterIntent(
            email=data.email,
            password=data.password,
            confirm_password=data.confirm_password,
            accept_terms=data.accept_terms,
        )
    return ResetPasswordIntent(email=data.email)


def validate_email(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return MSG_EMAIL_REQUIRED
    if not _EMAIL_RE.fullmatch(value):
        return MSG_EMAIL_INVALID
    return None


def validate_password(value: Any, require_complexity: bool = False) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return MSG_PASSWORD_REQUIRED
    if len(value) < MIN_PASSWORD_LENGTH:
        return MSG_PASSWORD_TOO_SHORT
    if require_complexity:
        if not (re.search(r'[a-z]', value) and re.search(r'[A-Z]', value) and re.search(r'\d', value)):
            return MSG_PASSWORD_WEAK
    return None


def validate_field(kind, field_name: str, value: Any,
                   form: Optional[AuthFormData] = None) -> Optional[str]:
    """
    Validate one field in the context of a form kind.

    `form` supplies the other fields for cross-field rules (the password a
    confirmation must match). Fields a kind does not submit are never in
    error.
    """
    kind = FormKind(kind)
    form = form or AuthFormData()

    if field_name == 'email':
        return validate_email(value)
    if field_name == 'password':
        return validate_password(value, require_complexity=kind is FormKind.REGISTER)
    if field_name == 'confirm_password':
        if kind is not FormKind.REGISTER:
            return None
        if value != form.password:
            return MSG_PASSWORDS_DIFFER
        return None
    if field_name == 'accept_terms':
        if kind is FormKind.REGISTER and value is not True:
            return MSG_TERMS_REQUIRED
        return None
    return None


def _intent_fields(intent: FormIntent) -> Tuple[FormKind, AuthFormData]:
    data = AuthFormData(email=intent.email)
    if isinstance(intent, (SignInIntent, RegisterIntent)):
        data.password = intent.password
    if isinstance(intent, RegisterIntent):
        data.confirm_password = intent.confirm_password
        data.accept_terms = intent.accept_terms
    return intent.kind, data


def validate_intent(intent: FormIntent) -> ValidationResult:
    kind, data = _intent_fields(intent)
    errors = {}
    for name in VALIDATED_FIELDS[kind]:
        message = validate_field(kind, name, getattr(data, name), data)
        if message:
            errors[name] = message
    return ValidationResult(is_valid=not errors, errors=errors)


def validate_form(kind, form: AuthFormData) -> ValidationResult:
    """Validate every field `kind` submits. Valid iff the error map is empty."""
    return validate_intent(form_intent(kind, form))
