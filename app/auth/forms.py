from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import StopValidation

from app.auth.validation import AuthFormData, FormKind, validate_field


class AuthRule:
    """
    WTForms validator delegating to the shared auth rules so the JSON
    endpoints report exactly the messages the client forms show.
    """

    def __call__(self, form, field):
        message = validate_field(form.kind, field.name, field.data, form.snapshot())
        if message:
            raise StopValidation(message)


class StrictBooleanField(BooleanField):
    """
    Keeps the submitted JSON value as is. Only a real `true` satisfies
    the rules; strings such as "false" are not coerced.
    """

    def process_data(self, value):
        self.data = value


class AuthForm(FlaskForm):
    kind = None

    class Meta:
        csrf = False

    def snapshot(self) -> AuthFormData:
        data = AuthFormData()
        for name in ('email', 'password', 'confirm_password', 'remember_me', 'accept_terms'):
            if name in self._fields:
                value = self._fields[name].data
                if value is not None:
                    setattr(data, name, value)
        return data

    def first_errors(self):
        """{field: first message} for a JSON `details` payload."""
        return {name: messages[0] for name, messages in self.errors.items() if messages}


class SignInForm(AuthForm):
    kind = FormKind.SIGN_IN

    email = StringField('Email', validators=[AuthRule()])
    password = PasswordField('Hasło', validators=[AuthRule()])
    remember_me = BooleanField('Zapamiętaj mnie')


class RegisterForm(AuthForm):
    kind = FormKind.REGISTER

    email = StringField('Email', validators=[AuthRule()])
    password = PasswordField('Hasło', validators=[AuthRule()])
    confirm_password = PasswordField('Potwierdź hasło', validators=[AuthRule()])
    accept_terms = StrictBooleanField('Akceptuję warunki użytkowania', validators=[AuthRule()])


class ResetPasswordForm(AuthForm):
    kind = FormKind.RESET_PASSWORD

    email = StringField('Email', validators=[AuthRule()])
