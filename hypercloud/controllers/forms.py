"""Input schemas for the account flows."""

from typing import Optional
import re

from werkzeug.datastructures import MultiDict
from wtforms import StringField, PasswordField, Form, Field
from wtforms.validators import InputRequired, Email, Length, Regexp, \
    optional, ValidationError as FieldError

from ..exceptions import ValidationError

DAT_URL = re.compile(r'^(?:dat://)?(?P<key>[0-9a-fA-F]{64})(?P<path>/.*)?\Z')
"""A dat URL, or a bare archive key."""

USERNAME = [
    InputRequired(),
    Length(min=3, max=16),
    Regexp(r'^[A-Za-z0-9]+\Z', message='Username must be alphanumeric')
]


class RegistrationForm(Form):
    """New account form."""

    username = StringField('Username', validators=USERNAME)
    email = StringField('Email address',
                        validators=[InputRequired(), Length(min=3, max=100),
                                    Email()])
    password = PasswordField('Password',
                             validators=[InputRequired(),
                                         Length(min=6, max=100)])


class VerifyForm(Form):
    """Email verification link parameters."""

    username = StringField('Username', validators=USERNAME)
    nonce = StringField('Verification code',
                        validators=[InputRequired(), Length(min=3, max=100)])


class LoginForm(Form):
    """Log in form."""

    username = StringField('Username', validators=USERNAME)
    password = PasswordField('Password',
                             validators=[InputRequired(),
                                         Length(min=6, max=100)])


def _dat_url(form: Form, field: Field) -> None:
    if not DAT_URL.match(field.data):
        raise FieldError('Must be a dat:// URL')


class AccountForm(Form):
    """Account settings."""

    profileURL = StringField('Profile URL',
                             validators=[optional(), Length(max=255),
                                         _dat_url])

    @property
    def profile_url(self) -> Optional[str]:
        """The submitted profile URL normalized to ``dat://<key>/``."""
        if not self.profileURL.data:
            return None
        return normalize_dat_url(self.profileURL.data)


class UsernameForm(Form):
    """Public profile lookup."""

    username = StringField('Username', validators=USERNAME)


def normalize_dat_url(url: str) -> str:
    """Reduce a dat URL or bare key to ``dat://<key>/``."""
    match = DAT_URL.match(url)
    if match is None:
        raise ValueError(f'Not a dat URL: {url}')
    return f"dat://{match.group('key').lower()}/"


def validated(form_class: type, params: MultiDict) -> Form:
    """
    Bind ``params`` to a new ``form_class`` and validate it.

    Raises
    ------
    :class:`.ValidationError`
        With the per-field messages, if the input is not valid.

    """
    form = form_class(params)
    if not form.validate():
        raise ValidationError(form.errors)
    return form
