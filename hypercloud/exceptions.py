"""
Exceptions raised by the account flows.

Every :class:`AccountError` carries a discriminant ``tag`` and a
human-readable message, and knows how to render itself as the JSON body
returned to the caller. Messages for credential failures are deliberately
generic.
"""

from typing import Dict, List, Optional


class AccountError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 500
    tag = 'error'
    message = 'Request failed'

    def __init__(self, message: Optional[str] = None,
                 tag: Optional[str] = None,
                 status_code: Optional[int] = None) -> None:
        if message is not None:
            self.message = message
        if tag is not None:
            self.tag = tag
        if status_code is not None:
            self.status_code = status_code
        super(AccountError, self).__init__(self.message)

    def to_dict(self) -> dict:
        """Render the response body for this error."""
        return {'message': self.message, self.tag: True}


class ValidationError(AccountError):
    """Input was malformed. Field-level detail is in :attr:`errors`."""

    status_code = 422
    tag = 'invalidInput'
    message = 'Invalid input'

    def __init__(self, errors: Dict[str, List[str]],
                 message: Optional[str] = None) -> None:
        self.errors = errors
        super(ValidationError, self).__init__(message)

    def to_dict(self) -> dict:
        """Include the per-field messages."""
        data = super(ValidationError, self).to_dict()
        data['errors'] = self.errors
        return data


class PolicyError(AccountError):
    """The request is not allowed by service policy."""

    status_code = 422
    tag = 'policyViolation'


class ConflictError(AccountError):
    """A unique value (username, email) is already in use."""

    status_code = 422
    tag = 'conflict'


class AuthError(AccountError):
    """Credentials, nonce or session were not acceptable."""

    status_code = 422
    tag = 'invalidCredentials'
    message = 'Invalid username/password'


class NotFoundError(AccountError):
    """The requested record or resource does not exist."""

    status_code = 404
    tag = 'notFound'
    message = 'Not found'


class InternalError(AccountError):
    """Something unexpected happened. Details stay in the server log."""

    status_code = 500
    tag = 'internalError'
    message = 'Internal server error'

    def to_dict(self) -> dict:
        """Never expose internal detail."""
        return {'message': InternalError.message, InternalError.tag: True}


def email_not_whitelisted() -> PolicyError:
    return PolicyError('Your email has not been whitelisted for registration'
                       ' by the admin.', 'emailNotWhitelisted')


def email_not_available() -> ConflictError:
    return ConflictError('Email is not available', 'emailNotAvailable')


def username_not_available() -> ConflictError:
    return ConflictError('Username is not available', 'usernameNotAvailable')


def invalid_username() -> NotFoundError:
    return NotFoundError('Invalid username', 'invalidUsername', 422)


def invalid_nonce() -> AuthError:
    return AuthError('Invalid verification code', 'invalidNonce')


def invalid_credentials() -> AuthError:
    return AuthError('Invalid username/password', 'invalidCredentials')


def unauthorized() -> AuthError:
    return AuthError('You must sign in to access this resource.',
                     'unauthorized', 401)


class LockReleaseError(RuntimeError):
    """A lock handle was released more than once."""


class Unavailable(RuntimeError):
    """The user directory could not be reached."""
