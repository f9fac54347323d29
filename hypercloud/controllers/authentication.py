"""
Controllers for logging in and out.

A successful login issues a stateless session token (see
:mod:`hypercloud.tokens`), delivered both in the response body and as a
cookie. Because nothing is stored server-side, logging out only tells the
client to discard the cookie; a copied token stays valid until it expires.

Every login failure produces the same error, so a caller cannot learn
whether a username exists or whether its address has been verified.
"""

from typing import Any, Dict, Optional, Tuple
from http import HTTPStatus as status
import logging

from werkzeug.datastructures import MultiDict
from retry import retry

from .. import credentials, domain, exceptions, tokens
from ..services import directory
from .forms import LoginForm, validated

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

_DUMMY_HASH, _DUMMY_SALT = '', ''


def _dummy_credentials() -> Tuple[str, str]:
    global _DUMMY_HASH, _DUMMY_SALT
    if not _DUMMY_HASH:
        _DUMMY_HASH, _DUMMY_SALT = credentials.hash_password('not a password')
    return _DUMMY_HASH, _DUMMY_SALT


def login(params: MultiDict) -> ResponseData:
    """
    Authenticate with a username and password.

    Parameters
    ----------
    params : MultiDict
        Should include ``username`` and ``password``.

    Returns
    -------
    dict
        Includes ``sessionToken``, and the session cookie under ``cookies``.
    int
        200 (OK).
    dict
        Headers to add to the response.

    Raises
    ------
    :class:`.ValidationError`
    :class:`.AuthError`
        If the user does not exist, has not verified their email address,
        or gave the wrong password.

    """
    logger.debug('Login submitted')
    form = validated(LoginForm, params)

    record = _get_user(form.username.data)
    if record is None:
        logger.debug('No such user: %s', form.username.data)
        credentials.verify_password(form.password.data, *_dummy_credentials())
        raise exceptions.invalid_credentials()
    if not credentials.verify_password(form.password.data,
                                       record.password_hash,
                                       record.password_salt):
        logger.debug('Wrong password for user %s', record.user_id)
        raise exceptions.invalid_credentials()
    if not record.is_email_verified:
        logger.debug('User %s has not verified their email', record.user_id)
        raise exceptions.invalid_credentials()

    token = tokens.generate(record.user_id, record.scopes)
    logger.info('Logged in user %s', record.user_id)
    data: Dict[str, Any] = {
        'sessionToken': token,
        'cookies': {
            'auth_session_cookie': (token, tokens.get_session_duration())
        }
    }
    return data, status.OK, {}


def logout() -> ResponseData:
    """Tell the client to discard its session cookie."""
    logger.debug('Request to log out')
    data = {'cookies': {'auth_session_cookie': ('', 0)}}
    return data, status.OK, {}


# Broken out to add retry logic.
@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _get_user(username: str) -> Optional[domain.UserRecord]:
    return directory.get_by_username(username)
