"""
Controllers for account registration and email verification.

Registration creates an unverified account and emails the user a link
carrying a single-use nonce. Following the link (:func:`verify`) marks the
address as verified, grants the ``user`` scope, and logs the user in.

Username and email uniqueness is enforced here rather than by the user
directory: the check and the insert run together under per-resource locks
(see :mod:`hypercloud.locks`). Password hashing is slow, so it happens
before the locks are taken.
"""

from typing import Any, Dict, Tuple
from http import HTTPStatus as status
from urllib.parse import urlencode
import logging

from werkzeug.datastructures import MultiDict
from flask import current_app

from .. import credentials, domain, exceptions, locks, scopes, tokens
from ..services import directory, mailer
from .forms import RegistrationForm, VerifyForm, validated

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

NONCE_BYTES = 32


def registration_status() -> ResponseData:
    """Report whether registration is open to everyone."""
    data = {'isOpen': bool(current_app.config['REGISTRATION_OPEN'])}
    return data, status.OK, {}


def register(params: MultiDict) -> ResponseData:
    """
    Create a new, unverified account.

    Parameters
    ----------
    params : MultiDict
        Should include ``username``, ``email`` and ``password``.

    Returns
    -------
    dict
        Empty; no session is issued until the email address is verified.
    int
        201 (Created).
    dict
        Headers to add to the response.

    Raises
    ------
    :class:`.ValidationError`
    :class:`.PolicyError`
        If registration is closed and the address is not on the allow-list.
    :class:`.ConflictError`
        If the email address or username is already in use.

    """
    logger.debug('Registration submitted')
    form = validated(RegistrationForm, params)
    username = form.username.data
    email = form.email.data
    password = form.password.data

    if not current_app.config['REGISTRATION_OPEN'] \
            and email not in current_app.config['REGISTRATION_ALLOWED']:
        logger.debug('Registration closed to %s', email)
        raise exceptions.email_not_whitelisted()

    nonce = credentials.random_bytes(NONCE_BYTES).hex()
    password_hash, password_salt = credentials.hash_password(password)

    with locks.holding(f'username:{username}', f'email:{email}'):
        if directory.is_email_taken(email):
            logger.debug('Email address already registered')
            raise exceptions.email_not_available()
        if directory.is_username_taken(username):
            logger.debug('Username %s already registered', username)
            raise exceptions.username_not_available()
        record = directory.create(domain.UserRecord(
            username=username,
            email=email,
            password_hash=password_hash,
            password_salt=password_salt,
            email_verification_nonce=nonce,
            is_email_verified=False,
            scopes=[]
        ))
    logger.info('Registered user %s', record.user_id)

    _send_verification_email(record, nonce)
    return {}, status.CREATED, {}


def verification_link(username: str, nonce: str) -> str:
    """Build the link that completes email verification."""
    query = urlencode({'username': username, 'nonce': nonce})
    return f"https://{current_app.config['HOSTNAME']}/v1/verify?{query}"


def _send_verification_email(record: domain.UserRecord, nonce: str) -> None:
    link = verification_link(record.username, nonce)
    if current_app.config['ENV'] == 'development':
        logger.info('Verification link for %s: %s', record.username, link)
    try:
        mailer.send('verification', {
            'email': record.email,
            'username': record.username,
            'emailVerificationNonce': nonce,
            'emailVerificationLink': link
        })
    except Exception:
        logger.exception('Could not send verification email to user %s',
                         record.user_id)


def verify(params: MultiDict) -> ResponseData:
    """
    Confirm an email address with the nonce from the verification link.

    Parameters
    ----------
    params : MultiDict
        Should include ``username`` and ``nonce``.

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
    :class:`.NotFoundError`
        If there is no such user.
    :class:`.AuthError`
        If the nonce does not match, or was already used.

    """
    logger.debug('Verification requested')
    form = validated(VerifyForm, params)
    username = form.username.data
    nonce = form.nonce.data

    with locks.holding(f'username:{username}'):
        record = directory.get_by_username(username)
        if record is None:
            logger.debug('No such user: %s', username)
            raise exceptions.invalid_username()
        if not credentials.nonces_match(nonce,
                                        record.email_verification_nonce):
            logger.debug('Nonce mismatch for user %s', record.user_id)
            raise exceptions.invalid_nonce()
        record = record._replace(email_verification_nonce=None,
                                 is_email_verified=True)
        record = directory.put(record.with_scope(scopes.USER))
    logger.info('Verified email for user %s', record.user_id)

    token = tokens.generate(record.user_id, record.scopes)
    data: Dict[str, Any] = {
        'sessionToken': token,
        'cookies': {
            'auth_session_cookie': (token, tokens.get_session_duration())
        }
    }
    return data, status.OK, {}
