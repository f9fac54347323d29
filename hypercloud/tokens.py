"""
Stateless session tokens.

A session token is a JWT signed with a server-held secret (HS256). It names
the user and their scopes, and carries its own issue and expiry times.
Nothing is stored server-side, so verifying a token needs only the secret
and the clock, and logging out cannot revoke a token: it remains valid
until it expires.

:func:`verify` never raises. Its result is one of :class:`Valid`,
:class:`Invalid` or :class:`Expired`.

Secrets can be rotated without logging everyone out: move the current
``JWT_SECRET`` into ``JWT_PREVIOUS_SECRETS`` and set a new ``JWT_SECRET``.
Tokens signed with a previous secret verify until that secret is dropped
from the list.
"""

from typing import List, NamedTuple, Optional, Sequence, Union
from datetime import datetime, timedelta
import logging

from pytz import UTC
from flask import current_app
import jwt

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'


class Valid(NamedTuple):
    """Claims from a token that checks out."""

    user_id: str
    scopes: List[str]
    issued_at: datetime
    expires_at: datetime


class Invalid(NamedTuple):
    """The token is absent, malformed, or was not signed by us."""

    reason: str = 'Invalid token'


class Expired(NamedTuple):
    """The token was signed by us, but is past its expiry."""

    expired_at: Optional[datetime] = None


Verification = Union[Valid, Invalid, Expired]


def encode(user_id: str, scopes: Sequence[str], secret: str,
           duration: int, now: Optional[datetime] = None) -> str:
    """
    Sign a new session token.

    Parameters
    ----------
    user_id : str
    scopes : list
        Scope labels granted to the session.
    secret : str
        Signing secret.
    duration : int
        Lifetime of the token, in seconds.
    now : :class:`datetime`
        Issue time. Defaults to the current time.

    Returns
    -------
    str

    """
    if now is None:
        now = datetime.now(tz=UTC)
    claims = {
        'sub': user_id,
        'scopes': list(scopes),
        'iat': now,
        'exp': now + timedelta(seconds=duration)
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode(token: Optional[str], secrets: Sequence[str]) -> Verification:
    """Check a token against each of ``secrets``, in order."""
    if not token or not isinstance(token, str):
        return Invalid('No token')
    for secret in secrets:
        try:
            claims = jwt.decode(token, secret, algorithms=[ALGORITHM],
                                options={'require': ['sub', 'iat', 'exp']})
        except jwt.exceptions.InvalidSignatureError:
            continue
        except jwt.exceptions.ExpiredSignatureError:
            return Expired(_expired_at(token, secret))
        except jwt.exceptions.InvalidTokenError as e:
            logger.debug('Session token rejected: %s', e)
            return Invalid('Malformed token')

        scopes = claims.get('scopes', [])
        if not isinstance(scopes, list) \
                or not all(isinstance(scope, str) for scope in scopes):
            return Invalid('Malformed scopes')
        return Valid(
            user_id=claims['sub'],
            scopes=scopes,
            issued_at=datetime.fromtimestamp(claims['iat'], tz=UTC),
            expires_at=datetime.fromtimestamp(claims['exp'], tz=UTC)
        )
    return Invalid('Bad signature')


def _expired_at(token: str, secret: str) -> Optional[datetime]:
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM],
                            options={'verify_exp': False})
        return datetime.fromtimestamp(claims['exp'], tz=UTC)
    except (jwt.exceptions.InvalidTokenError, KeyError, TypeError,
            ValueError, OverflowError):
        return None


def get_secrets() -> List[str]:
    """Current signing secret first, then any retired ones."""
    config = current_app.config
    return [config['JWT_SECRET']] + list(config.get('JWT_PREVIOUS_SECRETS', []))


def get_session_duration() -> int:
    """Get the session duration from the config."""
    return int(current_app.config['SESSION_DURATION'])


def generate(user_id: str, scopes: Sequence[str]) -> str:
    """Issue a session token for a user, signed with the current secret."""
    token = encode(user_id, scopes, current_app.config['JWT_SECRET'],
                   get_session_duration())
    logger.debug('Issued session token for user %s', user_id)
    return token


def verify(token: Optional[str]) -> Verification:
    """Verify a session token against the current and retired secrets."""
    return decode(token, get_secrets())
