"""
Profile ownership proofs.

A proof is a token the user publishes inside their profile archive. Anyone
holding ``PROOF_SECRET`` can check that the archive at ``url`` was claimed by
the account with id ``sub``.
"""

from datetime import datetime
import logging

from pytz import UTC
from flask import Flask, current_app
import jwt

from .. import domain

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'


class InvalidProof(ValueError):
    """The proof is malformed, or was not issued by us."""


def init_app(app: Flask) -> None:
    """Check that a proof secret is configured."""
    if not app.config.get('PROOF_SECRET'):
        raise RuntimeError('PROOF_SECRET must be set')


def generate(record: domain.UserRecord) -> str:
    """Issue a proof binding ``record``'s id to its current profile URL."""
    claims = {
        'sub': record.user_id,
        'url': record.profile_url,
        'iat': datetime.now(tz=UTC)
    }
    token = jwt.encode(claims, current_app.config['PROOF_SECRET'],
                       algorithm=ALGORITHM)
    logger.debug('Issued profile proof for user %s', record.user_id)
    return token


def check(token: str) -> dict:
    """
    Decode a proof issued by :func:`generate`.

    Returns
    -------
    dict
        With keys ``sub`` (user id) and ``url`` (profile URL).

    Raises
    ------
    :class:`InvalidProof`

    """
    try:
        claims = jwt.decode(token, current_app.config['PROOF_SECRET'],
                            algorithms=[ALGORITHM],
                            options={'require': ['sub', 'url']})
    except jwt.exceptions.InvalidTokenError as e:
        raise InvalidProof('Invalid proof') from e
    return {'sub': claims['sub'], 'url': claims['url']}
