"""
Random values and password hashing.

Passwords are hashed with scrypt, which is deliberately slow and
memory-hard. Hashing is CPU-bound, so flows must do it before entering a
critical section (see :mod:`hypercloud.locks`), never inside one.
"""

from typing import Optional, Tuple
import hashlib
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

SALT_BYTES = 16
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1
KEY_BYTES = 64


def random_bytes(n: int) -> bytes:
    """Get ``n`` cryptographically secure random bytes."""
    return secrets.token_bytes(n)


def _derive(password: str, salt: bytes) -> bytes:
    return hashlib.scrypt(password.encode('utf-8'), salt=salt, n=SCRYPT_N,
                          r=SCRYPT_R, p=SCRYPT_P, dklen=KEY_BYTES)


def hash_password(password: str) -> Tuple[str, str]:
    """
    Generate a salted hash of a password.

    Parameters
    ----------
    password : str

    Returns
    -------
    str
        Hex-encoded password hash.
    str
        Hex-encoded salt. Store it alongside the hash.

    """
    salt = random_bytes(SALT_BYTES)
    return _derive(password, salt).hex(), salt.hex()


def verify_password(password: str, password_hash: str,
                    password_salt: str) -> bool:
    """
    Check a password against a stored hash and salt.

    The comparison takes the same time whether or not the digests match.
    Stored values that cannot be decoded never match.
    """
    try:
        salt = bytes.fromhex(password_salt)
        expected = bytes.fromhex(password_hash)
    except (TypeError, ValueError) as e:
        logger.error('Stored password hash is malformed: %s', e)
        return False
    return hmac.compare_digest(_derive(password, salt), expected)


def nonces_match(given: str, expected: Optional[str]) -> bool:
    """Compare a presented nonce with the stored one in constant time."""
    if expected is None or given is None:
        return False
    return hmac.compare_digest(given.encode('utf-8'),
                               expected.encode('utf-8'))
