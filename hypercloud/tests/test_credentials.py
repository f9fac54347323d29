"""Tests for :mod:`hypercloud.credentials`."""

from unittest import TestCase

from hypothesis import given, strategies as st

from .. import credentials


class TestPasswords(TestCase):
    """Password hashing and verification."""

    @given(st.text(min_size=6, max_size=100))
    def test_roundtrip(self, password):
        """A password verifies against its own hash."""
        password_hash, salt = credentials.hash_password(password)
        self.assertTrue(credentials.verify_password(password, password_hash,
                                                    salt))

    @given(st.text(min_size=6, max_size=50), st.text(min_size=6, max_size=50))
    def test_other_password(self, password, other):
        """A different password does not verify."""
        if password == other:
            return
        password_hash, salt = credentials.hash_password(password)
        self.assertFalse(credentials.verify_password(other, password_hash,
                                                     salt))

    def test_salted(self):
        """The same password hashes differently each time."""
        first = credentials.hash_password('hunter22')
        second = credentials.hash_password('hunter22')
        self.assertNotEqual(first, second)
        self.assertEqual(len(first[1]), credentials.SALT_BYTES * 2)
        self.assertEqual(len(first[0]), credentials.KEY_BYTES * 2)

    def test_malformed_stored_hash(self):
        """A corrupt stored hash or salt never matches."""
        password_hash, salt = credentials.hash_password('hunter22')
        self.assertFalse(
            credentials.verify_password('hunter22', 'not hex', salt)
        )
        self.assertFalse(
            credentials.verify_password('hunter22', password_hash, 'zz')
        )


class TestRandom(TestCase):
    """Random bytes and nonces."""

    def test_random_bytes(self):
        """Requested length is honored, and values differ."""
        self.assertEqual(len(credentials.random_bytes(32)), 32)
        self.assertNotEqual(credentials.random_bytes(32),
                            credentials.random_bytes(32))

    def test_nonces_match(self):
        """Nonce comparison."""
        nonce = credentials.random_bytes(32).hex()
        self.assertTrue(credentials.nonces_match(nonce, nonce))
        self.assertFalse(credentials.nonces_match(nonce, nonce[::-1]))
        self.assertFalse(credentials.nonces_match(nonce, None),
                         'A cleared nonce never matches')
