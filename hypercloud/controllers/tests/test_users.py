"""Tests for :func:`hypercloud.controllers.users.get_user`."""

from unittest import TestCase

from ... import domain, exceptions
from ...services import directory
from ...tests.util import make_app, temporary_db
from .. import users


class TestGetUser(TestCase):
    """Public user lookup."""

    def test_get_user(self):
        """Only public details are returned."""
        app = make_app()
        with temporary_db(app):
            record = directory.create(domain.UserRecord(
                username='alice', email='alice@example.com',
                password_hash='ab', password_salt='cd'
            ))
            data, code, _ = users.get_user('alice')
            self.assertEqual(code, 200)
            self.assertEqual(data, {
                'username': 'alice',
                'createdAt': record.created_at.isoformat()
            })

            with self.assertRaises(exceptions.NotFoundError):
                users.get_user('bob')
            with self.assertRaises(exceptions.ValidationError):
                users.get_user('x')
