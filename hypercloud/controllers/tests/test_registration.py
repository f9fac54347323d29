"""Tests for :func:`hypercloud.controllers.registration.register`."""

from unittest import TestCase, mock
import os
import threading

from werkzeug.datastructures import MultiDict

from ... import exceptions
from ...services import directory
from ...factory import create_web_app
from ...tests.util import make_app, temporary_db, silent_relay
from .. import registration


def _params(username='alice', email='alice@example.com', password='foobar123'):
    return MultiDict({'username': username, 'email': email,
                      'password': password})


class TestRegister(TestCase):
    """Creating new accounts."""

    def setUp(self):
        self.app = make_app()

    @mock.patch(f'{registration.__name__}.mailer')
    def test_register(self, mock_mailer):
        """A new, unverified account is created and the user is emailed."""
        with temporary_db(self.app):
            data, code, headers = registration.register(_params())
            self.assertEqual(code, 201)
            self.assertEqual(data, {}, 'No session is issued')

            record = directory.get_by_username('alice')
            self.assertEqual(record.email, 'alice@example.com')
            self.assertFalse(record.is_email_verified)
            self.assertEqual(record.scopes, [])
            self.assertRegex(record.email_verification_nonce,
                             r'^[0-9a-f]{64}$')
            self.assertNotEqual(record.password_hash, 'foobar123')

        template, context = mock_mailer.send.call_args[0]
        self.assertEqual(template, 'verification')
        self.assertEqual(context['emailVerificationNonce'],
                         record.email_verification_nonce)
        self.assertEqual(context['email'], 'alice@example.com')

    @mock.patch(f'{registration.__name__}.mailer')
    def test_duplicate_username(self, mock_mailer):
        """Registering a taken username fails, and creates nothing."""
        with temporary_db(self.app):
            registration.register(_params('alice', 'a@example.com'))
            with self.assertRaises(exceptions.ConflictError) as ctx:
                registration.register(_params('alice', 'b@example.com'))
            self.assertEqual(ctx.exception.tag, 'usernameNotAvailable')
            self.assertIsNone(directory.get_by_email('b@example.com'))
        self.assertEqual(mock_mailer.send.call_count, 1)

    @mock.patch(f'{registration.__name__}.mailer')
    def test_duplicate_email(self, mock_mailer):
        """Registering a taken email address fails."""
        with temporary_db(self.app):
            registration.register(_params('alice', 'a@example.com'))
            with self.assertRaises(exceptions.ConflictError) as ctx:
                registration.register(_params('bob', 'a@example.com'))
            self.assertEqual(ctx.exception.tag, 'emailNotAvailable')

    @mock.patch(f'{registration.__name__}.mailer')
    def test_email_checked_first(self, mock_mailer):
        """When both are taken, the email conflict is reported."""
        with temporary_db(self.app):
            registration.register(_params('alice', 'a@example.com'))
            with self.assertRaises(exceptions.ConflictError) as ctx:
                registration.register(_params('alice', 'a@example.com'))
            self.assertEqual(ctx.exception.tag, 'emailNotAvailable')

    def test_invalid_input(self):
        """Malformed input is rejected with per-field detail."""
        cases = [
            ({'username': 'al'}, 'username'),
            ({'username': 'a' * 17}, 'username'),
            ({'username': 'alice!'}, 'username'),
            ({'username': 'alicé'}, 'username'),
            ({'email': 'not-an-email'}, 'email'),
            ({'email': 'a@' + 'b' * 100 + '.com'}, 'email'),
            ({'password': 'short'}, 'password'),
            ({'password': 'x' * 101}, 'password'),
        ]
        with temporary_db(self.app):
            for override, field in cases:
                params = dict(_params())
                params.update(override)
                with self.assertRaises(exceptions.ValidationError) as ctx:
                    registration.register(MultiDict(params))
                self.assertIn(field, ctx.exception.errors)
            self.assertIsNone(directory.get_by_username('alice'))

    @mock.patch(f'{registration.__name__}.mailer')
    def test_mail_failure(self, mock_mailer):
        """A failure to send email does not fail registration."""
        mock_mailer.send.side_effect = ConnectionRefusedError('no relay')
        with temporary_db(self.app):
            with self.assertLogs(registration.__name__, level='ERROR'):
                data, code, _ = registration.register(_params())
            self.assertEqual(code, 201)
            self.assertIsNotNone(directory.get_by_username('alice'))

    @mock.patch(f'{registration.__name__}.mailer')
    def test_verification_link_logged_in_development(self, mock_mailer):
        """In development, the verification link is written to the log."""
        with temporary_db(self.app):
            with self.assertLogs(registration.__name__, level='INFO') as logs:
                registration.register(_params())
        self.assertTrue(any('https://hypercloud.test/v1/verify?' in line
                            for line in logs.output))


class TestClosedRegistration(TestCase):
    """Registration restricted to an allow-list."""

    def setUp(self):
        self.app = make_app(REGISTRATION_OPEN=False,
                            REGISTRATION_ALLOWED=['x@example.com'])

    @mock.patch(f'{registration.__name__}.mailer')
    @mock.patch(f'{registration.__name__}.locks')
    @mock.patch(f'{registration.__name__}.credentials')
    def test_not_allowed(self, mock_credentials, mock_locks, mock_mailer):
        """Addresses not on the list are refused before any other work."""
        with temporary_db(self.app):
            with self.assertRaises(exceptions.PolicyError) as ctx:
                registration.register(_params('carol', 'y@example.com'))
            self.assertEqual(ctx.exception.tag, 'emailNotWhitelisted')
            self.assertIsNone(directory.get_by_username('carol'))
        self.assertFalse(mock_locks.holding.called)
        self.assertFalse(mock_credentials.hash_password.called)
        self.assertFalse(mock_mailer.send.called)

    @mock.patch(f'{registration.__name__}.mailer')
    def test_allowed(self, mock_mailer):
        """Addresses on the list may register."""
        with temporary_db(self.app):
            _, code, _ = registration.register(_params('carol', 'x@example.com'))
            self.assertEqual(code, 201)

    def test_status(self):
        """Registration status reflects configuration."""
        with self.app.app_context():
            data, code, _ = registration.registration_status()
        self.assertEqual(data, {'isOpen': False})


class TestConcurrentRegistration(TestCase):
    """Registrations racing for the same username."""

    @mock.patch(f'{registration.__name__}.mailer')
    def test_same_username(self, mock_mailer):
        """At most one of two simultaneous registrations succeeds."""
        app = make_app()
        results = []
        start = threading.Barrier(2)

        def register(email):
            with app.app_context():
                start.wait()
                try:
                    registration.register(_params('alice', email))
                    results.append('ok')
                except exceptions.ConflictError as e:
                    results.append(e.tag)

        with temporary_db(app):
            threads = [
                threading.Thread(target=register, args=(email,))
                for email in ['a@example.com', 'b@example.com']
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(30)

            self.assertEqual(sorted(results), ['ok', 'usernameNotAvailable'])
            self.assertEqual(
                len([email for email in ['a@example.com', 'b@example.com']
                     if directory.is_email_taken(email)]),
                1
            )


class TestVerificationLink(TestCase):
    """Links in verification emails."""

    def test_link(self):
        """The link names the user and the nonce."""
        app = make_app(HOSTNAME='example.com')
        with app.app_context():
            link = registration.verification_link('alice', 'ab12')
        self.assertEqual(link,
                         'https://example.com/v1/verify?username=alice&nonce=ab12')

    def test_container_hostname_ignored(self):
        """The ambient ``HOSTNAME`` (a container ID) is not the public host."""
        environ = {'HOSTNAME': 'a1b2c3d4e5f6',
                   'SERVER_HOSTNAME': 'accounts.example.com'}
        with mock.patch.dict(os.environ, environ):
            app = create_web_app()
        with app.app_context():
            link = registration.verification_link('alice', 'ab12')
        self.assertEqual(
            link,
            'https://accounts.example.com/v1/verify?username=alice&nonce=ab12'
        )
        self.assertNotIn('a1b2c3d4e5f6', link)


class TestUnresponsiveRelay(TestCase):
    """The SMTP relay accepts connections but never answers."""

    def test_register_does_not_wait_for_mail(self):
        """Registration completes while delivery is still pending."""
        results = []
        with silent_relay() as port:
            app = make_app(MAIL_BACKEND='smtp', SMTP_HOST='127.0.0.1',
                           SMTP_PORT=str(port), SMTP_TIMEOUT='2')
            with temporary_db(app):

                def register():
                    with app.app_context():
                        results.append(registration.register(_params()))

                thread = threading.Thread(target=register)
                thread.start()
                thread.join(5)
                self.assertFalse(thread.is_alive())
                self.assertEqual(results[0][1], 201)
                self.assertIsNotNone(directory.get_by_username('alice'))
