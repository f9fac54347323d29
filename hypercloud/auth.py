"""Attaches the caller's session to each request."""

from typing import Optional
import logging

from flask import Flask, request

from . import tokens

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Verifies the session token on each request, and attaches the result.

    The token is read from the session cookie or, failing that, from an
    ``Authorization: Bearer`` header. The outcome of
    :func:`.tokens.verify` is stored on ``request.auth``; it is a
    :class:`.tokens.Valid` only when the caller holds a good session.

    Intended for use in an application factory, for example:

    .. code-block:: python

       from flask import Flask
       from hypercloud.auth import Auth

       def create_web_app() -> Flask:
           app = Flask('hypercloud')
           app.config.from_object(config)
           Auth(app)
           return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Attach :meth:`.load_session` to the Flask app."""
        self.app = app
        self.app.config.setdefault('AUTH_SESSION_COOKIE_NAME', 'sess')
        self.app.before_request(self.load_session)

    def get_token(self) -> Optional[str]:
        """Find the session token presented with the current request."""
        cookie_name = self.app.config['AUTH_SESSION_COOKIE_NAME']
        token = request.cookies.get(cookie_name)
        if token:
            return token
        header = request.headers.get('Authorization', '')
        scheme, _, credential = header.partition(' ')
        if scheme.lower() == 'bearer' and credential.strip():
            return credential.strip()
        return None

    def load_session(self) -> None:
        """Verify any presented token and attach the result to the request."""
        session = tokens.verify(self.get_token())
        if not isinstance(session, tokens.Valid):
            logger.debug('No valid session: %s', session)
        request.auth = session
