"""Testing helpers."""

from contextlib import contextmanager
import os
import socket
import tempfile

from flask import Flask

from ..factory import create_web_app
from ..services import directory


def make_app(**config) -> Flask:
    """Create an app with test-friendly configuration."""
    app = create_web_app()
    app.config['ENV'] = 'development'
    app.config['HOSTNAME'] = 'hypercloud.test'
    app.config['JWT_SECRET'] = 'foosecret'
    app.config['JWT_PREVIOUS_SECRETS'] = []
    app.config['PROOF_SECRET'] = 'barsecret'
    app.config['SESSION_DURATION'] = '3600'
    app.config['AUTH_SESSION_COOKIE_SECURE'] = False
    app.config['REGISTRATION_OPEN'] = True
    app.config['REGISTRATION_ALLOWED'] = []
    app.config['MAIL_BACKEND'] = 'log'
    app.config.update(config)
    return app


@contextmanager
def temporary_db(app: Flask, create: bool = True, drop: bool = True):
    """
    Point ``app`` at a throwaway sqlite database for the duration.

    The database is a file, so that every thread sees the same data.
    """
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, 'directory.db')
        app.config['DIRECTORY_DATABASE_URI'] = f'sqlite:///{path}'
        app.extensions.pop(directory.EXTENSION_KEY, None)
        with app.app_context():
            if create:
                directory.create_all()
            try:
                yield directory.current_directory()
            finally:
                if drop:
                    directory.drop_all()
                directory.current_directory().engine.dispose()
                app.extensions.pop(directory.EXTENSION_KEY, None)


@contextmanager
def silent_relay():
    """A listening socket that accepts connections but never answers."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        server.bind(('127.0.0.1', 0))
        server.listen(8)
        yield server.getsockname()[1]
    finally:
        server.close()
