"""Application factory for the hypercloud accounts app."""

from flask import Flask

from .app_logging import setup_logger
from .auth import Auth
from .routes import api
from .services import directory, mailer, proofs


def create_web_app() -> Flask:
    """Initialize and configure the accounts application."""
    app = Flask('hypercloud')
    app.config.from_pyfile('config.py')
    setup_logger(app.config['LOGLEVEL'])

    directory.init_app(app)
    mailer.init_app(app)
    proofs.init_app(app)

    app.register_blueprint(api.blueprint)
    Auth(app)   # Handles sessions.

    if app.config['CREATE_DB']:
        with app.app_context():
            directory.create_all()

    return app
