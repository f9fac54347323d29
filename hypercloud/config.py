"""Flask configuration."""
import secrets
import os

#################### General config for app ####################
ENV = os.environ.get('ENV', 'development')
"""Deployment environment. Anything other than ``development`` is treated as
production-like (e.g. secure session cookies)."""

HOSTNAME = os.environ.get('SERVER_HOSTNAME', 'localhost:8080')
"""Public host name, used to build links in outbound email.

Read from ``SERVER_HOSTNAME``. The ``HOSTNAME`` environment variable is
usually a container ID, and is ignored."""

BRANDNAME = os.environ.get('BRANDNAME', 'Hypercloud')

#################### Registration ####################
REGISTRATION_OPEN = bool(int(os.environ.get('REGISTRATION_OPEN', '1')))
"""If false, only addresses in ``REGISTRATION_ALLOWED`` may register."""

REGISTRATION_ALLOWED = [
    email.strip() for email
    in os.environ.get('REGISTRATION_ALLOWED', '').split(',')
    if email.strip()
]
"""Comma-separated allow-list of email addresses for closed registration."""

#################### Sessions ####################
JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign session tokens."""

JWT_PREVIOUS_SECRETS = [
    secret for secret
    in os.environ.get('JWT_PREVIOUS_SECRETS', '').split(',') if secret
]
"""Retired signing secrets whose tokens are still honored until removed.

Rotate by moving the current ``JWT_SECRET`` here and setting a new one."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '604800')
"""Session token lifetime, in seconds."""

AUTH_SESSION_COOKIE_NAME = os.environ.get('AUTH_SESSION_COOKIE_NAME', 'sess')
AUTH_SESSION_COOKIE_SECURE = bool(int(os.environ.get(
    'AUTH_SESSION_COOKIE_SECURE',
    '0' if ENV == 'development' else '1'
)))

#################### User directory ####################
DIRECTORY_DATABASE_URI = os.environ.get('DIRECTORY_DATABASE_URI',
                                        'sqlite:///hypercloud.db')
"""SQLAlchemy URI for the user directory."""

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))

#################### Mail ####################
MAIL_BACKEND = os.environ.get('MAIL_BACKEND',
                              'log' if ENV == 'development' else 'smtp')
"""One of ``smtp`` or ``log``."""

MAIL_FROM = os.environ.get('MAIL_FROM', f'noreply@{HOSTNAME.split(":")[0]}')
SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
SMTP_PORT = os.environ.get('SMTP_PORT', '25')
SMTP_TIMEOUT = os.environ.get('SMTP_TIMEOUT', '10')
"""Seconds to wait on the SMTP relay before giving up on a message."""

MAIL_WORKERS = os.environ.get('MAIL_WORKERS', '2')
"""Background threads delivering outbound mail."""

#################### Profile proofs ####################
PROOF_SECRET = os.environ.get('PROOF_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign profile ownership proofs."""

#################### Minor configs ##############################
LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')

VERSION = '0.1.0'
