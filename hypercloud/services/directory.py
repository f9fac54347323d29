"""
The user directory: persistence for :class:`.domain.UserRecord`.

Each call runs in its own transaction and commits before returning, so a
read made after a write in the same process always sees that write. The
directory enforces no uniqueness of its own; see
:mod:`hypercloud.controllers.registration`.
"""

from typing import Any, Generator, Optional
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
import logging
import uuid

from pytz import UTC
from flask import Flask, current_app
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.orm.session import Session

from .. import domain
from ..exceptions import Unavailable
from .models import Base, DBUser

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'hypercloud.directory'


class NoSuchUser(RuntimeError):
    """A full update was attempted on a record that does not exist."""


class UserDirectory(object):
    """
    SQLAlchemy-backed store of user records.

    Sessions are thread-local (:func:`scoped_session`), so one directory can
    be shared by every request thread in the process.
    """

    def __init__(self, uri: str) -> None:
        """Bind to the database at ``uri``."""
        connect_args = (
            {'check_same_thread': False} if uri.startswith('sqlite') else {}
        )
        logger.debug('New user directory at %s', uri.split('@')[-1])
        self.engine = create_engine(uri, connect_args=connect_args)
        self._sessions = scoped_session(
            sessionmaker(bind=self.engine, expire_on_commit=False)
        )

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Context manager for database transaction."""
        session = self._sessions()
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                session.commit()
        except OperationalError as e:
            logger.error('Directory unavailable, rolling back: %s', str(e))
            session.rollback()
            raise Unavailable('User directory unavailable') from e
        except Exception as e:
            logger.error('Commit failed, rolling back: %s', str(e))
            session.rollback()
            raise
        finally:
            self._sessions.remove()

    def create_all(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        """Drop all tables in the database."""
        Base.metadata.drop_all(self.engine)

    def get_by_username(self, username: str) -> Optional[domain.UserRecord]:
        """Get the record with ``username``, if there is one."""
        return self._get_one(DBUser.username == username)

    def get_by_email(self, email: str) -> Optional[domain.UserRecord]:
        """Get the record with ``email``, if there is one."""
        return self._get_one(DBUser.email == email)

    def get_by_id(self, user_id: str) -> Optional[domain.UserRecord]:
        """Get the record with ``user_id``, if there is one."""
        return self._get_one(DBUser.user_id == user_id)

    def is_username_taken(self, username: str) -> bool:
        """Determine whether a user with a particular username exists."""
        return self.get_by_username(username) is not None

    def is_email_taken(self, email: str) -> bool:
        """Determine whether a user with a particular address exists."""
        return self.get_by_email(email) is not None

    def create(self, record: domain.UserRecord) -> domain.UserRecord:
        """
        Add a new record.

        A ``user_id`` and ``created_at`` are assigned if the record does not
        already have them.

        Returns
        -------
        :class:`.domain.UserRecord`
            The record as stored.

        """
        if record.user_id is None:
            record = record._replace(user_id=str(uuid.uuid4()))
        if record.created_at is None:
            record = record._replace(created_at=datetime.now(tz=UTC))
        with self.transaction() as session:
            db_user = DBUser(user_id=record.user_id)
            _update_from_domain(db_user, record)
            session.add(db_user)
        logger.debug('Created user record %s', record.user_id)
        return record

    def put(self, record: domain.UserRecord) -> domain.UserRecord:
        """
        Replace a stored record with ``record``.

        Raises
        ------
        :class:`ValueError`
            Raised if ``record`` has no ``user_id``.
        :class:`NoSuchUser`
            Raised if there is no stored record with that ``user_id``.

        """
        if record.user_id is None:
            raise ValueError('User ID must be set')
        with self.transaction() as session:
            db_user = session.get(DBUser, record.user_id)
            if db_user is None:
                raise NoSuchUser(f'No user {record.user_id}')
            _update_from_domain(db_user, record)
            session.add(db_user)
        return record

    def _get_one(self, criterion: Any) -> Optional[domain.UserRecord]:
        with self.transaction() as session:
            db_user = session.query(DBUser).filter(criterion).first()
            if db_user is None:
                return None
            return _to_domain(db_user)


def _update_field_if_changed(obj: Any, field: str, update_with: Any) -> None:
    if getattr(obj, field) != update_with:
        setattr(obj, field, update_with)


def _update_from_domain(db_user: DBUser, record: domain.UserRecord) -> None:
    _update_field_if_changed(db_user, 'username', record.username)
    _update_field_if_changed(db_user, 'email', record.email)
    _update_field_if_changed(db_user, 'password_hash', record.password_hash)
    _update_field_if_changed(db_user, 'password_salt', record.password_salt)
    _update_field_if_changed(db_user, 'email_verification_nonce',
                             record.email_verification_nonce)
    _update_field_if_changed(db_user, 'is_email_verified',
                             record.is_email_verified)
    _update_field_if_changed(db_user, 'scopes', ' '.join(record.scopes))
    _update_field_if_changed(db_user, 'profile_url', record.profile_url)
    _update_field_if_changed(db_user, 'profile_verify_token',
                             record.profile_verify_token)
    _update_field_if_changed(db_user, 'is_profile_dat_verified',
                             record.is_profile_dat_verified)
    _update_field_if_changed(db_user, 'created_at', record.created_at)


def _to_domain(db_user: DBUser) -> domain.UserRecord:
    created_at = db_user.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)    # SQLite drops tzinfo.
    return domain.UserRecord(
        user_id=db_user.user_id,
        username=db_user.username,
        email=db_user.email,
        password_hash=db_user.password_hash,
        password_salt=db_user.password_salt,
        email_verification_nonce=db_user.email_verification_nonce,
        is_email_verified=bool(db_user.is_email_verified),
        scopes=db_user.scopes.split() if db_user.scopes else [],
        profile_url=db_user.profile_url,
        profile_verify_token=db_user.profile_verify_token,
        is_profile_dat_verified=bool(db_user.is_profile_dat_verified),
        created_at=created_at
    )


def init_app(app: Flask) -> None:
    """Set configuration defaults for an application instance."""
    app.config.setdefault('DIRECTORY_DATABASE_URI', 'sqlite:///hypercloud.db')


def get_directory(app: Optional[Flask] = None) -> UserDirectory:
    """Get the directory for ``app``, creating it on first use."""
    if app is None:
        app = current_app._get_current_object()     # type: ignore
    if EXTENSION_KEY not in app.extensions:
        app.extensions[EXTENSION_KEY] = \
            UserDirectory(app.config['DIRECTORY_DATABASE_URI'])
    directory: UserDirectory = app.extensions[EXTENSION_KEY]
    return directory


def current_directory() -> UserDirectory:
    """Get the :class:`UserDirectory` for the current application."""
    return get_directory()


@wraps(UserDirectory.create_all)
def create_all() -> None:
    """Create all tables in the database."""
    current_directory().create_all()


@wraps(UserDirectory.drop_all)
def drop_all() -> None:
    """Drop all tables in the database."""
    current_directory().drop_all()


@wraps(UserDirectory.get_by_username)
def get_by_username(username: str) -> Optional[domain.UserRecord]:
    """Get the record with ``username``, if there is one."""
    return current_directory().get_by_username(username)


@wraps(UserDirectory.get_by_email)
def get_by_email(email: str) -> Optional[domain.UserRecord]:
    """Get the record with ``email``, if there is one."""
    return current_directory().get_by_email(email)


@wraps(UserDirectory.get_by_id)
def get_by_id(user_id: str) -> Optional[domain.UserRecord]:
    """Get the record with ``user_id``, if there is one."""
    return current_directory().get_by_id(user_id)


@wraps(UserDirectory.is_username_taken)
def is_username_taken(username: str) -> bool:
    """Determine whether a user with a particular username exists."""
    return current_directory().is_username_taken(username)


@wraps(UserDirectory.is_email_taken)
def is_email_taken(email: str) -> bool:
    """Determine whether a user with a particular address exists."""
    return current_directory().is_email_taken(email)


@wraps(UserDirectory.create)
def create(record: domain.UserRecord) -> domain.UserRecord:
    """Add a new record."""
    return current_directory().create(record)


@wraps(UserDirectory.put)
def put(record: domain.UserRecord) -> domain.UserRecord:
    """Replace a stored record."""
    return current_directory().put(record)
