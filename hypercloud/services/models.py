"""User directory database models."""

from sqlalchemy import Boolean, Column, DateTime, String, Text, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DBUser(Base):  # type: ignore
    """
    User account table.

    Neither ``username`` nor ``email`` carries a unique constraint. Uniqueness
    is enforced by the registration flow, under :mod:`hypercloud.locks`.

    +--------------------------+--------------+------+-----+---------+
    | Field                    | Type         | Null | Key | Default |
    +--------------------------+--------------+------+-----+---------+
    | user_id                  | varchar(36)  | NO   | PRI | NULL    |
    | username                 | varchar(16)  | NO   | MUL | NULL    |
    | email                    | varchar(100) | NO   | MUL | NULL    |
    | password_hash            | varchar(128) | NO   |     | NULL    |
    | password_salt            | varchar(64)  | NO   |     | NULL    |
    | email_verification_nonce | varchar(64)  | YES  |     | NULL    |
    | is_email_verified        | tinyint(1)   | NO   |     | 0       |
    | scopes                   | text         | NO   |     | ''      |
    | profile_url              | varchar(255) | YES  |     | NULL    |
    | profile_verify_token     | text         | YES  |     | NULL    |
    | is_profile_dat_verified  | tinyint(1)   | NO   |     | 0       |
    | created_at               | datetime     | NO   |     | NULL    |
    +--------------------------+--------------+------+-----+---------+
    """

    __tablename__ = 'users'

    user_id = Column(String(36), primary_key=True)
    username = Column(String(16), nullable=False, index=True)
    email = Column(String(100), nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    password_salt = Column(String(64), nullable=False)
    email_verification_nonce = Column(String(64), nullable=True)
    is_email_verified = Column(Boolean, nullable=False,
                               server_default=text('0'))
    scopes = Column(Text, nullable=False, server_default=text("''"))
    """Space-delimited scope labels."""
    profile_url = Column(String(255), nullable=True)
    profile_verify_token = Column(Text, nullable=True)
    is_profile_dat_verified = Column(Boolean, nullable=False,
                                     server_default=text('0'))
    created_at = Column(DateTime(timezone=True), nullable=False)
