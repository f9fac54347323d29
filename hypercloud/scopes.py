"""
Authorization scopes attached to user records and sessions.

Rather than refer to scopes by writing new str objects, these constants
should be imported and used.
"""

USER = 'user'
"""Granted when the account's email address has been verified."""

ADMIN = 'admin'
"""Service administrators. Granted out-of-band, never by these flows."""
