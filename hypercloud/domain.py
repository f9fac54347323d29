"""Defines the core data structures for hypercloud accounts."""

from typing import NamedTuple, List, Optional
from datetime import datetime


class UserRecord(NamedTuple):
    """
    A user account.

    Records are immutable; flows derive updated records with
    :meth:`UserRecord._replace` and hand them back to the directory.
    """

    username: str
    """Unique, 3 to 16 alphanumeric characters. Never changes."""

    email: str
    """Unique email address, at most 100 characters."""

    password_hash: str
    """Hex-encoded scrypt digest of the password."""

    password_salt: str
    """Hex-encoded salt used to produce :attr:`password_hash`."""

    user_id: Optional[str] = None
    """Assigned by the user directory when the record is created."""

    email_verification_nonce: Optional[str] = None
    """
    64 hex characters while the email address is unverified.

    Cleared, permanently, by the first successful verification.
    """

    is_email_verified: bool = False

    scopes: List[str] = []
    """Capability labels. ``user`` is added once the email is verified."""

    profile_url: Optional[str] = None
    """Normalized ``dat://`` URL of the user's profile archive."""

    profile_verify_token: Optional[str] = None
    """Proof token the user publishes to show they own the profile archive."""

    is_profile_dat_verified: bool = False

    created_at: Optional[datetime] = None

    def with_scope(self, scope: str) -> 'UserRecord':
        """Get a copy of this record that includes ``scope``."""
        if scope in self.scopes:
            return self
        return self._replace(scopes=list(self.scopes) + [scope])
