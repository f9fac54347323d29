"""
Hypercloud user accounts.

This package implements the account lifecycle for a hosting service whose
users own peer-to-peer ("dat") content archives: registration with globally
unique usernames and email addresses, password hashing, email verification
with a single-use nonce, and stateless signed session tokens.

Quick start
-----------

.. code-block:: python

   from hypercloud.factory import create_web_app

   app = create_web_app()

Configuration is read from the environment; see :mod:`hypercloud.config`.
The JSON API is served under ``/v1`` (see :mod:`hypercloud.routes.api`).

Locks
-----
Uniqueness is enforced by process-local locks (:mod:`hypercloud.locks`),
not by the database. Run a single process per user directory.
"""
