"""
Process-local keyed locks.

The user directory has no transactions or unique constraints, so compound
check-then-act sequences (is this username taken? then create it) are
serialized here, per logical resource. Keys look like ``username:alice`` or
``email:alice@example.com``; unrelated keys never contend.

Waiters on a key are granted the lock in arrival order. A waiting thread
blocks on an :class:`threading.Event`; nothing polls.

There is no timeout and no expiry. A handle that is never released blocks
every later acquirer of that key for the life of the process, so callers
should always use :func:`holding`, which releases on every exit path:

.. code-block:: python

   from hypercloud import locks

   with locks.holding(f'username:{username}', f'email:{email}'):
       ...

Locks are not shared between processes or hosts.
"""

from typing import ContextManager, Deque, Dict, Generator, Iterable, List
from collections import deque
from contextlib import contextmanager
import logging
import threading

from .exceptions import LockReleaseError

logger = logging.getLogger(__name__)


class LockHandle(object):
    """Ownership of one key. Released exactly once."""

    def __init__(self, key: str) -> None:
        self.key = key
        self.released = False
        self._granted = threading.Event()

    def __repr__(self) -> str:
        state = 'released' if self.released else 'held'
        return f'<LockHandle {self.key!r} {state}>'


class LockManager(object):
    """A table of FIFO wait queues, one per key."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._queues: Dict[str, Deque[LockHandle]] = {}

    def acquire(self, key: str) -> LockHandle:
        """
        Wait until ``key`` is free, then take it.

        Parameters
        ----------
        key : str

        Returns
        -------
        :class:`LockHandle`
            Must be passed to :meth:`release` exactly once.

        """
        handle = LockHandle(key)
        with self._mutex:
            queue = self._queues.setdefault(key, deque())
            queue.append(handle)
            if len(queue) == 1:
                handle._granted.set()
            else:
                logger.debug('Waiting for lock %s (%i ahead)', key,
                             len(queue) - 1)
        try:
            handle._granted.wait()
        except BaseException:
            self._abandon(handle)
            raise
        return handle

    def _abandon(self, handle: LockHandle) -> None:
        """Drop a handle whose wait was interrupted, granted or not."""
        with self._mutex:
            handle.released = True
            queue = self._queues.get(handle.key)
            if not queue or handle not in queue:
                return
            if queue[0] is handle:
                queue.popleft()
                if queue:
                    queue[0]._granted.set()
            else:
                queue.remove(handle)
            if not queue:
                del self._queues[handle.key]

    def release(self, handle: LockHandle) -> None:
        """
        Give up ownership and wake the next waiter, if any.

        Raises
        ------
        :class:`.LockReleaseError`
            Raised if ``handle`` was already released.

        """
        with self._mutex:
            if handle.released:
                raise LockReleaseError(f'Lock {handle.key} already released')
            queue = self._queues.get(handle.key)
            if not queue or queue[0] is not handle:
                raise LockReleaseError(f'Lock {handle.key} is not held')
            handle.released = True
            queue.popleft()
            if queue:
                queue[0]._granted.set()
            else:
                del self._queues[handle.key]

    def acquire_many(self, keys: Iterable[str]) -> List[LockHandle]:
        """
        Acquire several keys in canonical (sorted) order.

        Two flows that need the same pair of keys always take them in the
        same order, whatever order their callers listed them in, so they
        cannot deadlock against each other.
        """
        handles: List[LockHandle] = []
        try:
            for key in sorted(set(keys)):
                handles.append(self.acquire(key))
        except BaseException:
            for handle in reversed(handles):
                self.release(handle)
            raise
        return handles

    @contextmanager
    def holding(self, *keys: str) -> Generator[List[LockHandle], None, None]:
        """Hold ``keys`` for the duration of the block."""
        handles = self.acquire_many(keys)
        try:
            yield handles
        finally:
            for handle in reversed(handles):
                self.release(handle)

    def is_locked(self, key: str) -> bool:
        """Determine whether ``key`` is currently held."""
        with self._mutex:
            return key in self._queues

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._mutex:
            return len(self._queues)


_manager = LockManager()


def current_manager() -> LockManager:
    """Get the process-wide :class:`LockManager`."""
    return _manager


def acquire(key: str) -> LockHandle:
    """Acquire ``key`` on the process-wide manager."""
    return current_manager().acquire(key)


def release(handle: LockHandle) -> None:
    """Release ``handle`` on the process-wide manager."""
    current_manager().release(handle)


def acquire_many(keys: Iterable[str]) -> List[LockHandle]:
    """Acquire ``keys`` in canonical order on the process-wide manager."""
    return current_manager().acquire_many(keys)


def holding(*keys: str) -> ContextManager[List[LockHandle]]:
    """Hold ``keys`` on the process-wide manager for the duration of a block."""
    return current_manager().holding(*keys)
