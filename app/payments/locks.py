"""
Distributed locking for hold operations.

A hold can be moved by two independent actors: the capture scheduler and
cancellation settlement. Both take the same per-reservation Redis lock
around "call Stripe, then write the hold", so neither can act on a hold
the other is in the middle of moving.

Usage:
    from payments.locks import hold_lock

    with hold_lock(reservation.id):
        hold = PaymentHold.objects.get(reservation=reservation)
        ...

The lock only serializes the actors; the row itself is still guarded by
payments.services.hold_transitions.transition_hold.
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from django.conf import settings

from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Ownership is tracked by a random token so one process can never release
    a lock that expired and was re-acquired by another.

    Example:
        with DistributedLock("hold:1b4e...", ttl=60):
            capture()

        lock = DistributedLock("hold:1b4e...", blocking=False)
        try:
            lock.acquire()
        except LockAcquisitionError:
            ...  # someone else is settling this reservation

    Args:
        key: Lock identifier (will be prefixed with "lock:")
        ttl: Lock TTL in seconds (auto-releases after this time)
        blocking: If True, acquire() waits until lock is available
        timeout: Maximum wait time in seconds (only if blocking=True)
    """

    # Lua script for atomic check-and-delete (release)
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL_SECONDS = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Returns:
            True once the lock is held

        Raises:
            LockAcquisitionError: If the lock is held elsewhere (non-blocking)
                or could not be taken within timeout (blocking)
        """
        self._token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            deadline = time.monotonic() + self.timeout
            while time.monotonic() < deadline:
                if self._try_acquire(redis):
                    return True
                time.sleep(self.POLL_INTERVAL_SECONDS)

            self._token = None
            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis):
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        return True

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Returns:
            True if lock was released, False if we didn't hold it
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


def hold_lock_key(reservation_id: Any) -> str:
    """Lock key shared by every actor that moves a reservation's hold."""
    return f"hold:{reservation_id}"


def hold_lock(reservation_id: Any, blocking: bool = True) -> DistributedLock:
    """
    Build the per-reservation hold lock from settings.

    Args:
        reservation_id: Reservation whose hold is about to move
        blocking: Wait up to HOLD_LOCK_TIMEOUT_SECONDS when True; fail
            immediately when False (used by the batch schedulers so one
            contended reservation never stalls a whole run)
    """
    return DistributedLock(
        hold_lock_key(reservation_id),
        ttl=settings.HOLD_LOCK_TTL_SECONDS,
        blocking=blocking,
        timeout=settings.HOLD_LOCK_TIMEOUT_SECONDS,
    )


__all__ = [
    "DistributedLock",
    "hold_lock",
    "hold_lock_key",
]
