"""
Tests for distributed locking utilities.

Tests the DistributedLock class which provides Redis-based mutual exclusion
across processes, and the per-reservation hold lock built on it.
"""

from unittest.mock import MagicMock, patch

import pytest
from django.test import override_settings

from payments.exceptions import LockAcquisitionError
from payments.locks import DistributedLock, hold_lock, hold_lock_key


@pytest.fixture
def mock_redis():
    """Mock Redis connection for unit tests."""
    with patch("payments.locks.get_redis_connection") as mock_get_conn:
        redis_instance = MagicMock()
        mock_get_conn.return_value = redis_instance
        yield redis_instance


class TestDistributedLock:
    """Tests for DistributedLock class."""

    def test_acquire_success(self, mock_redis):
        """Should acquire lock when available."""
        mock_redis.set.return_value = True

        lock = DistributedLock("test:key", ttl=30, blocking=False)
        result = lock.acquire()

        assert result is True
        assert lock._token is not None
        call_args = mock_redis.set.call_args
        assert call_args[0][0] == "lock:test:key"
        assert call_args[1]["nx"] is True
        assert call_args[1]["ex"] == 30

    def test_acquire_generates_unique_token(self, mock_redis):
        mock_redis.set.return_value = True

        lock1 = DistributedLock("test:key1", ttl=30, blocking=False)
        lock2 = DistributedLock("test:key2", ttl=30, blocking=False)
        lock1.acquire()
        lock2.acquire()

        assert lock1._token is not None
        assert lock1._token != lock2._token

    def test_acquire_non_blocking_raises_when_held(self, mock_redis):
        """Non-blocking mode should raise immediately if lock unavailable."""
        mock_redis.set.return_value = False

        lock = DistributedLock("test:key", ttl=30, blocking=False)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert "already held" in str(exc_info.value)
        assert exc_info.value.details["key"] == "lock:test:key"
        assert lock._token is None

    def test_acquire_blocking_waits_and_acquires(self, mock_redis):
        """Blocking mode should wait and eventually acquire."""
        mock_redis.set.side_effect = [False, False, True]

        lock = DistributedLock("test:key", ttl=30, blocking=True, timeout=1.0)

        assert lock.acquire() is True
        assert mock_redis.set.call_count == 3

    def test_acquire_blocking_timeout_raises_error(self, mock_redis):
        mock_redis.set.return_value = False

        lock = DistributedLock("test:key", ttl=30, blocking=True, timeout=0.1)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert "within 0.1s" in str(exc_info.value)
        assert exc_info.value.details["timeout"] == 0.1
        assert lock._token is None

    def test_release_success(self, mock_redis):
        mock_redis.set.return_value = True
        mock_redis.eval.return_value = 1

        lock = DistributedLock("test:key", ttl=30, blocking=False)
        lock.acquire()

        assert lock.release() is True
        assert lock._token is None
        mock_redis.eval.assert_called_once()

    def test_release_only_if_owned(self, mock_redis):
        """Should only release lock if we own it (token matches)."""
        mock_redis.set.return_value = True
        mock_redis.eval.return_value = 0

        lock = DistributedLock("test:key", ttl=30, blocking=False)
        lock.acquire()

        assert lock.release() is False

    def test_release_without_acquire_returns_false(self, mock_redis):
        lock = DistributedLock("test:key", ttl=30, blocking=False)

        assert lock.release() is False
        mock_redis.eval.assert_not_called()

    def test_context_manager_releases_on_exception(self, mock_redis):
        mock_redis.set.return_value = True
        mock_redis.eval.return_value = 1

        with pytest.raises(ValueError, match="Test error"):
            with DistributedLock("test:key", ttl=30):
                raise ValueError("Test error")

        mock_redis.eval.assert_called_once()


class TestDistributedLockExclusion:
    """Mutual exclusion against the in-memory Redis from conftest."""

    def test_same_key_is_exclusive(self, fake_redis):
        lock1 = DistributedLock("hold:abc", ttl=5, blocking=False)
        lock2 = DistributedLock("hold:abc", ttl=5, blocking=False)

        with lock1:
            with pytest.raises(LockAcquisitionError):
                lock2.acquire()

        # Released, so the second actor can now take it
        assert lock2.acquire() is True
        lock2.release()

    def test_different_keys_not_exclusive(self, fake_redis):
        lock1 = DistributedLock("hold:1", ttl=5, blocking=False)
        lock2 = DistributedLock("hold:2", ttl=5, blocking=False)

        with lock1, lock2:
            assert set(fake_redis.store) == {"lock:hold:1", "lock:hold:2"}

    def test_expired_owner_cannot_release_new_owner(self, fake_redis):
        lock1 = DistributedLock("hold:abc", ttl=5, blocking=False)
        lock1.acquire()
        # Simulate TTL expiry followed by another actor taking the lock
        del fake_redis.store["lock:hold:abc"]
        lock2 = DistributedLock("hold:abc", ttl=5, blocking=False)
        lock2.acquire()

        assert lock1.release() is False
        assert fake_redis.store["lock:hold:abc"] == lock2._token


class TestHoldLock:
    def test_key_is_per_reservation(self):
        assert hold_lock_key("r-1") == "hold:r-1"

    @override_settings(HOLD_LOCK_TTL_SECONDS=42, HOLD_LOCK_TIMEOUT_SECONDS=1.5)
    def test_uses_settings(self):
        lock = hold_lock("r-1")

        assert lock.key == "lock:hold:r-1"
        assert lock.ttl == 42
        assert lock.timeout == 1.5
        assert lock.blocking is True

    def test_non_blocking(self):
        assert hold_lock("r-1", blocking=False).blocking is False
