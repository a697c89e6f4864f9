"""Lock acquisition and release with randomised retries."""

from __future__ import annotations

import random
import time
from typing import Any, Callable, Protocol, TypeVar

from .log import get_default_logger

T = TypeVar("T")


class _Locker(Protocol):
    def acquire(self, lock_name: str, options: Any) -> tuple[bool, Any]: ...

    def release(self, handle: Any) -> None: ...


class LockerWithRetry:
    """Wrap a locker so that failed acquire and release calls are retried.

    Between attempts it waits a random whole number of seconds from 0 to 9.
    When all attempts fail, the last error is raised.
    """

    def __init__(
        self,
        locker: _Locker,
        max_acquire_attempts: int = 10,
        max_release_attempts: int = 10,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.locker = locker
        self.max_acquire_attempts = max_acquire_attempts
        self.max_release_attempts = max_release_attempts
        self._sleep = sleep
        self._random = random.Random()

    def acquire(self, lock_name: str, options: Any = None) -> tuple[bool, Any]:
        """Acquire ``lock_name``; return ``(acquired, handle)``."""

        def attempt() -> tuple[bool, Any]:
            try:
                return self.locker.acquire(lock_name, options)
            except Exception as err:
                get_default_logger().error("ERROR: unable to acquire lock %s: %s", lock_name, err)
                raise

        return self._with_retry(self.max_acquire_attempts, attempt)

    def release(self, handle: Any) -> None:
        """Release the lock held through ``handle``."""

        def attempt() -> None:
            try:
                self.locker.release(handle)
            except Exception as err:
                get_default_logger().error(
                    "ERROR: unable to release lock %s %s: %s",
                    getattr(handle, "uuid", ""),
                    getattr(handle, "lock_name", ""),
                    err,
                )
                raise

        # Release shares the acquire attempt limit.
        self._with_retry(self.max_acquire_attempts, attempt)

    def _with_retry(self, max_attempts: int, action: Callable[[], T]) -> T:
        attempt = 1
        while True:
            try:
                return action()
            except Exception:
                if attempt >= max_attempts:
                    raise
                seconds = self._random.randrange(10)
                get_default_logger().warn(
                    "Retrying in %d seconds (%d/%d) ...", seconds, attempt, max_attempts
                )
                self._sleep(seconds)
                attempt += 1