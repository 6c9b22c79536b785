"""Reference-counted lifecycle manager for the shared audio context."""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

from ..errors import ResourceCreationFailed
from .engine import AudioEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _close_resource(resource) -> None:
    resource.close()


class ResourceArbiter(Generic[T]):
    """Creates the shared resource on first demand and tears it down with the last user.

    One arbiter is constructed by the application and passed to every component that
    needs the audio context, so the resource's lifetime is visible at each call site.
    Nested holders are counted, not serialized.
    """

    def __init__(self,
                 factory: Callable[[], T] = AudioEngine,
                 teardown: Callable[[T], None] = _close_resource):
        """Initialize arbiter.

        Args:
            factory: Creates a fresh resource instance
            teardown: Releases OS-level handles held by a resource
        """
        self._factory = factory
        self._teardown = teardown
        self._resource: Optional[T] = None
        self._ref_count = 0
        self._created_count = 0
        self._lock = threading.Lock()

    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def is_live(self) -> bool:
        return self._resource is not None

    @property
    def created_count(self) -> int:
        """Number of resource instances created over the arbiter's lifetime."""
        return self._created_count

    def acquire(self) -> T:
        """Return the live resource, creating one if none exists.

        Raises:
            ResourceCreationFailed: if the factory raises
        """
        with self._lock:
            if self._resource is None:
                try:
                    self._resource = self._factory()
                except Exception as e:
                    raise ResourceCreationFailed(f"Failed to create audio context: {e}") from e
                self._created_count += 1
                logger.debug(f"Created shared audio context #{self._created_count}")
            self._ref_count += 1
            logger.debug(f"Audio context acquired (refcount={self._ref_count})")
            return self._resource

    def release(self, handle: Optional[T] = None) -> None:
        """Drop one reference; the last release tears the resource down.

        Args:
            handle: Resource previously returned by acquire(). A stale handle
                    from an already torn-down instance only logs a warning.
        """
        with self._lock:
            if handle is not None and handle is not self._resource:
                logger.warning("Release of a stale audio context handle ignored")
                return

            if self._ref_count <= 0:
                logger.warning("Audio context released more times than acquired")
                self._ref_count = 0
            else:
                self._ref_count -= 1

            logger.debug(f"Audio context released (refcount={self._ref_count})")
            if self._ref_count == 0 and self._resource is not None:
                self._teardown_locked()

    @contextmanager
    def scoped(self) -> Iterator[T]:
        """Acquire the resource for the duration of a ``with`` block."""
        handle = self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)

    def with_resource(self, fn: Callable[[T], R]) -> R:
        """Invoke ``fn`` with the resource, releasing it on every exit path."""
        with self.scoped() as handle:
            return fn(handle)

    def force_teardown(self) -> None:
        """Destroy any live resource regardless of outstanding holders.

        Only for full application shutdown.
        """
        with self._lock:
            if self._ref_count > 0:
                logger.warning(f"Forcing audio context teardown with {self._ref_count} holder(s)")
            self._ref_count = 0
            if self._resource is not None:
                self._teardown_locked()

    def _teardown_locked(self) -> None:
        resource = self._resource
        self._resource = None
        try:
            self._teardown(resource)
            logger.debug("Shared audio context torn down")
        except Exception as e:
            logger.error(f"Error tearing down audio context: {e}")
