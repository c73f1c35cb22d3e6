from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from django.conf import settings
from django.core.cache import cache

from journey_planner.exceptions import SessionBusyError
from journey_planner.services.types import PlannerSession

T = TypeVar("T")


class PlannerSessionStore:
    """Keeps one ``PlannerSession`` per browser session in the Django cache.

    ``update`` holds a per-session lock (``cache.add`` on a lock key) for the
    whole load/modify/save cycle, so concurrent requests and background
    effects for the same session apply one at a time.
    """

    key_prefix = "planner-session"

    def __init__(
        self,
        timeout: int | None = None,
        lock_timeout: float | None = None,
        lock_wait: float | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.PLANNER_SESSION_TTL_SECONDS
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else settings.PLANNER_SESSION_LOCK_SECONDS
        )
        self.lock_wait = lock_wait if lock_wait is not None else self.lock_timeout

    def load(self, session_id: str) -> PlannerSession:
        stored = cache.get(self._key(session_id))
        if isinstance(stored, PlannerSession):
            return stored
        return PlannerSession()

    def save(self, session_id: str, session: PlannerSession) -> None:
        cache.set(self._key(session_id), session, timeout=self.timeout)

    def clear(self, session_id: str) -> None:
        cache.delete(self._key(session_id))

    def update(
        self,
        session_id: str,
        apply: Callable[[PlannerSession], tuple[PlannerSession, T]],
    ) -> tuple[PlannerSession, T]:
        with self.locked(session_id):
            session, outcome = apply(self.load(session_id))
            self.save(session_id, session)
        return session, outcome

    @contextmanager
    def locked(self, session_id: str) -> Iterator[None]:
        lock_key = f"{self._key(session_id)}:lock"
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.lock_wait
        while not cache.add(lock_key, token, timeout=self.lock_timeout):
            if time.monotonic() >= deadline:
                raise SessionBusyError(f"Planner session {session_id} is busy")
            time.sleep(0.01)
        try:
            yield
        finally:
            if cache.get(lock_key) == token:
                cache.delete(lock_key)

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}:{session_id}"
