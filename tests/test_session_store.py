from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest

from journey_planner.exceptions import SessionBusyError
from journey_planner.services.session_store import PlannerSessionStore
from journey_planner.services.types import PlannerSession

SESSION_ID = "session-1"


def _append_marker(session: PlannerSession) -> tuple[PlannerSession, None]:
    return replace(session, search_query=session.search_query + "x"), None


def test_load_returns_fresh_session_when_missing() -> None:
    assert PlannerSessionStore(timeout=60).load(SESSION_ID) == PlannerSession()


def test_update_fails_while_another_update_holds_the_lock() -> None:
    store = PlannerSessionStore(timeout=60, lock_wait=0.05)

    with store.locked(SESSION_ID):
        with pytest.raises(SessionBusyError):
            store.update(SESSION_ID, _append_marker)

    session, _ = store.update(SESSION_ID, _append_marker)
    assert session.search_query == "x"


def test_concurrent_updates_are_not_lost() -> None:
    store = PlannerSessionStore(timeout=60)

    with ThreadPoolExecutor(max_workers=8) as executor:
        for future in [executor.submit(store.update, SESSION_ID, _append_marker) for _ in range(40)]:
            future.result()

    assert store.load(SESSION_ID).search_query == "x" * 40


def test_lock_is_per_session() -> None:
    store = PlannerSessionStore(timeout=60, lock_wait=0.05)

    with store.locked(SESSION_ID):
        session, _ = store.update("other-session", _append_marker)

    assert session.search_query == "x"
