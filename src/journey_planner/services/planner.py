from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from django.conf import settings

from journey_planner.exceptions import ConfigurationError, RouteFetchError
from journey_planner.services.directions import DirectionsClient
from journey_planner.services.geocoding import GeocodingClient
from journey_planner.services.session_store import PlannerSessionStore
from journey_planner.services.state_machine import (
    Effect,
    Event,
    FetchRoutes,
    NameResolved,
    ResolveName,
    RouteFetchFailed,
    RoutesReceived,
    SearchPlaces,
    SearchResultsReceived,
    ShowAlert,
    transition,
)
from journey_planner.services.types import PlannerSession

logger = logging.getLogger(__name__)

UNEXPECTED_FETCH_ERROR = "Failed to fetch route: unexpected error"


@dataclass(slots=True)
class DispatchResult:
    session: PlannerSession
    alerts: list[str] = field(default_factory=list)


class PlannerService:
    """Runs planner events through the state machine and performs their effects.

    ``dispatch`` applies the event and returns immediately with the resulting
    session (for example the loading state). Adapter calls run concurrently on
    the executor, each independent of the others, and their outcomes are fed
    back as events against the session as stored at that moment. A response
    for a request that has since been superseded is therefore dropped by the
    transition guards instead of overwriting newer state.
    """

    def __init__(
        self,
        directions_client: DirectionsClient | None = None,
        geocoding_client: GeocodingClient | None = None,
        store: PlannerSessionStore | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.directions_client = directions_client or DirectionsClient()
        self.geocoding_client = geocoding_client or GeocodingClient()
        self.store = store or PlannerSessionStore()
        self.executor = executor or ThreadPoolExecutor(
            max_workers=settings.PLANNER_WORKER_COUNT, thread_name_prefix="planner"
        )
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()

    def current(self, session_id: str) -> PlannerSession:
        return self.store.load(session_id)

    def dispatch(self, session_id: str, event: Event) -> DispatchResult:
        session, effects = self._apply(session_id, event)
        alerts = self._schedule(session_id, effects)
        return DispatchResult(session=session, alerts=alerts)

    def join(self, timeout: float | None = None) -> bool:
        """Wait until no effects are outstanding; False if the timeout expired."""
        while True:
            with self._pending_lock:
                pending = set(self._pending)
            if not pending:
                return True
            _, not_done = wait(pending, timeout=timeout)
            if not_done:
                return False

    def _apply(self, session_id: str, event: Event) -> tuple[PlannerSession, list[Effect]]:
        return self.store.update(session_id, lambda session: transition(session, event))

    def _schedule(self, session_id: str, effects: list[Effect]) -> list[str]:
        alerts: list[str] = []
        for effect in effects:
            if isinstance(effect, ShowAlert):
                alerts.append(effect.message)
                continue
            future = self.executor.submit(self._run_effect, session_id, effect)
            with self._pending_lock:
                self._pending.add(future)
            future.add_done_callback(self._forget)
        return alerts

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error("Planner effect failed", exc_info=future.exception())

    def _run_effect(self, session_id: str, effect: Effect) -> None:
        try:
            event = self._perform(effect)
        except Exception:
            logger.exception("Planner effect %s raised", type(effect).__name__)
            if not isinstance(effect, FetchRoutes):
                return
            event = RouteFetchFailed(key=effect.key, message=UNEXPECTED_FETCH_ERROR)

        _, effects = self._apply(session_id, event)
        alerts = self._schedule(session_id, effects)
        if alerts:
            logger.debug("Dropping alerts raised by a background effect: %s", alerts)

    def _perform(self, effect: Effect) -> Event:
        if isinstance(effect, ResolveName):
            name = self.geocoding_client.resolve_name(effect.coordinate)
            return NameResolved(slot=effect.slot, coordinate=effect.coordinate, name=name)

        if isinstance(effect, SearchPlaces):
            results = self.geocoding_client.search(effect.query)
            return SearchResultsReceived(query=effect.query, results=tuple(results))

        if isinstance(effect, FetchRoutes):
            return self._fetch_routes(effect)

        raise TypeError(f"Unsupported planner effect: {type(effect).__name__}")

    def _fetch_routes(self, effect: FetchRoutes) -> Event:
        key = effect.key
        try:
            routes = self.directions_client.request_routes(key.origin, key.destination, key.mode)
        except ConfigurationError as exc:
            logger.warning("Route request rejected: %s", exc)
            return RouteFetchFailed(key=key, message=str(exc))
        except RouteFetchError as exc:
            logger.warning("Route request failed for %s: %s", key.mode.profile, exc)
            return RouteFetchFailed(key=key, message=f"Failed to fetch route: {exc}")

        logger.info("Fetched %d route candidate(s) for %s", len(routes), key.mode.profile)
        return RoutesReceived(key=key, routes=routes)
