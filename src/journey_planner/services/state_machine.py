"""Planner state transitions.

``transition`` is a pure function: it takes the current session and one event
and returns the next session plus the side effects the caller must perform.
Adapter outcomes come back in as events, so every network response passes
through the same guards as user input.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Union

from journey_planner.exceptions import GeolocationDenied
from journey_planner.services.geocoding import is_searchable
from journey_planner.services.types import (
    Coordinate,
    NamedPoint,
    PlaceCandidate,
    PlannerSession,
    PointSlot,
    RouteRequestKey,
    RouteSet,
    TravelMode,
)

logger = logging.getLogger(__name__)

MISSING_POINTS_MESSAGE = "Please set both origin and destination."


@dataclass(slots=True, frozen=True)
class MapClicked:
    coordinate: Coordinate


@dataclass(slots=True, frozen=True)
class SearchQueryChanged:
    query: str


@dataclass(slots=True, frozen=True)
class SearchResultsReceived:
    query: str
    results: tuple[PlaceCandidate, ...]


@dataclass(slots=True, frozen=True)
class SearchResultSelected:
    index: int


@dataclass(slots=True, frozen=True)
class CurrentLocationFound:
    coordinate: Coordinate


@dataclass(slots=True, frozen=True)
class GeolocationFailed:
    reason: str = "denied"


@dataclass(slots=True, frozen=True)
class ModeChanged:
    mode: TravelMode


@dataclass(slots=True, frozen=True)
class RouteRequested:
    pass


@dataclass(slots=True, frozen=True)
class RoutesReceived:
    key: RouteRequestKey
    routes: RouteSet


@dataclass(slots=True, frozen=True)
class RouteFetchFailed:
    key: RouteRequestKey
    message: str


@dataclass(slots=True, frozen=True)
class RouteSelected:
    index: int


@dataclass(slots=True, frozen=True)
class NameResolved:
    slot: PointSlot
    coordinate: Coordinate
    name: str


@dataclass(slots=True, frozen=True)
class ResetRequested:
    pass


Event = Union[
    MapClicked,
    SearchQueryChanged,
    SearchResultsReceived,
    SearchResultSelected,
    CurrentLocationFound,
    GeolocationFailed,
    ModeChanged,
    RouteRequested,
    RoutesReceived,
    RouteFetchFailed,
    RouteSelected,
    NameResolved,
    ResetRequested,
]


@dataclass(slots=True, frozen=True)
class ResolveName:
    slot: PointSlot
    coordinate: Coordinate


@dataclass(slots=True, frozen=True)
class FetchRoutes:
    key: RouteRequestKey


@dataclass(slots=True, frozen=True)
class SearchPlaces:
    query: str


@dataclass(slots=True, frozen=True)
class ShowAlert:
    message: str


Effect = Union[ResolveName, FetchRoutes, SearchPlaces, ShowAlert]
Transition = tuple[PlannerSession, list[Effect]]


def transition(session: PlannerSession, event: Event) -> Transition:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported planner event: {type(event).__name__}")
    return handler(session, event)


def _start_fetch(session: PlannerSession) -> Transition:
    key = session.route_key()
    if key is None:
        return replace(session, error=MISSING_POINTS_MESSAGE), []
    loading = replace(session, routes=RouteSet(), is_loading=True, error="")
    return loading, [FetchRoutes(key)]


def _place_point(session: PlannerSession, coordinate: Coordinate) -> Transition:
    if session.origin is None:
        updated = replace(
            session,
            origin=NamedPoint(coordinate),
            routes=RouteSet(),
            is_loading=False,
            error="",
        )
        return updated, [ResolveName(PointSlot.ORIGIN, coordinate)]

    if session.destination is None:
        updated = replace(session, destination=NamedPoint(coordinate))
        fetching, effects = _start_fetch(updated)
        return fetching, [ResolveName(PointSlot.DESTINATION, coordinate), *effects]

    logger.debug("Ignoring point selection: origin and destination are already set")
    return session, []


def _on_map_clicked(session: PlannerSession, event: MapClicked) -> Transition:
    return _place_point(session, event.coordinate)


def _on_search_query_changed(session: PlannerSession, event: SearchQueryChanged) -> Transition:
    if not is_searchable(event.query):
        return (
            replace(session, search_query=event.query, search_results=(), search_pending=False),
            [],
        )
    updated = replace(session, search_query=event.query, search_pending=True)
    return updated, [SearchPlaces(event.query)]


def _on_search_results_received(
    session: PlannerSession, event: SearchResultsReceived
) -> Transition:
    if event.query != session.search_query:
        logger.debug("Discarding search results for outdated query %r", event.query)
        return session, []
    return replace(session, search_results=tuple(event.results), search_pending=False), []


def _on_search_result_selected(
    session: PlannerSession, event: SearchResultSelected
) -> Transition:
    if not 0 <= event.index < len(session.search_results):
        return session, []
    chosen = session.search_results[event.index]
    cleared = replace(session, search_query="", search_results=(), search_pending=False)
    return _place_point(cleared, chosen.coordinate)


def _on_current_location_found(
    session: PlannerSession, event: CurrentLocationFound
) -> Transition:
    updated = replace(
        session,
        origin=NamedPoint(event.coordinate),
        routes=RouteSet(),
        is_loading=False,
        error="",
    )
    effects: list[Effect] = [ResolveName(PointSlot.ORIGIN, event.coordinate)]
    if updated.destination is not None:
        updated, fetch_effects = _start_fetch(updated)
        effects.extend(fetch_effects)
    return updated, effects


def _on_geolocation_failed(session: PlannerSession, event: GeolocationFailed) -> Transition:
    return session, [ShowAlert(str(GeolocationDenied(event.reason)))]


def _on_mode_changed(session: PlannerSession, event: ModeChanged) -> Transition:
    if event.mode is session.mode:
        return session, []
    updated = replace(session, mode=event.mode)
    if not updated.has_both_points:
        return updated, []
    return _start_fetch(updated)


def _on_route_requested(session: PlannerSession, event: RouteRequested) -> Transition:
    return _start_fetch(session)


def _on_routes_received(session: PlannerSession, event: RoutesReceived) -> Transition:
    if event.key != session.route_key():
        logger.debug("Discarding stale directions response for %s", event.key)
        return session, []
    routes = event.routes.select(0) if event.routes.candidates else event.routes
    return replace(session, routes=routes, is_loading=False, error=""), []


def _on_route_fetch_failed(session: PlannerSession, event: RouteFetchFailed) -> Transition:
    if event.key != session.route_key():
        logger.debug("Discarding stale directions failure for %s", event.key)
        return session, []
    return replace(session, routes=RouteSet(), is_loading=False, error=event.message), []


def _on_route_selected(session: PlannerSession, event: RouteSelected) -> Transition:
    if session.is_loading or not 0 <= event.index < len(session.routes):
        return session, []
    return replace(session, routes=session.routes.select(event.index)), []


def _on_name_resolved(session: PlannerSession, event: NameResolved) -> Transition:
    point = session.point(event.slot)
    if point is None or point.coordinate != event.coordinate:
        return session, []
    renamed = replace(point, name=event.name)
    if event.slot is PointSlot.ORIGIN:
        return replace(session, origin=renamed), []
    return replace(session, destination=renamed), []


def _on_reset_requested(session: PlannerSession, event: ResetRequested) -> Transition:
    return PlannerSession(), []


_HANDLERS: dict[type, Callable[..., Transition]] = {
    MapClicked: _on_map_clicked,
    SearchQueryChanged: _on_search_query_changed,
    SearchResultsReceived: _on_search_results_received,
    SearchResultSelected: _on_search_result_selected,
    CurrentLocationFound: _on_current_location_found,
    GeolocationFailed: _on_geolocation_failed,
    ModeChanged: _on_mode_changed,
    RouteRequested: _on_route_requested,
    RoutesReceived: _on_routes_received,
    RouteFetchFailed: _on_route_fetch_failed,
    RouteSelected: _on_route_selected,
    NameResolved: _on_name_resolved,
    ResetRequested: _on_reset_requested,
}
