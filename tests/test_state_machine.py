from __future__ import annotations

from dataclasses import replace

import pytest

from journey_planner.services.state_machine import (
    MISSING_POINTS_MESSAGE,
    CurrentLocationFound,
    FetchRoutes,
    GeolocationFailed,
    MapClicked,
    ModeChanged,
    NameResolved,
    ResetRequested,
    ResolveName,
    RouteFetchFailed,
    RouteRequested,
    RoutesReceived,
    RouteSelected,
    SearchPlaces,
    SearchQueryChanged,
    SearchResultSelected,
    SearchResultsReceived,
    ShowAlert,
    transition,
)
from journey_planner.services.types import (
    PLACEHOLDER_NAME,
    Coordinate,
    NamedPoint,
    PlaceCandidate,
    PlannerSession,
    PlannerStatus,
    PointSlot,
    RouteCandidate,
    RouteRequestKey,
    RouteSet,
    TravelMode,
)

ORIGIN = Coordinate(latitude=51.50, longitude=-0.10)
DESTINATION = Coordinate(latitude=51.51, longitude=-0.08)


def _candidate(distance_km: float, duration_min: float) -> RouteCandidate:
    return RouteCandidate(
        coordinates=(ORIGIN, DESTINATION),
        distance_km=distance_km,
        duration_min=duration_min,
    )


def _loading_session(mode: TravelMode = TravelMode.DRIVING) -> PlannerSession:
    return PlannerSession(
        origin=NamedPoint(ORIGIN, "Origin"),
        destination=NamedPoint(DESTINATION, "Destination"),
        mode=mode,
        is_loading=True,
    )


def _ready_session() -> PlannerSession:
    routes = RouteSet(candidates=(_candidate(5.0, 10.0), _candidate(4.8, 10.83)))
    return replace(_loading_session(), routes=routes, is_loading=False)


def test_first_click_sets_origin_and_resolves_name() -> None:
    session, effects = transition(PlannerSession(), MapClicked(ORIGIN))

    assert session.status is PlannerStatus.ORIGIN_SET
    assert session.origin == NamedPoint(ORIGIN, PLACEHOLDER_NAME)
    assert session.destination is None
    assert effects == [ResolveName(PointSlot.ORIGIN, ORIGIN)]


def test_second_click_sets_destination_and_starts_fetch() -> None:
    session, _ = transition(PlannerSession(), MapClicked(ORIGIN))
    session, effects = transition(session, MapClicked(DESTINATION))

    key = RouteRequestKey(ORIGIN, DESTINATION, TravelMode.DRIVING)
    assert session.status is PlannerStatus.ROUTE_LOADING
    assert session.is_loading is True
    assert effects == [ResolveName(PointSlot.DESTINATION, DESTINATION), FetchRoutes(key)]


def test_click_after_both_points_set_is_ignored() -> None:
    session = _ready_session()

    updated, effects = transition(session, MapClicked(Coordinate(latitude=52.0, longitude=0.1)))

    assert updated == session
    assert effects == []


def test_routes_received_selects_first_candidate() -> None:
    session = _loading_session()
    routes = RouteSet(candidates=(_candidate(5.0, 10.0), _candidate(4.8, 10.83)), selected_index=1)

    updated, effects = transition(session, RoutesReceived(session.route_key(), routes))

    assert updated.status is PlannerStatus.ROUTE_READY
    assert updated.routes.selected_index == 0
    assert updated.routes.selected.distance_label == "5.00 km"
    assert updated.routes.selected.duration_label == "10.00 min"
    assert updated.is_loading is False
    assert effects == []


def test_stale_routes_response_is_discarded() -> None:
    session = _loading_session(mode=TravelMode.CYCLING)
    stale_key = RouteRequestKey(ORIGIN, DESTINATION, TravelMode.DRIVING)

    updated, effects = transition(
        session, RoutesReceived(stale_key, RouteSet(candidates=(_candidate(9.0, 9.0),)))
    )

    assert updated == session
    assert effects == []


def test_stale_failure_is_discarded() -> None:
    session = _ready_session()
    stale_key = RouteRequestKey(ORIGIN, DESTINATION, TravelMode.WALKING)

    updated, _ = transition(session, RouteFetchFailed(stale_key, "boom"))

    assert updated == session


def test_route_failure_clears_routes_and_stores_message() -> None:
    session = _loading_session()

    updated, _ = transition(
        session,
        RouteFetchFailed(session.route_key(), "Failed to fetch route: No routes found."),
    )

    assert updated.status is PlannerStatus.ROUTE_FAILED
    assert updated.routes == RouteSet()
    assert updated.error == "Failed to fetch route: No routes found."


def test_selecting_candidate_updates_selection_without_fetch() -> None:
    session = _ready_session()

    updated, effects = transition(session, RouteSelected(1))

    assert updated.routes.selected_index == 1
    assert updated.routes.selected.distance_label == "4.80 km"
    assert updated.routes.selected.duration_label == "10.83 min"
    assert effects == []


@pytest.mark.parametrize("index", [2, 5])
def test_selecting_missing_candidate_is_ignored(index: int) -> None:
    session = _ready_session()

    updated, effects = transition(session, RouteSelected(index))

    assert updated == session
    assert effects == []


def test_mode_change_with_both_points_refetches() -> None:
    session = _ready_session()

    updated, effects = transition(session, ModeChanged(TravelMode.WALKING))

    assert updated.mode is TravelMode.WALKING
    assert updated.status is PlannerStatus.ROUTE_LOADING
    assert updated.routes == RouteSet()
    assert effects == [FetchRoutes(RouteRequestKey(ORIGIN, DESTINATION, TravelMode.WALKING))]


def test_mode_change_without_destination_only_records_mode() -> None:
    session, _ = transition(PlannerSession(), MapClicked(ORIGIN))

    updated, effects = transition(session, ModeChanged(TravelMode.CYCLING))

    assert updated.mode is TravelMode.CYCLING
    assert effects == []


def test_route_request_without_destination_sets_error_only() -> None:
    session, _ = transition(PlannerSession(), MapClicked(ORIGIN))

    updated, effects = transition(session, RouteRequested())

    assert updated == replace(session, error=MISSING_POINTS_MESSAGE)
    assert effects == []


def test_route_request_retries_after_failure() -> None:
    session = replace(_loading_session(), is_loading=False, error="Failed to fetch route: boom")

    updated, effects = transition(session, RouteRequested())

    assert updated.error == ""
    assert updated.is_loading is True
    assert effects == [FetchRoutes(session.route_key())]


def test_name_resolution_applies_to_matching_point_only() -> None:
    session, _ = transition(PlannerSession(), MapClicked(ORIGIN))

    named, _ = transition(session, NameResolved(PointSlot.ORIGIN, ORIGIN, "London Bridge"))
    unchanged, _ = transition(session, NameResolved(PointSlot.ORIGIN, DESTINATION, "Elsewhere"))

    assert named.origin.name == "London Bridge"
    assert unchanged == session


def test_short_search_query_clears_results_without_effect() -> None:
    session = replace(
        PlannerSession(),
        search_query="Lond",
        search_results=(PlaceCandidate("London", ORIGIN),),
    )

    updated, effects = transition(session, SearchQueryChanged("Lo"))

    assert updated.search_query == "Lo"
    assert updated.search_results == ()
    assert effects == []


def test_search_query_emits_search_and_ignores_outdated_results() -> None:
    session, effects = transition(PlannerSession(), SearchQueryChanged("London"))
    assert effects == [SearchPlaces("London")]
    assert session.search_pending is True

    outdated, _ = transition(
        session, SearchResultsReceived("Lond", (PlaceCandidate("London", ORIGIN),))
    )
    current, _ = transition(
        session, SearchResultsReceived("London", (PlaceCandidate("London", ORIGIN),))
    )

    assert outdated.search_results == ()
    assert current.search_results == (PlaceCandidate("London", ORIGIN),)
    assert outdated.search_pending is True
    assert current.search_pending is False


def test_search_selection_fills_next_slot_and_clears_search() -> None:
    session = replace(
        PlannerSession(origin=NamedPoint(ORIGIN, "Origin")),
        search_query="Tower Bridge",
        search_results=(PlaceCandidate("Tower Bridge", DESTINATION),),
    )

    updated, effects = transition(session, SearchResultSelected(0))

    assert updated.destination == NamedPoint(DESTINATION, PLACEHOLDER_NAME)
    assert updated.search_query == ""
    assert updated.search_results == ()
    assert effects[0] == ResolveName(PointSlot.DESTINATION, DESTINATION)
    assert isinstance(effects[1], FetchRoutes)


def test_current_location_replaces_origin_and_refetches() -> None:
    session = _ready_session()
    here = Coordinate(latitude=51.49, longitude=-0.12)

    updated, effects = transition(session, CurrentLocationFound(here))

    assert updated.origin == NamedPoint(here, PLACEHOLDER_NAME)
    assert updated.routes == RouteSet()
    assert effects == [
        ResolveName(PointSlot.ORIGIN, here),
        FetchRoutes(RouteRequestKey(here, DESTINATION, TravelMode.DRIVING)),
    ]


def test_geolocation_failure_only_alerts() -> None:
    session = _ready_session()

    updated, effects = transition(session, GeolocationFailed())

    assert updated == session
    assert effects == [
        ShowAlert("Unable to fetch your location. Please try again or select manually.")
    ]


@pytest.mark.parametrize(
    "session",
    [PlannerSession(), _loading_session(), _ready_session()],
    ids=["empty", "loading", "ready"],
)
def test_reset_returns_initial_session(session: PlannerSession) -> None:
    updated, effects = transition(
        replace(session, mode=TravelMode.WALKING, search_query="abc", error="oops"),
        ResetRequested(),
    )

    assert updated == PlannerSession()
    assert updated.status is PlannerStatus.EMPTY
    assert effects == []
