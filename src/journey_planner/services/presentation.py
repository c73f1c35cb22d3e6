from __future__ import annotations

from django.conf import settings

from journey_planner.schemas import (
    Coordinate,
    MapView,
    MarkerView,
    ModeOptionView,
    PlannerViewResponse,
    PolylineView,
    RouteOptionView,
    SearchResultView,
)
from journey_planner.services.types import NamedPoint, PlannerSession, TravelMode

ROUTE_COLORS = ("#007bff", "#28a745", "#dc3545")
DEFAULT_CENTER = Coordinate(latitude=51.505, longitude=-0.09)
DEFAULT_ZOOM = 13
EMPTY_POINT_LABEL = "Search or click map"

SELECTED_ROUTE_WEIGHT = 5
SELECTED_ROUTE_OPACITY = 1.0
ALTERNATIVE_ROUTE_WEIGHT = 3
ALTERNATIVE_ROUTE_OPACITY = 0.5


def route_color(index: int) -> str:
    return ROUTE_COLORS[index % len(ROUTE_COLORS)]


def build_map_view(session: PlannerSession) -> PlannerViewResponse:
    selected = session.routes.selected
    route_options = [
        RouteOptionView(
            index=index,
            label=f"Route {index + 1} ({candidate.distance_label})",
            color=route_color(index),
            selected=index == session.routes.selected_index,
            distance=candidate.distance_label,
            duration=candidate.duration_label,
        )
        for index, candidate in enumerate(session.routes.candidates)
    ]

    return PlannerViewResponse(
        status=session.status.value,
        mode=session.mode.value,
        modes=[
            ModeOptionView(value=mode.value, label=mode.label, selected=mode is session.mode)
            for mode in TravelMode
        ],
        origin_label=_point_label(session.origin),
        destination_label=_point_label(session.destination),
        distance=selected.distance_label if selected else "",
        duration=selected.duration_label if selected else "",
        is_loading=session.is_loading,
        pending=session.has_pending_work,
        error=session.error,
        can_request_route=session.has_both_points and not session.is_loading,
        search_query=session.search_query,
        search_results=[
            SearchResultView(
                index=index,
                name=result.name,
                latitude=result.coordinate.latitude,
                longitude=result.coordinate.longitude,
            )
            for index, result in enumerate(session.search_results)
        ],
        route_options=route_options,
        map=_build_map(session),
    )


def _build_map(session: PlannerSession) -> MapView:
    markers = []
    for role, point in (("origin", session.origin), ("destination", session.destination)):
        if point is None:
            continue
        markers.append(
            MarkerView(
                role=role,
                position=_coordinate(point),
                label=point.name,
            )
        )

    polylines = []
    for index, candidate in enumerate(session.routes.candidates):
        is_selected = index == session.routes.selected_index
        polylines.append(
            PolylineView(
                index=index,
                positions=[(point.latitude, point.longitude) for point in candidate.coordinates],
                color=route_color(index),
                weight=SELECTED_ROUTE_WEIGHT if is_selected else ALTERNATIVE_ROUTE_WEIGHT,
                opacity=SELECTED_ROUTE_OPACITY if is_selected else ALTERNATIVE_ROUTE_OPACITY,
                selected=is_selected,
            )
        )

    # Recenter on the origin first, then the destination.
    focus = session.origin or session.destination
    return MapView(
        tile_url=settings.MAP_TILE_URL,
        tile_attribution=settings.MAP_TILE_ATTRIBUTION,
        center=_coordinate(focus) if focus else DEFAULT_CENTER,
        zoom=DEFAULT_ZOOM,
        markers=markers,
        polylines=polylines,
    )


def _coordinate(point: NamedPoint) -> Coordinate:
    return Coordinate(latitude=point.coordinate.latitude, longitude=point.coordinate.longitude)


def _point_label(point: NamedPoint | None) -> str:
    return point.name if point is not None else EMPTY_POINT_LABEL
