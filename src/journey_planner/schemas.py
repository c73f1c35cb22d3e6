from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from journey_planner.services.state_machine import (
    CurrentLocationFound,
    GeolocationFailed,
    MapClicked,
    ModeChanged,
    ResetRequested,
    RouteRequested,
    RouteSelected,
    SearchQueryChanged,
    SearchResultSelected,
)
from journey_planner.services.types import Coordinate as GeoCoordinate
from journey_planner.services.types import TravelMode

TravelModeName = Literal["driving", "cycling", "walking"]


class EventRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PointEventRequest(EventRequest):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def coordinate(self) -> GeoCoordinate:
        return GeoCoordinate(latitude=self.latitude, longitude=self.longitude)


class MapClickRequest(PointEventRequest):
    type: Literal["map_click"]

    def to_event(self) -> MapClicked:
        return MapClicked(self.coordinate())


class CurrentLocationRequest(PointEventRequest):
    type: Literal["current_location"]

    def to_event(self) -> CurrentLocationFound:
        return CurrentLocationFound(self.coordinate())


class GeolocationFailedRequest(EventRequest):
    type: Literal["geolocation_failed"]
    reason: Literal["denied", "unavailable", "timeout", "unsupported"] = "denied"

    def to_event(self) -> GeolocationFailed:
        return GeolocationFailed(self.reason)


class SearchQueryRequest(EventRequest):
    type: Literal["search_query"]
    query: str = Field(default="", max_length=300)

    def to_event(self) -> SearchQueryChanged:
        return SearchQueryChanged(self.query)


class SearchSelectRequest(EventRequest):
    type: Literal["search_select"]
    index: int = Field(ge=0)

    def to_event(self) -> SearchResultSelected:
        return SearchResultSelected(self.index)


class ModeChangeRequest(EventRequest):
    type: Literal["mode_change"]
    mode: TravelModeName

    def to_event(self) -> ModeChanged:
        return ModeChanged(TravelMode(self.mode))


class RouteRequestRequest(EventRequest):
    type: Literal["route_request"]

    def to_event(self) -> RouteRequested:
        return RouteRequested()


class RouteSelectRequest(EventRequest):
    type: Literal["route_select"]
    index: int = Field(ge=0)

    def to_event(self) -> RouteSelected:
        return RouteSelected(self.index)


class ResetRequest(EventRequest):
    type: Literal["reset"]

    def to_event(self) -> ResetRequested:
        return ResetRequested()


PlannerEventRequest = Annotated[
    Union[
        MapClickRequest,
        CurrentLocationRequest,
        GeolocationFailedRequest,
        SearchQueryRequest,
        SearchSelectRequest,
        ModeChangeRequest,
        RouteRequestRequest,
        RouteSelectRequest,
        ResetRequest,
    ],
    Field(discriminator="type"),
]
planner_event_adapter: TypeAdapter[PlannerEventRequest] = TypeAdapter(PlannerEventRequest)


class Coordinate(BaseModel):
    latitude: float
    longitude: float


class MarkerView(BaseModel):
    role: Literal["origin", "destination"]
    position: Coordinate
    label: str


class PolylineView(BaseModel):
    index: int
    positions: list[tuple[float, float]]
    color: str
    weight: int
    opacity: float
    selected: bool


class MapView(BaseModel):
    tile_url: str
    tile_attribution: str
    center: Coordinate
    zoom: int
    markers: list[MarkerView]
    polylines: list[PolylineView]


class RouteOptionView(BaseModel):
    index: int
    label: str
    color: str
    selected: bool
    distance: str
    duration: str


class SearchResultView(BaseModel):
    index: int
    name: str
    latitude: float
    longitude: float


class ModeOptionView(BaseModel):
    value: TravelModeName
    label: str
    selected: bool


class PlannerViewResponse(BaseModel):
    status: str
    mode: TravelModeName
    modes: list[ModeOptionView]
    origin_label: str
    destination_label: str
    distance: str
    duration: str
    is_loading: bool
    pending: bool
    error: str
    can_request_route: bool
    search_query: str
    search_results: list[SearchResultView]
    route_options: list[RouteOptionView]
    map: MapView


class PlannerEventResponse(BaseModel):
    view: PlannerViewResponse
    alerts: list[str]
