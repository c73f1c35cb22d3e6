from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

PLACEHOLDER_NAME = "Resolving location..."
MAX_ROUTE_CANDIDATES = 3


class TravelMode(Enum):
    DRIVING = "driving"
    CYCLING = "cycling"
    WALKING = "walking"

    @property
    def profile(self) -> str:
        return _PROFILES[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()


_PROFILES = {
    TravelMode.DRIVING: "driving-car",
    TravelMode.CYCLING: "cycling-regular",
    TravelMode.WALKING: "foot-walking",
}


class PointSlot(Enum):
    ORIGIN = "origin"
    DESTINATION = "destination"


class PlannerStatus(Enum):
    EMPTY = "empty"
    ORIGIN_SET = "origin_set"
    READY = "ready"
    ROUTE_LOADING = "route_loading"
    ROUTE_READY = "route_ready"
    ROUTE_FAILED = "route_failed"


@dataclass(slots=True, frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class NamedPoint:
    coordinate: Coordinate
    name: str = PLACEHOLDER_NAME


@dataclass(slots=True, frozen=True)
class PlaceCandidate:
    name: str
    coordinate: Coordinate


@dataclass(slots=True, frozen=True)
class RouteCandidate:
    coordinates: tuple[Coordinate, ...]
    distance_km: float
    duration_min: float

    @property
    def distance_label(self) -> str:
        return f"{self.distance_km:.2f} km"

    @property
    def duration_label(self) -> str:
        return f"{self.duration_min:.2f} min"


@dataclass(slots=True, frozen=True)
class RouteSet:
    candidates: tuple[RouteCandidate, ...] = ()
    selected_index: int = 0

    def __post_init__(self) -> None:
        if len(self.candidates) > MAX_ROUTE_CANDIDATES:
            raise ValueError(f"A route set holds at most {MAX_ROUTE_CANDIDATES} candidates")
        if self.candidates and not 0 <= self.selected_index < len(self.candidates):
            raise ValueError(f"Route index {self.selected_index} is out of range")

    def __len__(self) -> int:
        return len(self.candidates)

    @property
    def selected(self) -> RouteCandidate | None:
        if not self.candidates:
            return None
        return self.candidates[self.selected_index]

    def select(self, index: int) -> RouteSet:
        return replace(self, selected_index=index)


@dataclass(slots=True, frozen=True)
class RouteRequestKey:
    origin: Coordinate
    destination: Coordinate
    mode: TravelMode


@dataclass(slots=True, frozen=True)
class PlannerSession:
    origin: NamedPoint | None = None
    destination: NamedPoint | None = None
    mode: TravelMode = TravelMode.DRIVING
    routes: RouteSet = field(default_factory=RouteSet)
    search_query: str = ""
    search_results: tuple[PlaceCandidate, ...] = ()
    search_pending: bool = False
    is_loading: bool = False
    error: str = ""

    @property
    def has_both_points(self) -> bool:
        return self.origin is not None and self.destination is not None

    @property
    def status(self) -> PlannerStatus:
        if self.origin is None and self.destination is None:
            return PlannerStatus.EMPTY
        if not self.has_both_points:
            return PlannerStatus.ORIGIN_SET
        if self.is_loading:
            return PlannerStatus.ROUTE_LOADING
        if self.routes.candidates:
            return PlannerStatus.ROUTE_READY
        if self.error:
            return PlannerStatus.ROUTE_FAILED
        return PlannerStatus.READY

    def route_key(self) -> RouteRequestKey | None:
        if self.origin is None or self.destination is None:
            return None
        return RouteRequestKey(
            origin=self.origin.coordinate,
            destination=self.destination.coordinate,
            mode=self.mode,
        )

    @property
    def has_pending_work(self) -> bool:
        names_pending = any(
            point is not None and point.name == PLACEHOLDER_NAME
            for point in (self.origin, self.destination)
        )
        return self.is_loading or self.search_pending or names_pending

    def point(self, slot: PointSlot) -> NamedPoint | None:
        return self.origin if slot is PointSlot.ORIGIN else self.destination
