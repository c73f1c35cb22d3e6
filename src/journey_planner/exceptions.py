class JourneyPlannerError(Exception):
    """Base exception for journey planning errors."""


class ConfigurationError(JourneyPlannerError):
    """Raised when a route request cannot be issued with the current configuration."""


class RouteFetchError(JourneyPlannerError):
    """Raised when the directions service call fails."""


class EmptyResultError(RouteFetchError):
    """Raised when the directions service returns no candidate routes."""


class NamingFailure(JourneyPlannerError):
    """Raised when reverse geocoding fails."""


class SearchFailure(JourneyPlannerError):
    """Raised when forward geocoding fails."""


class GeolocationDenied(JourneyPlannerError):
    """Raised when the browser cannot supply the device location."""

    def __init__(self, reason: str = "denied") -> None:
        self.reason = reason
        if reason == "unsupported":
            message = "Geolocation is not supported by your browser."
        else:
            message = "Unable to fetch your location. Please try again or select manually."
        super().__init__(message)


class SessionBusyError(JourneyPlannerError):
    """Raised when a planner session stays locked by another update for too long."""
