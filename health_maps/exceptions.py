"""Error taxonomy for Health Maps.

Every error raised by the pipeline derives from ``HealthMapsError`` and
carries the HTTP status the server maps it to.
"""


class HealthMapsError(Exception):
    """Base class for all Health Maps errors."""

    status_code = 500
    default_message = "Failed to fetch route data."

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(HealthMapsError):
    """Request input is missing or blank."""

    status_code = 400
    default_message = "Start and end locations required."


class LocationNotFound(HealthMapsError):
    """The geocoding provider returned no match."""

    def __init__(self, query: str):
        super().__init__(f"Location not found: {query}.")
        self.query = query


class GeocodingError(HealthMapsError):
    """The geocoding provider reported an error or could not be reached."""


class NoRouteFound(HealthMapsError):
    """The directions provider returned no routes."""

    status_code = 404
    default_message = "No driving routes found."


class ProviderError(HealthMapsError):
    """Transport or parsing failure talking to an upstream provider."""


class InvalidGeometryError(ProviderError):
    """A route geometry cannot be used for length/along-line operations."""


class InternalError(HealthMapsError):
    """Unexpected failure inside the pipeline."""
