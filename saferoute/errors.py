"""SafeRoute — Error taxonomy"""


class SafeRouteError(Exception):
    """Base class for every failure surfaced by the route planner."""


class MissingLocationError(SafeRouteError):
    """Origin or destination was not supplied."""


class ConfigurationError(SafeRouteError):
    """A collaborator is missing required configuration (e.g. an API token)."""


class CollaboratorUnavailableError(SafeRouteError):
    """The directions provider or incident repository failed to answer."""

    def __init__(self, collaborator: str, detail: str):
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} unavailable: {detail}")


class NoRoutesFoundError(SafeRouteError):
    """The provider returned no usable route geometries."""

    def __init__(self, message: str = "No routes found"):
        super().__init__(message)
