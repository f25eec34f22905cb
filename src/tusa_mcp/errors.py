"""Error types raised at the upstream fetch boundary."""


class TransitError(Exception):
    """Base class for errors surfaced to tools and the refresh scheduler."""


class FeedUnavailable(TransitError):
    """The bulk stop directory feed could not be fetched or parsed."""


class StopNotFound(TransitError):
    """The upstream provider reports no such stop (or returned nothing)."""

    def __init__(self, stop_id: str):
        super().__init__(f"Stop '{stop_id}' not found")
        self.stop_id = stop_id


class UpstreamError(TransitError):
    """Network or malformed-response failure. Retry on the next refresh."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class EmptyInput(TransitError, ValueError):
    """A proximity computation was asked to choose from zero candidates."""
