class TrackerError(Exception):
    """Base for errors surfaced to API callers."""
    status_code = 500


class ValidationFailure(TrackerError):
    status_code = 400


class NotFound(TrackerError):
    """The judge reports that the handle does not exist."""
    status_code = 404


class UpstreamFetchFailure(TrackerError):
    """Network error, timeout, non-2xx or rate limit from a judge API.

    Possibly transient, so callers may retry or degrade. `status_code` may
    carry the judge's own HTTP status (e.g. 429) through to the caller.
    """
    status_code = 500

    def __init__(self, message: str = "", status_code: int = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
