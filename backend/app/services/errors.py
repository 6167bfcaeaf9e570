"""Caller-facing errors raised by the service layer."""


class InputError(ValueError):
    """Empty script, malformed parameters or an unusable source."""
    pass


class NotFoundError(LookupError):
    """Unknown project id."""
    pass


class NotReadyError(Exception):
    """Asset requested before the project is done."""
    pass


class ConflictError(Exception):
    """A run was requested for a project that is not idle or is already running."""
    pass
