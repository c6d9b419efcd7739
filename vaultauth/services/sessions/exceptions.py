"""Exceptions raised by the distributed session store."""


class SessionCreationFailed(RuntimeError):
    """Failed to create a session in the session store."""


class SessionDeletionFailed(RuntimeError):
    """Failed to delete a session in the session store."""


class UnknownSession(RuntimeError):
    """Failed to locate a session in the session store."""


class InvalidToken(ValueError):
    """Token in request is not valid."""


class ExpiredToken(RuntimeError):
    """Token has expired."""


class Unavailable(RuntimeError):
    """The session store could not be reached."""
