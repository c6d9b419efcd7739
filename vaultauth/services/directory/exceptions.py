"""Exceptions."""


class AccountExists(RuntimeError):
    """The e-mail address is already taken by another account."""


class NoSuchAccount(RuntimeError):
    """Account does not exist."""


class ConcurrentIssue(RuntimeError):
    """Another code was stored for the same account at the same time."""


class Unavailable(RuntimeError):
    """The directory database could not be reached."""
