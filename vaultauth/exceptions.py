"""Exceptions raised by the account, code and session components."""


class DuplicateAccount(RuntimeError):
    """An account with this e-mail address already exists."""


class UnknownAccount(RuntimeError):
    """No account matches the e-mail address or identifier."""


class DeliveryFailed(RuntimeError):
    """The one-time code could not be delivered."""


class ResendThrottled(RuntimeError):
    """A code was issued for this account too recently."""


class InvalidOrExpiredCode(RuntimeError):
    """
    The submitted code did not verify.

    Wrong, expired, burned and replayed codes all raise this, so that callers
    cannot tell them apart.
    """


class SessionEstablishFailed(RuntimeError):
    """A session could not be opened after a successful verification."""


class InvalidTransition(RuntimeError):
    """An auth flow operation was called from the wrong state."""
