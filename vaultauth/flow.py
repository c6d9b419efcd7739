"""
The sign-up and sign-in state machine.

An :class:`.AuthFlow` ties the :class:`.AccountRegistry`, the
:class:`.OTPIssuer` and the :class:`.SessionManager` together::

    IDLE -> SUBMITTING -> AWAITING_CODE -> VERIFYING -> AUTHENTICATED
                  \\                             /
                   +--------> FAILED <---------+

Each operation returns a :class:`.FlowResult`. Expected failures (duplicate
address, unknown address, undeliverable code, wrong code, directory outage)
are reported as an :class:`.ErrorKind` on the result; only calling an
operation from the wrong state raises, with :class:`.InvalidTransition`.

Because every HTTP request is handled on its own, a flow that is waiting for
a code can be picked up again with :meth:`.AuthFlow.resume`, given the
correlation token handed out when the code was issued.
"""

from typing import NamedTuple, Optional
from enum import Enum
import logging

from . import domain
from .exceptions import DuplicateAccount, DeliveryFailed, ResendThrottled, \
    InvalidOrExpiredCode, SessionEstablishFailed, InvalidTransition
from .otp import OTPIssuer
from .registry import AccountRegistry
from .services.directory.exceptions import Unavailable as \
    DirectoryUnavailable
from .sessions import SessionManager

logger = logging.getLogger(__name__)


class FlowState(Enum):
    """States of an :class:`.AuthFlow`."""

    IDLE = 'idle'
    SUBMITTING = 'submitting'
    AWAITING_CODE = 'awaiting_code'
    VERIFYING = 'verifying'
    AUTHENTICATED = 'authenticated'
    FAILED = 'failed'


class ErrorKind(Enum):
    """User-facing reasons for a flow to fail or to stall."""

    DUPLICATE_ACCOUNT = 'duplicate_account'
    UNKNOWN_ACCOUNT = 'unknown_account'
    DELIVERY_FAILED = 'delivery_failed'
    INVALID_OR_EXPIRED_CODE = 'invalid_or_expired_code'
    UNAUTHENTICATED = 'unauthenticated'
    SESSION_ESTABLISH_FAILED = 'session_establish_failed'
    RESEND_THROTTLED = 'resend_throttled'
    DIRECTORY_UNAVAILABLE = 'directory_unavailable'


class FlowResult(NamedTuple):
    """Outcome of an :class:`.AuthFlow` operation."""

    state: FlowState
    error: Optional[ErrorKind] = None
    account_id: Optional[str] = None
    """Correlation token, once a code has been issued."""

    redirect_target: Optional[domain.RedirectTarget] = None
    """Set when the flow is :attr:`FlowState.AUTHENTICATED`."""

    cookie: Optional[str] = None
    """Session cookie value, set when the flow is authenticated."""

    @property
    def ok(self) -> bool:
        """Whether the operation completed without an error."""
        return self.error is None


class AuthFlow(object):
    """
    One actor's attempt to sign up or sign in.

    Parameters
    ----------
    registry : :class:`.AccountRegistry`
    otp : :class:`.OTPIssuer`
    sessions : :class:`.SessionManager`

    """

    def __init__(self, registry: AccountRegistry, otp: OTPIssuer,
                 sessions: SessionManager,
                 state: FlowState = FlowState.IDLE,
                 account_id: Optional[str] = None) -> None:
        self.registry = registry
        self.otp = otp
        self.sessions = sessions
        self.state = state
        self.account_id = account_id
        self.error: Optional[ErrorKind] = None

    @classmethod
    def resume(cls, registry: AccountRegistry, otp: OTPIssuer,
               sessions: SessionManager, account_id: str) -> 'AuthFlow':
        """Pick up a flow that is waiting for the code for ``account_id``."""
        return cls(registry, otp, sessions, state=FlowState.AWAITING_CODE,
                   account_id=account_id)

    def _require(self, state: FlowState) -> None:
        if self.state is not state:
            raise InvalidTransition(f'Cannot do that from {self.state.name}')

    def _move(self, state: FlowState,
              error: Optional[ErrorKind] = None) -> None:
        logger.debug('Flow %s -> %s (%s)', self.state.name, state.name,
                     error.name if error else 'ok')
        self.state = state
        self.error = error

    def _result(self, **extra: object) -> FlowResult:
        return FlowResult(state=self.state, error=self.error,
                          account_id=self.account_id,
                          **extra)  # type: ignore

    def _fail(self, error: ErrorKind) -> FlowResult:
        self._move(FlowState.FAILED, error)
        return self._result()

    def _issue(self, account: domain.Account) -> FlowResult:
        try:
            self.account_id = self.otp.issue(account)
        except ResendThrottled:
            # An earlier code is still outstanding and good to use.
            self.account_id = account.account_id
            self._move(FlowState.AWAITING_CODE, ErrorKind.RESEND_THROTTLED)
            return self._result()
        except DeliveryFailed:
            return self._fail(ErrorKind.DELIVERY_FAILED)
        except DirectoryUnavailable:
            logger.error('Directory unavailable, could not issue a code')
            return self._fail(ErrorKind.DIRECTORY_UNAVAILABLE)
        self._move(FlowState.AWAITING_CODE)
        return self._result()

    def sign_up(self, email: str, full_name: str,
                role: domain.Role) -> FlowResult:
        """
        Register a new account and send it a code.

        Parameters
        ----------
        email : str
        full_name : str
        role : :class:`.domain.Role`
            Must be chosen explicitly; there is no default.

        Returns
        -------
        :class:`.FlowResult`

        """
        self._require(FlowState.IDLE)
        if not isinstance(role, domain.Role):
            raise TypeError('An explicit role is required')
        self._move(FlowState.SUBMITTING)
        try:
            account = self.registry.create(email, full_name, role)
        except DuplicateAccount:
            return self._fail(ErrorKind.DUPLICATE_ACCOUNT)
        except DirectoryUnavailable:
            logger.error('Directory unavailable, could not create account')
            return self._fail(ErrorKind.DIRECTORY_UNAVAILABLE)
        return self._issue(account)

    def sign_in(self, email: str) -> FlowResult:
        """Send a code to an existing account."""
        self._require(FlowState.IDLE)
        self._move(FlowState.SUBMITTING)
        try:
            account = self.registry.find_by_email(email)
        except DirectoryUnavailable:
            logger.error('Directory unavailable, could not look up account')
            return self._fail(ErrorKind.DIRECTORY_UNAVAILABLE)
        if account is None:
            return self._fail(ErrorKind.UNKNOWN_ACCOUNT)
        return self._issue(account)

    def verify(self, code: str) -> FlowResult:
        """
        Check a submitted code and open a session if it matches.

        On success the flow is authenticated, and the result carries the
        session cookie and the landing surface for the account's role. A
        code that does not verify, or that could not be checked because the
        directory is down, leaves the flow waiting for another code.
        """
        self._require(FlowState.AWAITING_CODE)
        self._move(FlowState.VERIFYING)
        assert self.account_id is not None
        try:
            secret = self.otp.verify(self.account_id, code)
        except InvalidOrExpiredCode:
            self._move(FlowState.AWAITING_CODE,
                       ErrorKind.INVALID_OR_EXPIRED_CODE)
            return self._result()
        except DirectoryUnavailable:
            logger.error('Directory unavailable, could not check code')
            self._move(FlowState.AWAITING_CODE,
                       ErrorKind.DIRECTORY_UNAVAILABLE)
            return self._result()

        # The role stored at creation is the only input to the redirect.
        # The code is spent by now, so a failure here is terminal.
        try:
            account = self.registry.get(self.account_id)
        except DirectoryUnavailable:
            logger.error('Directory unavailable after redeeming code')
            return self._fail(ErrorKind.SESSION_ESTABLISH_FAILED)
        if account is None:
            return self._fail(ErrorKind.SESSION_ESTABLISH_FAILED)
        try:
            _, cookie = self.sessions.establish(account.account_id, secret)
        except SessionEstablishFailed:
            return self._fail(ErrorKind.SESSION_ESTABLISH_FAILED)
        self._move(FlowState.AUTHENTICATED)
        target = domain.redirect_target(account.role)
        return self._result(redirect_target=target, cookie=cookie)

    def resend(self) -> FlowResult:
        """Issue a fresh code. The flow keeps waiting either way."""
        self._require(FlowState.AWAITING_CODE)
        assert self.account_id is not None
        self.error = None
        try:
            account = self.registry.get(self.account_id)
            if account is None:
                self.error = ErrorKind.UNKNOWN_ACCOUNT
                return self._result()
            self.otp.issue(account)
        except ResendThrottled:
            self.error = ErrorKind.RESEND_THROTTLED
        except DeliveryFailed:
            self.error = ErrorKind.DELIVERY_FAILED
        except DirectoryUnavailable:
            logger.error('Directory unavailable, could not resend code')
            self.error = ErrorKind.DIRECTORY_UNAVAILABLE
        return self._result()

    def reset(self) -> FlowResult:
        """Go back to :attr:`FlowState.IDLE`."""
        self._move(FlowState.IDLE)
        self.account_id = None
        return self._result()
