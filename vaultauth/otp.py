"""Issues and verifies one-time codes."""

import logging
import secrets
import string

from . import domain
from .exceptions import DeliveryFailed, ResendThrottled, InvalidOrExpiredCode
from .services.directory import Directory
from .services.mail import DeliveryError

logger = logging.getLogger(__name__)


def generate_code(length: int = 6) -> str:
    """Generate a random numeric code."""
    return ''.join(secrets.choice(string.digits) for _ in range(length))


class OTPIssuer(object):
    """
    Issues codes for accounts, and checks codes submitted by users.

    Parameters
    ----------
    directory : :class:`.Directory`
    resend_interval : int
        Seconds that must pass before another code is issued for the same
        account. ``0`` turns throttling off.
    max_attempts : int
        Failed submissions after which the outstanding code is burned.
    length : int
        Number of digits in a code.

    """

    def __init__(self, directory: Directory, resend_interval: int = 30,
                 max_attempts: int = 5, length: int = 6) -> None:
        self.directory = directory
        self.resend_interval = resend_interval
        self.max_attempts = max_attempts
        self.length = length

    def issue(self, account: domain.Account) -> str:
        """
        Issue a new code for ``account`` and deliver it.

        The new code replaces whatever code was outstanding.

        Returns
        -------
        str
            Correlation token to send back with the code.

        Raises
        ------
        :class:`.ResendThrottled`
        :class:`.DeliveryFailed`
        :class:`.services.directory.exceptions.Unavailable`

        """
        if self.resend_interval > 0:
            outstanding = self.directory.outstanding_code(account.account_id)
            if outstanding is not None \
                    and outstanding.age() < self.resend_interval:
                raise ResendThrottled('Please wait before asking again')
        try:
            self.directory.issue_one_time_code(account,
                                               generate_code(self.length))
        except DeliveryError as e:
            raise DeliveryFailed('Could not deliver code') from e
        return account.account_id

    def verify(self, token: str, code: str) -> str:
        """
        Check a submitted code, consuming it if it matches.

        Parameters
        ----------
        token : str
            Correlation token returned by :meth:`issue`.
        code : str

        Returns
        -------
        str
            Session secret to open a session with.

        Raises
        ------
        :class:`.InvalidOrExpiredCode`

        """
        code = (code or '').strip()
        if not token or len(code) != self.length \
                or not (code.isascii() and code.isdigit()):
            raise InvalidOrExpiredCode('Invalid or expired code')
        secret = self.directory.redeem_one_time_code(token, code,
                                                     self.max_attempts)
        if secret is None:
            raise InvalidOrExpiredCode('Invalid or expired code')
        return secret
