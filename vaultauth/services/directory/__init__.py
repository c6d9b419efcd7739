"""
Integration with the account directory.

The directory is the only collaborator that the auth flow talks to. It owns
three stores: the account and one-time code tables (SQLAlchemy, see
:mod:`.models`), the distributed session store (see
:mod:`vaultauth.services.sessions`), and the mail service that delivers codes
(see :mod:`vaultauth.services.mail`). :class:`.Directory` composes them
behind a small capability interface.
"""

from typing import Optional, Tuple
import logging
import secrets

from flask import Flask, current_app
from retry import retry

from ... import domain
from .. import mail
from ..sessions import store
from ..sessions.exceptions import InvalidToken, ExpiredToken, UnknownSession
from . import accounts, codes, util
from .exceptions import NoSuchAccount, ConcurrentIssue, Unavailable

logger = logging.getLogger(__name__)


class Directory(object):
    """Capability interface over accounts, one-time codes and sessions."""

    def __init__(self, sessions: store.SessionStore, mailer: mail.Mailer,
                 code_lifetime: int = 900) -> None:
        self.sessions = sessions
        self.mailer = mailer
        self.code_lifetime = code_lifetime

    @retry(Unavailable, tries=3, delay=0.5, backoff=2)
    def lookup_account_by_email(self, email: str) \
            -> Optional[domain.Account]:
        """Find the account registered with ``email``, if any."""
        return accounts.get_by_email(email)

    @retry(Unavailable, tries=3, delay=0.5, backoff=2)
    def get_account(self, account_id: str) -> Optional[domain.Account]:
        """Get an account by its identifier."""
        return accounts.get_by_id(account_id)

    def create_account(self, email: str, full_name: str, role: domain.Role,
                       avatar_ref: str = '') -> domain.Account:
        """
        Create a new account.

        Raises
        ------
        :class:`.AccountExists`
            The address is already registered.

        """
        return accounts.create(email, full_name, role, avatar_ref)

    @retry(Unavailable, tries=3, delay=0.5, backoff=2)
    def outstanding_code(self, account_id: str) \
            -> Optional[domain.OneTimeCode]:
        """Get the code currently outstanding for an account."""
        return codes.get_outstanding(account_id)

    @retry(ConcurrentIssue, tries=2)
    def issue_one_time_code(self, account: domain.Account,
                            code: str) -> domain.OneTimeCode:
        """
        Store ``code`` as the account's only code, and mail it out.

        The code is committed before it is mailed, so a code is never
        delivered that the directory does not hold. If delivery fails the
        row is put back the way it was, and whatever code was outstanding
        before stays valid.

        Parameters
        ----------
        account : :class:`.domain.Account`
        code : str

        Returns
        -------
        :class:`.domain.OneTimeCode`

        Raises
        ------
        :class:`.mail.DeliveryError`
        :class:`.ConcurrentIssue`
        :class:`.Unavailable`
            The code could not be stored. Nothing was mailed.

        """
        with util.transaction() as session:
            previous = codes.get_current(session, account.account_id)
            one_time_code = codes.replace(session, account.account_id, code)
        try:
            self.mailer.send_code(account.email, account.full_name, code,
                                  self.code_lifetime)
        except mail.DeliveryError:
            with util.transaction() as session:
                codes.restore(session, one_time_code, previous)
            logger.info('Withdrew undelivered code for %s',
                        account.account_id)
            raise
        logger.info('Issued a one-time code for %s', account.account_id)
        return one_time_code

    @retry(Unavailable, tries=3, delay=0.5, backoff=2)
    def redeem_one_time_code(self, account_id: str, code: str,
                             max_attempts: int = 5) -> Optional[str]:
        """
        Consume the outstanding code for an account.

        Returns
        -------
        str or None
            A fresh session secret if the code matched, otherwise ``None``.

        """
        if not codes.redeem(account_id, code, self.code_lifetime,
                            max_attempts):
            return None
        logger.info('Redeemed one-time code for %s', account_id)
        return secrets.token_urlsafe(32)

    def open_session(self, account_id: str, secret: str) \
            -> Tuple[domain.Session, str]:
        """
        Open a session for a verified account.

        Returns
        -------
        :class:`.domain.Session`
        str
            Cookie value proving the session. Not retrievable later.

        Raises
        ------
        :class:`.NoSuchAccount`
        :class:`.sessions.exceptions.SessionCreationFailed`

        """
        if self.get_account(account_id) is None:
            raise NoSuchAccount(f'No account {account_id}')
        session = self.sessions.create(account_id, secret)
        cookie = self.sessions.generate_cookie(session)
        logger.info('Opened session %s', session.session_id)
        return session, cookie

    def close_session(self, cookie: str) -> None:
        """
        Close the session proven by ``cookie``.

        Raises
        ------
        :class:`.sessions.exceptions.InvalidToken`
        :class:`.sessions.exceptions.ExpiredToken`
        :class:`.sessions.exceptions.UnknownSession`
        :class:`.sessions.exceptions.SessionDeletionFailed`

        """
        self.sessions.delete(cookie)

    def resolve_session(self, cookie: str) -> Optional[domain.Account]:
        """
        Get the account behind a live session.

        Returns ``None`` if the cookie does not prove a live session, or if
        the account it was opened for no longer exists.

        Raises
        ------
        :class:`.sessions.exceptions.Unavailable`
        :class:`.Unavailable`

        """
        try:
            session = self.sessions.load(cookie)
        except (InvalidToken, ExpiredToken, UnknownSession) as e:
            logger.debug('Cookie does not resolve: %s', e)
            return None
        return self.get_account(session.account_id)


def init_app(app: Flask) -> None:
    """Configure an application instance, and attach a :class:`.Directory`."""
    util.init_app(app)
    store.init_app(app)
    mail.init_app(app)
    app.config.setdefault('OTP_EXPIRY', '900')
    app.extensions['directory'] = Directory(
        store.get_session_store(app),
        mail.get_mailer(app),
        code_lifetime=int(app.config['OTP_EXPIRY'])
    )


def current_directory() -> Directory:
    """Get the :class:`.Directory` attached to the current application."""
    directory: Directory = current_app.extensions['directory']
    return directory
