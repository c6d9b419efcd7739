"""Exchanges verified codes for sessions, and resolves session cookies."""

from typing import Optional, Tuple
import logging

from . import domain
from .exceptions import SessionEstablishFailed
from .services.directory import Directory
from .services.directory.exceptions import NoSuchAccount, \
    Unavailable as DirectoryUnavailable
from .services.sessions.exceptions import SessionCreationFailed, \
    SessionDeletionFailed, InvalidToken, ExpiredToken, UnknownSession, \
    Unavailable as SessionsUnavailable

logger = logging.getLogger(__name__)


class SessionManager(object):
    """Opens, resolves and revokes sessions through the directory."""

    def __init__(self, directory: Directory) -> None:
        self.directory = directory

    def establish(self, account_id: str,
                  secret: str) -> Tuple[domain.Session, str]:
        """
        Open a session after a code was verified.

        Returns
        -------
        :class:`.domain.Session`
        str
            The cookie value. This is the only time it is available.

        Raises
        ------
        :class:`.SessionEstablishFailed`

        """
        try:
            return self.directory.open_session(account_id, secret)
        except (SessionCreationFailed, NoSuchAccount,
                DirectoryUnavailable) as e:
            logger.error('Could not open session for %s: %s', account_id, e)
            raise SessionEstablishFailed('Could not open session') from e

    def current(self, cookie: Optional[str]) -> Optional[domain.Account]:
        """Get the account behind a session cookie, or ``None``."""
        if not cookie:
            return None
        try:
            return self.directory.resolve_session(cookie)
        except (SessionsUnavailable, DirectoryUnavailable) as e:
            logger.error('Could not resolve session: %s', e)
        except Exception as e:   # Callers rely on this never raising.
            logger.exception('Unexpected error resolving session: %s', e)
        return None

    def revoke(self, cookie: Optional[str]) -> None:
        """Close the session behind a cookie, if there is one."""
        if not cookie:
            return
        try:
            self.directory.close_session(cookie)
        except (InvalidToken, ExpiredToken, UnknownSession) as e:
            logger.debug('Nothing to revoke: %s', e)
        except (SessionDeletionFailed, SessionsUnavailable) as e:
            logger.error('Could not revoke session: %s', e)
