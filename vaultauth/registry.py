"""
Account registry.

Keeps one account per e-mail address. The role of an account is attached
when the account is created and is not touched afterwards.
"""

from typing import Optional
import logging

from . import domain
from .exceptions import DuplicateAccount, UnknownAccount
from .services.directory import Directory
from .services.directory.exceptions import AccountExists

logger = logging.getLogger(__name__)


class AccountRegistry(object):
    """Looks up and creates accounts through the directory."""

    def __init__(self, directory: Directory, avatar_ref: str = '') -> None:
        self.directory = directory
        self.avatar_ref = avatar_ref

    def find_by_email(self, email: str) -> Optional[domain.Account]:
        """Get the account registered with ``email``, if any."""
        return self.directory.lookup_account_by_email(email)

    def get(self, account_id: str) -> Optional[domain.Account]:
        """Get an account by identifier."""
        return self.directory.get_account(account_id)

    def resolve(self, target: str) -> Optional[domain.Account]:
        """Get an account by e-mail address or by identifier."""
        if '@' in target:
            return self.find_by_email(target)
        return self.get(target)

    def require(self, target: str) -> domain.Account:
        """
        Like :meth:`resolve`, but the account must exist.

        Raises
        ------
        :class:`.UnknownAccount`

        """
        account = self.resolve(target)
        if account is None:
            raise UnknownAccount('No such account')
        return account

    def create(self, email: str, full_name: str,
               role: domain.Role) -> domain.Account:
        """
        Register a new account.

        Parameters
        ----------
        email : str
        full_name : str
        role : :class:`.domain.Role`
            Explicit choice made at sign-up.

        Returns
        -------
        :class:`.domain.Account`

        Raises
        ------
        :class:`.DuplicateAccount`
            Either the lookup found an account for ``email``, or a concurrent
            registration for the same address won the race.

        """
        if self.find_by_email(email) is not None:
            raise DuplicateAccount(f'{email} is already registered')
        try:
            account = self.directory.create_account(email, full_name, role,
                                                    self.avatar_ref)
        except AccountExists as e:
            raise DuplicateAccount(f'{email} is already registered') from e
        logger.debug('Registered %s as %s', account.account_id,
                     account.role.value)
        return account
