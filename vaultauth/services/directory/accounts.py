"""Provide methods for working with accounts in the directory database."""

from typing import Optional
import logging
import uuid

from sqlalchemy.exc import IntegrityError

from ... import domain
from . import util
from .exceptions import AccountExists
from .models import DBAccount

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Addresses are compared trimmed and lower-cased."""
    return email.strip().lower()


def get_by_email(email: str) -> Optional[domain.Account]:
    """
    Load the account registered with an e-mail address.

    Parameters
    ----------
    email : str

    Returns
    -------
    :class:`.domain.Account` or None

    """
    with util.transaction() as session:
        db_account: Optional[DBAccount] = (
            session.query(DBAccount)
            .filter(DBAccount.email == normalize_email(email))
            .first()
        )
        if db_account is None:
            return None
        return db_account.to_domain()


def get_by_id(account_id: str) -> Optional[domain.Account]:
    """Load account data from the database."""
    with util.transaction() as session:
        db_account: Optional[DBAccount] = session.get(DBAccount, account_id)
        if db_account is None:
            return None
        return db_account.to_domain()


def create(email: str, full_name: str, role: domain.Role,
           avatar_ref: str = '') -> domain.Account:
    """
    Create a new account.

    Parameters
    ----------
    email : str
        Address for the account. Must not be registered yet.
    full_name : str
    role : :class:`.domain.Role`
        Stored as given; never changed afterwards.
    avatar_ref : str

    Returns
    -------
    :class:`.domain.Account`

    Raises
    ------
    :class:`.AccountExists`
        The unique constraint on the address rejected the new row. This is
        what settles two concurrent registrations for the same address.

    """
    db_account = DBAccount(
        account_id=str(uuid.uuid4()),
        email=normalize_email(email),
        full_name=full_name,
        role=role.value,
        avatar_ref=avatar_ref,
        joined_date=util.now()
    )
    try:
        with util.transaction() as session:
            session.add(db_account)
            session.flush()
            account = db_account.to_domain()
    except IntegrityError as e:
        logger.debug('Account for %s already exists: %s', email, e)
        raise AccountExists(f'{email} is already registered') from e
    logger.info('Created account %s', account.account_id)
    return account
