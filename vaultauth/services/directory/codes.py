"""Storage of one-time codes, one outstanding code per account."""

from typing import Optional
import hmac
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.session import Session

from ... import domain
from . import util
from .exceptions import ConcurrentIssue
from .models import DBOneTimeCode

logger = logging.getLogger(__name__)


def get_outstanding(account_id: str) -> Optional[domain.OneTimeCode]:
    """Get the unconsumed code for an account, if there is one."""
    with util.transaction() as session:
        db_code: Optional[DBOneTimeCode] = (
            session.query(DBOneTimeCode)
            .filter(DBOneTimeCode.account_id == account_id)
            .filter(DBOneTimeCode.consumed == 0)
            .first()
        )
        if db_code is None:
            return None
        return db_code.to_domain()


def replace(session: Session, account_id: str,
            code: str) -> domain.OneTimeCode:
    """
    Store ``code`` as the only outstanding code for an account.

    Any earlier code for the account is overwritten, consumed or not. The
    caller owns the transaction; the row is flushed but not committed so
    that the caller can still roll it back.

    Raises
    ------
    :class:`.ConcurrentIssue`
        Another transaction inserted a code for the same account first.

    """
    db_code = DBOneTimeCode(
        account_id=account_id,
        code=code,
        issued_at=util.now(),
        consumed=0,
        attempts=0
    )
    try:
        db_code = session.merge(db_code)
        session.flush()
    except IntegrityError as e:
        raise ConcurrentIssue(f'Concurrent issue for {account_id}') from e
    return db_code.to_domain()


def get_current(session: Session,
                account_id: str) -> Optional[domain.OneTimeCode]:
    """Get the code row for an account as it stands, consumed or not."""
    db_code: Optional[DBOneTimeCode] = session.get(DBOneTimeCode, account_id)
    if db_code is None:
        return None
    return db_code.to_domain()


def restore(session: Session, replacement: domain.OneTimeCode,
            previous: Optional[domain.OneTimeCode]) -> bool:
    """
    Undo a :func:`replace` whose code could not be delivered.

    The row goes back to ``previous`` (attempts and all), or is removed if
    the account had no code before. Nothing happens if the row no longer
    holds ``replacement``, e.g. because a newer code was issued meanwhile.

    Returns
    -------
    bool
        Whether the row was put back.

    """
    query = (
        session.query(DBOneTimeCode)
        .filter(DBOneTimeCode.account_id == replacement.account_id)
        .filter(DBOneTimeCode.code == replacement.code)
        .filter(DBOneTimeCode.issued_at == util.epoch(replacement.issued_at))
    )
    if previous is None:
        restored = query.delete(synchronize_session=False)
    else:
        restored = query.update({
            DBOneTimeCode.code: previous.code,
            DBOneTimeCode.issued_at: util.epoch(previous.issued_at),
            DBOneTimeCode.consumed: int(previous.consumed),
            DBOneTimeCode.attempts: previous.attempts
        }, synchronize_session=False)
    return restored == 1


def redeem(account_id: str, code: str, lifetime: int,
           max_attempts: int) -> bool:
    """
    Consume the outstanding code for an account if ``code`` matches it.

    Parameters
    ----------
    account_id : str
    code : str
        Code submitted by the user.
    lifetime : int
        Seconds a code stays valid after it was issued.
    max_attempts : int
        Failed submissions after which the code is burned.

    Returns
    -------
    bool
        ``True`` exactly once per issued code.

    """
    with util.transaction() as session:
        db_code: Optional[DBOneTimeCode] = session.get(DBOneTimeCode,
                                                       account_id)
        if db_code is None or db_code.consumed:
            logger.debug('No outstanding code for %s', account_id)
            return False

        expires_at = db_code.to_domain().expires_at(lifetime)
        if util.epoch(expires_at) <= util.now():
            logger.debug('Code for %s has expired', account_id)
            session.delete(db_code)
            return False

        if not hmac.compare_digest(db_code.code.encode('utf-8'),
                                   code.encode('utf-8')):
            db_code.attempts = (db_code.attempts or 0) + 1
            if db_code.attempts >= max_attempts:
                logger.info('Too many attempts, burning code for %s',
                            account_id)
                db_code.consumed = 1
            return False

        # Conditional delete, so that of two concurrent submissions, or a
        # submission racing a re-issue, exactly one claims this code.
        claimed = (
            session.query(DBOneTimeCode)
            .filter(DBOneTimeCode.account_id == account_id)
            .filter(DBOneTimeCode.code == db_code.code)
            .filter(DBOneTimeCode.issued_at == db_code.issued_at)
            .filter(DBOneTimeCode.consumed == 0)
            .delete(synchronize_session=False)
        )
        session.expunge(db_code)
    return claimed == 1
