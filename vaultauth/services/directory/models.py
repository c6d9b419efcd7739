"""Directory database models."""

from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from pytz import UTC
from sqlalchemy import Column, Enum, ForeignKey, Integer, SmallInteger, \
    String, text
from sqlalchemy.orm import relationship

from ... import domain

db: SQLAlchemy = SQLAlchemy()


class DBAccount(db.Model):  # type: ignore
    """
    Account table.

    +-------------+--------------+------+-----+---------+
    | Field       | Type         | Null | Key | Default |
    +-------------+--------------+------+-----+---------+
    | account_id  | varchar(36)  | NO   | PRI | NULL    |
    | email       | varchar(255) | NO   | UNI | NULL    |
    | full_name   | varchar(255) | NO   |     | ''      |
    | role        | enum         | NO   |     | NULL    |
    | avatar_ref  | varchar(1024)| NO   |     | ''      |
    | joined_date | int(11)      | NO   |     | 0       |
    +-------------+--------------+------+-----+---------+
    """

    __tablename__ = 'vault_accounts'

    account_id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False, server_default=text("''"))
    role = Column(Enum('student', 'standard', name='account_role'),
                  nullable=False)
    avatar_ref = Column(String(1024), nullable=False,
                        server_default=text("''"))
    joined_date = Column(Integer, nullable=False, server_default=text("'0'"))

    def to_domain(self) -> domain.Account:
        """Cast to a :class:`.domain.Account`."""
        return domain.Account(
            account_id=self.account_id,
            email=self.email,
            full_name=self.full_name,
            role=domain.Role(self.role),
            avatar_ref=self.avatar_ref
        )


class DBOneTimeCode(db.Model):  # type: ignore
    """
    Outstanding one-time code, at most one per account.

    Keying on ``account_id`` means that storing a new code for an account
    overwrites the previous one.
    """

    __tablename__ = 'vault_one_time_codes'

    account_id = Column(ForeignKey('vault_accounts.account_id'),
                        primary_key=True)
    code = Column(String(16), nullable=False)
    issued_at = Column(Integer, nullable=False, server_default=text("'0'"))
    consumed = Column(SmallInteger, nullable=False, server_default=text("'0'"))
    attempts = Column(SmallInteger, nullable=False, server_default=text("'0'"))

    account = relationship('DBAccount')

    def to_domain(self) -> domain.OneTimeCode:
        """Cast to a :class:`.domain.OneTimeCode`."""
        return domain.OneTimeCode(
            account_id=self.account_id,
            code=self.code,
            issued_at=datetime.fromtimestamp(self.issued_at, tz=UTC),
            consumed=bool(self.consumed),
            attempts=self.attempts or 0
        )
