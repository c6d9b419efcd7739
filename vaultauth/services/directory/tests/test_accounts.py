"""Tests for :mod:`vaultauth.services.directory.accounts`."""

from unittest import TestCase

from .... import domain
from .. import accounts, models
from ..exceptions import AccountExists
from .util import temporary_db


class TestCreateAccount(TestCase):
    """Tests for :func:`.accounts.create`."""

    def test_create(self):
        """A new account is stored with the role it was given."""
        with temporary_db() as session:
            account = accounts.create('Jane@Example.org ', 'Jane Doe',
                                      domain.Role.STUDENT, 'https://av/1')
            self.assertIsInstance(account, domain.Account)
            self.assertEqual(account.email, 'jane@example.org',
                             'Address is normalized before it is stored')
            self.assertEqual(account.role, domain.Role.STUDENT)
            self.assertEqual(account.avatar_ref, 'https://av/1')
            self.assertEqual(len(account.account_id), 36)

            db_account = session.get(models.DBAccount, account.account_id)
            self.assertEqual(db_account.role, 'student')
            self.assertGreater(db_account.joined_date, 0)

    def test_create_duplicate(self):
        """The unique constraint rejects a second account for an address."""
        with temporary_db():
            accounts.create('jane@example.org', 'Jane', domain.Role.STUDENT)
            with self.assertRaises(AccountExists):
                accounts.create('JANE@example.org', 'Other Jane',
                                domain.Role.STANDARD)

    def test_rollback_after_duplicate(self):
        """The session can be used again after a failed insert."""
        with temporary_db():
            accounts.create('jane@example.org', 'Jane', domain.Role.STUDENT)
            with self.assertRaises(AccountExists):
                accounts.create('jane@example.org', 'Jane',
                                domain.Role.STUDENT)
            other = accounts.create('joe@example.org', 'Joe',
                                    domain.Role.STANDARD)
            self.assertEqual(accounts.get_by_id(other.account_id), other)


class TestGetAccount(TestCase):
    """Tests for :func:`.accounts.get_by_email` and :func:`.get_by_id`."""

    def test_get_by_email(self):
        """Lookups by address do not care about case or padding."""
        with temporary_db():
            account = accounts.create('jane@example.org', 'Jane',
                                      domain.Role.STANDARD)
            self.assertEqual(accounts.get_by_email(' JANE@example.ORG'),
                             account)

    def test_get_missing(self):
        """``None`` is returned for unknown accounts."""
        with temporary_db():
            self.assertIsNone(accounts.get_by_email('nobody@example.org'))
            self.assertIsNone(accounts.get_by_id('no-such-id'))
