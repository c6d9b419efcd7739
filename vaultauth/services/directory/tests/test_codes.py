"""Tests for :mod:`vaultauth.services.directory.codes`."""

from unittest import TestCase, mock

from sqlalchemy.exc import OperationalError

from .... import domain
from ... import mail
from .. import Directory, accounts, codes, models, util
from ..exceptions import Unavailable
from .util import temporary_db

LIFETIME = 900


def _issue(account_id: str, code: str) -> domain.OneTimeCode:
    with util.transaction() as session:
        return codes.replace(session, account_id, code)


class TestReplace(TestCase):
    """Tests for :func:`.codes.replace`."""

    def test_replace(self):
        """There is at most one code per account; the last one wins."""
        with temporary_db() as session:
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '111111')
            _issue(account.account_id, '222222')
            rows = session.query(models.DBOneTimeCode).all()
            self.assertEqual(len(rows), 1)
            self.assertEqual(rows[0].code, '222222')

            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '222222')
            self.assertFalse(outstanding.consumed)
            self.assertEqual(outstanding.attempts, 0)

    def test_rolled_back_replacement(self):
        """If the caller rolls back, the earlier code stays outstanding."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '111111')
            with self.assertRaises(RuntimeError):
                with util.transaction() as session:
                    codes.replace(session, account.account_id, '222222')
                    raise RuntimeError('delivery blew up')
            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '111111')


class TestRedeem(TestCase):
    """Tests for :func:`.codes.redeem`."""

    def test_redeem_once(self):
        """A matching code can be redeemed exactly once."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '123456')
            self.assertTrue(codes.redeem(account.account_id, '123456',
                                         LIFETIME, 5))
            self.assertFalse(codes.redeem(account.account_id, '123456',
                                          LIFETIME, 5),
                             'A redeemed code cannot be replayed')
            self.assertIsNone(codes.get_outstanding(account.account_id))

    def test_redeem_superseded(self):
        """Only the most recently issued code can be redeemed."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '111111')
            _issue(account.account_id, '222222')
            self.assertFalse(codes.redeem(account.account_id, '111111',
                                          LIFETIME, 5))
            self.assertTrue(codes.redeem(account.account_id, '222222',
                                         LIFETIME, 5))

    def test_redeem_unknown_account(self):
        """Nothing is redeemed for an account without a code."""
        with temporary_db():
            self.assertFalse(codes.redeem('nope', '123456', LIFETIME, 5))

    def test_redeem_expired(self):
        """Expired codes do not verify, and are cleaned up."""
        with temporary_db() as session:
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '123456')
            later = util.now() + LIFETIME + 1
            with mock.patch(f'{codes.__name__}.util.now',
                            return_value=later):
                self.assertFalse(codes.redeem(account.account_id, '123456',
                                              LIFETIME, 5))
            self.assertEqual(session.query(models.DBOneTimeCode).count(), 0)

    def test_redeem_until_expiry(self):
        """A code verifies up to the moment it expires, and not after."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            issued = _issue(account.account_id, '123456')
            expires_at = util.epoch(issued.expires_at(LIFETIME))
            with mock.patch(f'{codes.__name__}.util.now',
                            return_value=expires_at):
                self.assertFalse(codes.redeem(account.account_id, '123456',
                                              LIFETIME, 5))

            _issue(account.account_id, '654321')
            issued = codes.get_outstanding(account.account_id)
            expires_at = util.epoch(issued.expires_at(LIFETIME))
            with mock.patch(f'{codes.__name__}.util.now',
                            return_value=expires_at - 1):
                self.assertTrue(codes.redeem(account.account_id, '654321',
                                             LIFETIME, 5))

    def test_attempt_limit(self):
        """The code is burned after too many wrong submissions."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '123456')
            for _ in range(2):
                self.assertFalse(codes.redeem(account.account_id, '000000',
                                              LIFETIME, 3))
            self.assertEqual(
                codes.get_outstanding(account.account_id).attempts, 2
            )
            self.assertFalse(codes.redeem(account.account_id, '000000',
                                          LIFETIME, 3))
            self.assertIsNone(codes.get_outstanding(account.account_id))
            self.assertFalse(codes.redeem(account.account_id, '123456',
                                          LIFETIME, 3),
                             'A burned code does not verify')

    def test_new_code_after_burn(self):
        """Issuing a new code recovers from a burned one."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '123456')
            codes.redeem(account.account_id, '000000', LIFETIME, 1)
            _issue(account.account_id, '654321')
            self.assertTrue(codes.redeem(account.account_id, '654321',
                                         LIFETIME, 1))


class TestRestore(TestCase):
    """Tests for :func:`.codes.restore`."""

    def test_restore_previous(self):
        """The earlier code comes back with its attempt count."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '111111')
            codes.redeem(account.account_id, '000000', LIFETIME, 5)
            with util.transaction() as session:
                previous = codes.get_current(session, account.account_id)
            replacement = _issue(account.account_id, '222222')
            with util.transaction() as session:
                self.assertTrue(codes.restore(session, replacement,
                                              previous))
            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '111111')
            self.assertEqual(outstanding.attempts, 1)
            self.assertEqual(outstanding.issued_at, previous.issued_at)

    def test_restore_nothing(self):
        """Without an earlier code the replacement is removed."""
        with temporary_db() as session:
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            replacement = _issue(account.account_id, '222222')
            with util.transaction() as txn:
                self.assertTrue(codes.restore(txn, replacement, None))
            self.assertEqual(session.query(models.DBOneTimeCode).count(), 0)

    def test_newer_code_wins(self):
        """A code issued after the replacement is left alone."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            replacement = _issue(account.account_id, '222222')
            _issue(account.account_id, '333333')
            with util.transaction() as session:
                self.assertFalse(codes.restore(session, replacement, None))
            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '333333')


class TestIssueOneTimeCode(TestCase):
    """Tests for :meth:`.Directory.issue_one_time_code`."""

    def setUp(self):
        self.mailer = mail.Mailer(sender='vault@example.org', suppress=True)
        self.directory = Directory(mock.MagicMock(), self.mailer,
                                   code_lifetime=LIFETIME)

    def test_issue(self):
        """The code is stored and mailed."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            self.directory.issue_one_time_code(account, '123456')
            self.assertEqual(len(self.mailer.outbox), 1)
            self.assertIn('123456', self.mailer.outbox[0].get_content())
            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '123456')

    def test_store_fails(self):
        """Nothing is mailed if the code cannot be committed."""
        with temporary_db() as session:
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '111111')
            down = OperationalError('COMMIT', {}, Exception('gone away'))
            with mock.patch.object(session, 'commit', side_effect=down):
                with self.assertRaises(Unavailable):
                    self.directory.issue_one_time_code(account, '222222')
            self.assertEqual(self.mailer.outbox, [],
                             'A code that was not stored is never mailed')
            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '111111')
            self.assertTrue(codes.redeem(account.account_id, '111111',
                                         LIFETIME, 5))

    def test_delivery_fails(self):
        """The earlier code stays valid when the new one is not delivered."""
        with temporary_db():
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            _issue(account.account_id, '111111')
            codes.redeem(account.account_id, '000000', LIFETIME, 5)
            with mock.patch.object(self.mailer, 'send_code',
                                   side_effect=mail.DeliveryError('down')):
                with self.assertRaises(mail.DeliveryError):
                    self.directory.issue_one_time_code(account, '222222')
            outstanding = codes.get_outstanding(account.account_id)
            self.assertEqual(outstanding.code, '111111')
            self.assertEqual(outstanding.attempts, 1)
            self.assertFalse(codes.redeem(account.account_id, '222222',
                                          LIFETIME, 5),
                             'The undelivered code does not verify')
            self.assertTrue(codes.redeem(account.account_id, '111111',
                                         LIFETIME, 5))

    def test_first_delivery_fails(self):
        """An undelivered first code leaves no code behind."""
        with temporary_db() as session:
            account = accounts.create('a@example.org', 'A',
                                      domain.Role.STANDARD)
            with mock.patch.object(self.mailer, 'send_code',
                                   side_effect=mail.DeliveryError('down')):
                with self.assertRaises(mail.DeliveryError):
                    self.directory.issue_one_time_code(account, '222222')
            self.assertEqual(session.query(models.DBOneTimeCode).count(), 0)
