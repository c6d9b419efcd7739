"""Tests for :mod:`vaultauth.otp`."""

from unittest import TestCase, mock

from .. import domain, otp
from ..exceptions import DeliveryFailed, ResendThrottled, \
    InvalidOrExpiredCode
from ..services.mail import DeliveryError
from .util import temporary_app, directory, last_code, sent_count


class TestGenerateCode(TestCase):
    """Tests for :func:`.otp.generate_code`."""

    def test_generate(self):
        """Codes are made of the requested number of digits."""
        for _ in range(20):
            code = otp.generate_code()
            self.assertEqual(len(code), 6)
            self.assertTrue(code.isdigit())
        self.assertEqual(len(otp.generate_code(8)), 8)


class TestIssue(TestCase):
    """Tests for :meth:`.OTPIssuer.issue`."""

    def setUp(self):
        """Register an account."""
        self.context = temporary_app()
        self.app = self.context.__enter__()
        self.directory = directory(self.app)
        self.account = self.directory.create_account(
            'jane@example.org', 'Jane', domain.Role.STANDARD
        )

    def tearDown(self):
        """Drop the database."""
        self.context.__exit__(None, None, None)

    def test_issue(self):
        """A code is stored and mailed, and the account ID is returned."""
        issuer = otp.OTPIssuer(self.directory, resend_interval=0)
        token = issuer.issue(self.account)
        self.assertEqual(token, self.account.account_id)
        self.assertEqual(sent_count(self.app), 1)
        outstanding = self.directory.outstanding_code(token)
        self.assertEqual(outstanding.code, last_code(self.app))

    def test_throttled(self):
        """A second code cannot be asked for right away."""
        issuer = otp.OTPIssuer(self.directory, resend_interval=30)
        issuer.issue(self.account)
        with self.assertRaises(ResendThrottled):
            issuer.issue(self.account)
        self.assertEqual(sent_count(self.app), 1)

    def test_throttle_disabled(self):
        """An interval of zero does not throttle."""
        issuer = otp.OTPIssuer(self.directory, resend_interval=0)
        issuer.issue(self.account)
        issuer.issue(self.account)
        self.assertEqual(sent_count(self.app), 2)

    def test_delivery_failed(self):
        """If the code cannot be mailed, the earlier code stays valid."""
        issuer = otp.OTPIssuer(self.directory, resend_interval=0)
        issuer.issue(self.account)
        first = last_code(self.app)
        with mock.patch.object(self.directory.mailer, 'send_message',
                               side_effect=DeliveryError('nope')):
            with self.assertRaises(DeliveryFailed):
                issuer.issue(self.account)
        self.assertEqual(
            self.directory.outstanding_code(self.account.account_id).code,
            first
        )
        self.assertTrue(issuer.verify(self.account.account_id, first))


class TestVerify(TestCase):
    """Tests for :meth:`.OTPIssuer.verify`."""

    def setUp(self):
        """Register an account and send it a code."""
        self.context = temporary_app()
        self.app = self.context.__enter__()
        self.directory = directory(self.app)
        self.account = self.directory.create_account(
            'jane@example.org', 'Jane', domain.Role.STANDARD
        )
        self.issuer = otp.OTPIssuer(self.directory, resend_interval=0,
                                    max_attempts=3)
        self.token = self.issuer.issue(self.account)
        self.code = last_code(self.app)

    def tearDown(self):
        """Drop the database."""
        self.context.__exit__(None, None, None)

    def _wrong(self) -> str:
        return '000000' if self.code != '000000' else '111111'

    def test_verify(self):
        """A correct code yields a session secret."""
        secret = self.issuer.verify(self.token, self.code)
        self.assertIsInstance(secret, str)
        self.assertGreater(len(secret), 20)

    def test_replay(self):
        """A code verifies only once."""
        self.issuer.verify(self.token, self.code)
        with self.assertRaises(InvalidOrExpiredCode):
            self.issuer.verify(self.token, self.code)

    def test_superseded(self):
        """Issuing another code invalidates the first."""
        self.issuer.issue(self.account)
        second = last_code(self.app)
        if second != self.code:
            with self.assertRaises(InvalidOrExpiredCode):
                self.issuer.verify(self.token, self.code)
        self.assertTrue(self.issuer.verify(self.token, second))

    def test_malformed(self):
        """Malformed input is rejected like any other bad code."""
        for bad in ['', '12345', '1234567', 'abcdef', None,
                    '\u0661\u0662\u0663\u0664\u0665\u0666']:
            with self.assertRaises(InvalidOrExpiredCode):
                self.issuer.verify(self.token, bad)
        with self.assertRaises(InvalidOrExpiredCode):
            self.issuer.verify('', self.code)
        self.assertTrue(self.issuer.verify(self.token, self.code),
                        'Malformed input does not count as an attempt')

    def test_unknown_token(self):
        """Codes for unknown accounts do not verify."""
        with self.assertRaises(InvalidOrExpiredCode):
            self.issuer.verify('no-such-account', self.code)

    def test_attempt_limit(self):
        """The code is burned after too many wrong submissions."""
        for _ in range(3):
            with self.assertRaises(InvalidOrExpiredCode):
                self.issuer.verify(self.token, self._wrong())
        with self.assertRaises(InvalidOrExpiredCode):
            self.issuer.verify(self.token, self.code)

    def test_expired(self):
        """Codes stop verifying once their lifetime has passed."""
        self.directory.code_lifetime = 0
        with self.assertRaises(InvalidOrExpiredCode):
            self.issuer.verify(self.token, self.code)
