"""Testing helpers."""

from typing import Generator
from contextlib import contextmanager
from unittest import mock
import os
import re

from flask import Flask

from ..factory import create_web_app
from ..flow import AuthFlow
from ..otp import OTPIssuer
from ..registry import AccountRegistry
from ..services.directory import Directory, util
from ..sessions import SessionManager

TEST_CONFIG = {
    'CREATE_DB': '1',
    'DIRECTORY_DATABASE_URI': 'sqlite://',
    'REDIS_FAKE': '1',
    'MAIL_SUPPRESS_SEND': '1',
    'MAIL_SENDER': 'vault@example.org',
    'JWT_SECRET': 'foosecret',
    'OTP_RESEND_INTERVAL': '0',
    'AUTH_SESSION_COOKIE_SECURE': '0',
    'LOGLEVEL': '10'
}


@contextmanager
def temporary_app(**config: str) -> Generator[Flask, None, None]:
    """Provide an application with an in-memory directory and fake redis."""
    env = dict(TEST_CONFIG, **config)
    with mock.patch.dict(os.environ, env):
        app = create_web_app()
    with app.app_context():
        try:
            yield app
        finally:
            util.drop_all()


def directory(app: Flask) -> Directory:
    """Get the directory attached to ``app``."""
    the_directory: Directory = app.extensions['directory']
    return the_directory


def new_flow(app: Flask, resend_interval: int = 0,
             max_attempts: int = 5) -> AuthFlow:
    """Get an idle flow wired to the directory of ``app``."""
    the_directory = directory(app)
    return AuthFlow(AccountRegistry(the_directory, avatar_ref='avatar.png'),
                    OTPIssuer(the_directory, resend_interval=resend_interval,
                              max_attempts=max_attempts),
                    SessionManager(the_directory))


def last_code(app: Flask) -> str:
    """Get the code from the last message that would have been mailed."""
    message = directory(app).mailer.outbox[-1]
    match = re.search(r'\b(\d{6})\b', message.get_content())
    assert match is not None
    return match.group(1)


def sent_count(app: Flask) -> int:
    """Number of messages that would have been mailed."""
    return len(directory(app).mailer.outbox)
