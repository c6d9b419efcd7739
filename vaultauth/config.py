"""Flask configuration."""
import secrets
import os

#################### Landing surfaces ####################
STUDENT_LANDING_URL = os.environ.get('STUDENT_LANDING_URL', '/student')
"""Where accounts with the student role land after a successful sign-in."""

DEFAULT_LANDING_URL = os.environ.get('DEFAULT_LANDING_URL', '/')
"""Where standard accounts land after a successful sign-in."""

SIGN_IN_URL = os.environ.get('SIGN_IN_URL', '/sign-in')
"""Sign-in surface. Sign-out and the route guards always redirect here."""


#################### Directory database ####################
DIRECTORY_DATABASE_URI = os.environ.get('DIRECTORY_DATABASE_URI',
                                        'sqlite:///vaultauth.db')
"""SQLALCHEMY_DATABASE_URI for the account and one-time code tables."""

SQLALCHEMY_DATABASE_URI = DIRECTORY_DATABASE_URI

SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))

AVATAR_PLACEHOLDER_URL = os.environ.get(
    'AVATAR_PLACEHOLDER_URL',
    'https://img.freepik.com/free-psd/'
    '3d-illustration-person-with-sunglasses_23-2149436188.jpg'
)
"""Avatar attached to every new account."""


#################### Session store ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', 0)))
"""Use the fakeredis library instead of a redis service.

Useful for testing and dev."""

JWT_SECRET = os.environ.get('JWT_SECRET', 'foosecret')
"""
Signs the session cookie and the session records in redis.

Must be the same for every worker, and must be overridden in production.
"""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '36000')
"""Lifetime of a session in seconds."""

AUTH_SESSION_COOKIE_NAME = os.environ.get('AUTH_SESSION_COOKIE_NAME',
                                          'vault_session')
AUTH_SESSION_COOKIE_SECURE = bool(int(os.environ.get(
    'AUTH_SESSION_COOKIE_SECURE', '1')))


#################### One-time codes ####################
OTP_LENGTH = os.environ.get('OTP_LENGTH', '6')

OTP_EXPIRY = os.environ.get('OTP_EXPIRY', '900')
"""Seconds a code stays valid after it was issued."""

OTP_RESEND_INTERVAL = os.environ.get('OTP_RESEND_INTERVAL', '30')
"""Minimum seconds between two codes for the same account. 0 disables."""

OTP_MAX_ATTEMPTS = os.environ.get('OTP_MAX_ATTEMPTS', '5')
"""Failed submissions after which the outstanding code is burned."""


#################### Mail ####################
SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
SMTP_PORT = os.environ.get('SMTP_PORT', '25')
MAIL_SENDER = os.environ.get('MAIL_SENDER', 'no-reply@localhost')

MAIL_SUPPRESS_SEND = bool(int(os.environ.get('MAIL_SUPPRESS_SEND', 0)))
"""Keep messages in an in-memory outbox instead of talking to SMTP."""


#################### Minor configs ##############################
SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))

VERSION = '0.1.0'
