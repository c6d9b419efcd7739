"""Delivers one-time codes by e-mail."""

from typing import List
from email.message import EmailMessage
import logging
import smtplib

from flask import Flask

logger = logging.getLogger(__name__)

SUBJECT = 'Your sign-in code'
BODY = """Hello {name},

Your one-time sign-in code is:

    {code}

It expires in {minutes} minutes and can be used once. If you did not ask
for this code you can ignore this message.
"""


class DeliveryError(RuntimeError):
    """The SMTP service refused or failed to take the message."""


class Mailer(object):
    """Sends messages through an SMTP service."""

    def __init__(self, host: str = "", port: int = 0,
                 sender: str = 'no-reply@localhost',
                 suppress: bool = False) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._suppress = suppress
        self.outbox: List[EmailMessage] = []
        """Messages kept instead of sent, when delivery is suppressed."""

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port, timeout=10)

    def send_message(self, message: EmailMessage) -> None:
        """
        Hand a message to the SMTP service.

        Raises
        ------
        :class:`DeliveryError`

        """
        if self._suppress:
            logger.info('Mail suppressed, keeping message to %s',
                        message['To'])
            self.outbox.append(message)
            return
        try:
            with self._new_connection() as conn:
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error('Could not deliver mail to %s: %s',
                         message['To'], e)
            raise DeliveryError(f'Delivery failed: {e}') from e

    def send_code(self, email: str, name: str, code: str,
                  lifetime: int) -> None:
        """Send a one-time code to ``email``."""
        message = EmailMessage()
        message['Subject'] = SUBJECT
        message['From'] = self._sender
        message['To'] = email
        message.set_content(BODY.format(name=name or email, code=code,
                                        minutes=max(lifetime // 60, 1)))
        self.send_message(message)


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    app.config.setdefault('SMTP_HOST', 'localhost')
    app.config.setdefault('SMTP_PORT', '25')
    app.config.setdefault('MAIL_SENDER', 'no-reply@localhost')
    app.config.setdefault('MAIL_SUPPRESS_SEND', False)


def get_mailer(app: Flask) -> Mailer:
    """Get a new :class:`.Mailer` for the application."""
    config = app.config
    return Mailer(host=config['SMTP_HOST'],
                  port=int(config['SMTP_PORT']),
                  sender=config['MAIL_SENDER'],
                  suppress=bool(config['MAIL_SUPPRESS_SEND']))
