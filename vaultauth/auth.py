"""Attaches the signed-in account to each request."""

from typing import Optional
import logging

from flask import Flask, request

from .services.directory import current_directory
from .services.directory.util import current_session
from .sessions import SessionManager

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Resolves the session cookie on every request.

    The account behind the cookie, or ``None``, is placed on
    ``request.auth``. Intended for use in a Flask application factory:

    .. code-block:: python

       from flask import Flask
       from vaultauth.auth import Auth


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_pyfile('config.py')
          directory.init_app(app)
          Auth(app)
          return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Attach :meth:`.load_account` to the Flask app.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        self.app.before_request(self.load_account)
        self.app.config.setdefault('AUTH_SESSION_COOKIE_NAME',
                                   'vault_session')

        @self.app.teardown_request
        def teardown_request(exception: Optional[BaseException]) -> None:
            if exception:
                current_session().rollback()

    def load_account(self) -> None:
        """Look for a live session, and attach its account to the request."""
        cookie_name = self.app.config['AUTH_SESSION_COOKIE_NAME']
        cookie = request.cookies.get(cookie_name, None)
        account = SessionManager(current_directory()).current(cookie)
        if account is not None:
            logger.debug('Request from account %s', account.account_id)
        request.auth = account  # type: ignore
