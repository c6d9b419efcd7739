"""
Internal service API for the distributed session store.

Used to create, delete, and verify account sessions.
"""

from typing import Any, Optional
from datetime import datetime, timedelta
import hashlib
import hmac
import logging
import uuid

import dateutil.parser
import fakeredis
import jwt
import redis
from redis.cluster import RedisCluster
from flask import Flask
from pytz import UTC

from ... import domain
from .exceptions import SessionCreationFailed, SessionDeletionFailed, \
    UnknownSession, InvalidToken, ExpiredToken, Unavailable

logger = logging.getLogger(__name__)


def _digest(secret: str) -> str:
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


class SessionStore(object):
    """
    Manages a connection to Redis.

    In fact, the StrictRedis instance is thread safe and connections are
    attached at the time a command is executed. This class simply provides a
    container for configuration.
    """

    def __init__(self, host: str, port: int, db: int, secret: str,
                 duration: int = 36000, cluster: bool = False,
                 fake: bool = False) -> None:
        """Open the connection to Redis."""
        self.r: Any
        if fake:
            logger.debug('Using fake Redis')
            self.r = fakeredis.FakeStrictRedis()
        elif cluster:
            logger.debug('New Redis cluster connection at %s, port %s',
                         host, port)
            self.r = RedisCluster(host=host, port=port)
        else:
            logger.debug('New Redis connection at %s, port %s', host, port)
            self.r = redis.StrictRedis(host=host, port=port, db=db)
        self._secret = secret
        self._duration = duration

    def create(self, account_id: str, secret: str,
               session_id: Optional[str] = None) -> domain.Session:
        """
        Create a new session.

        Parameters
        ----------
        account_id : str
            The account that proved ownership of its address.
        secret : str
            Session secret handed out by the directory when the code was
            redeemed. Only its digest is written to the store.

        Returns
        -------
        :class:`.domain.Session`
            The only instance on which :attr:`.domain.Session.secret` is set.

        """
        if session_id is None:
            session_id = str(uuid.uuid4())
        created_at = datetime.now(tz=UTC)
        expires_at = created_at + timedelta(seconds=self._duration)
        record = {
            'session_id': session_id,
            'account_id': account_id,
            'created_at': created_at.isoformat(),
            'expires_at': expires_at.isoformat(),
            'secret_digest': _digest(secret)
        }
        try:
            self.r.set(session_id, self._encode(record), ex=self._duration)
        except redis.exceptions.ConnectionError as e:
            raise SessionCreationFailed(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionCreationFailed(f'Failed to create: {e}') from e

        return domain.Session(
            session_id=session_id,
            account_id=account_id,
            created_at=created_at,
            expires_at=expires_at,
            secret=secret
        )

    def generate_cookie(self, session: domain.Session) -> str:
        """Generate a cookie from a freshly created :class:`domain.Session`."""
        if session.secret is None:
            raise ValueError('Cookie can only be generated at creation')
        return self._pack_cookie({
            'account_id': session.account_id,
            'session_id': session.session_id,
            'secret': session.secret,
            'expires': session.expires_at.isoformat()
        })

    def delete(self, cookie: str) -> None:
        """
        Delete the session that a cookie proves.

        Parameters
        ----------
        cookie : str

        Raises
        ------
        :class:`InvalidToken`
        :class:`ExpiredToken`
        :class:`UnknownSession`
        :class:`SessionDeletionFailed`

        """
        session = self.load(cookie)
        self.delete_by_id(session.session_id)

    def delete_by_id(self, session_id: str) -> None:
        """
        Delete a session in the key-value store by ID.

        Parameters
        ----------
        session_id : str
        """
        try:
            self.r.delete(session_id)
        except redis.exceptions.ConnectionError as e:
            raise SessionDeletionFailed(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e
        logger.info('Deleted session %s', session_id)

    def load(self, cookie: str) -> domain.Session:
        """Load a session using a session cookie."""
        cookie_data = self._unpack_cookie(cookie)
        try:
            expires = dateutil.parser.parse(cookie_data['expires'])
            session_id = cookie_data['session_id']
            secret = cookie_data['secret']
            account_id = cookie_data['account_id']
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken('Token payload malformed') from e

        if expires <= datetime.now(tz=UTC):
            raise ExpiredToken('Session has expired')

        record = self._load_record(session_id)
        if not hmac.compare_digest(record.get('secret_digest', ''),
                                   _digest(secret)) \
                or record.get('account_id') != account_id:
            raise InvalidToken('Invalid token; likely a forgery')

        session = domain.Session(
            session_id=record['session_id'],
            account_id=record['account_id'],
            created_at=dateutil.parser.parse(record['created_at']),
            expires_at=dateutil.parser.parse(record['expires_at'])
        )
        if session.expired:
            raise ExpiredToken('Session has expired')
        return session

    def _load_record(self, session_id: str) -> dict:
        try:
            session_jwt = self.r.get(session_id)
        except redis.exceptions.RedisError as e:
            raise Unavailable(f'Session store unavailable: {e}') from e
        if not session_jwt:
            logger.debug('No such session: %s', session_id)
            raise UnknownSession(f'Failed to find session {session_id}')
        return self._decode(session_jwt)

    def _encode(self, record: dict) -> str:
        return jwt.encode(record, self._secret, algorithm='HS256')

    def _decode(self, session_jwt: str) -> dict:
        try:
            record: dict = jwt.decode(session_jwt, self._secret,
                                      algorithms=['HS256'])
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Invalid or corrupted session record') from e
        return record

    def _unpack_cookie(self, cookie: str) -> dict:
        try:
            data = dict(jwt.decode(cookie, self._secret,
                                   algorithms=['HS256']))
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Session cookie is malformed') from e
        return data

    def _pack_cookie(self, cookie_data: dict) -> str:
        return jwt.encode(cookie_data, self._secret, algorithm='HS256')


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    config = app.config
    config.setdefault('REDIS_HOST', 'localhost')
    config.setdefault('REDIS_PORT', '6379')
    config.setdefault('REDIS_DATABASE', '0')
    config.setdefault('REDIS_CLUSTER', '0')
    config.setdefault('REDIS_FAKE', False)
    config.setdefault('JWT_SECRET', 'foosecret')
    config.setdefault('SESSION_DURATION', '36000')


def get_session_store(app: Flask) -> SessionStore:
    """Get a new session store for the application."""
    config = app.config
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    cluster = str(config.get('REDIS_CLUSTER', '0')) == '1'
    fake = bool(config.get('REDIS_FAKE', False))
    secret = config['JWT_SECRET']
    duration = int(config.get('SESSION_DURATION', '36000'))
    return SessionStore(host, port, db, secret, duration, cluster=cluster,
                        fake=fake)
