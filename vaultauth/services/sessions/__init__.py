"""
Integration with the distributed session store.

Session data is held in a key-value store, keyed by session ID. When a
session is created, a cookie value is generated (a JSON web token) that
carries the session ID, the account ID and the session secret. The store
itself only keeps a digest of the secret, so a session can be proven with the
cookie but not reconstructed from the store.

See :mod:`.store`.
"""

from . import store, exceptions
from .store import SessionStore
