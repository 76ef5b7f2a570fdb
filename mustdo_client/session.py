"""Client-side session state.

The current user and token live in an explicit ``ClientSession`` object that
is handed to the API client and the board, instead of module globals. Its
lifecycle is explicit too: ``load()`` restores a persisted token at start-up,
``start()`` records a fresh login, ``clear()`` is logout.
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class SessionUser:
    id: int
    username: str


class ClientSession:
    def __init__(self, token_file: Optional[str] = None):
        # None keeps the session in memory only
        self.token_file = token_file
        self.token: Optional[str] = None
        self.user: Optional[SessionUser] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def auth_headers(self) -> dict:
        if not self.token:
            return {}
        return {'Authorization': f'Bearer {self.token}'}

    def load(self) -> bool:
        """Restore a persisted session; returns whether one was found."""
        if not self.token_file or not os.path.exists(self.token_file):
            return False
        try:
            with open(self.token_file, 'r') as f:
                data = json.load(f)
            token = data['token']
            user = data.get('user') or {}
            self.token = token
            self.user = SessionUser(id=int(user['id']), username=str(user['username'])) if user else None
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning('ignoring unreadable session file %s', self.token_file)
            self.token = None
            self.user = None
            return False
        return True

    def start(self, token: str, user: dict) -> None:
        """Adopt the token and user from a login or registration response."""
        self.token = token
        self.user = SessionUser(id=int(user['id']), username=str(user['username']))
        self._persist()

    def clear(self) -> None:
        """Forget the session in memory and on disk."""
        self.token = None
        self.user = None
        if self.token_file and os.path.exists(self.token_file):
            try:
                os.remove(self.token_file)
            except OSError:
                logger.warning('could not remove session file %s', self.token_file)

    def _persist(self) -> None:
        if not self.token_file:
            return
        os.makedirs(os.path.dirname(os.path.abspath(self.token_file)), exist_ok=True)
        payload = {'token': self.token}
        if self.user is not None:
            payload['user'] = {'id': self.user.id, 'username': self.user.username}
        with open(self.token_file, 'w') as f:
            json.dump(payload, f)
        try:
            os.chmod(self.token_file, 0o600)
        except OSError:
            pass
