"""HTTP client for the MustDo API."""

import uuid
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import requests

from mustdo.errors import AuthRequired, TransientError, error_from_payload
from mustdo.utils import format_wire_date, parse_wire_date

from .config import Config
from .session import ClientSession

logger = logging.getLogger(__name__)

# Sentinel for "leave this field alone" in update_task.
UNSET: Any = object()


@dataclass(frozen=True)
class TaskItem:
    """A task as the client sees it: due dates are plain calendar dates."""
    id: str
    title: str
    due_date: Optional[date] = None
    completed: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> 'TaskItem':
        created = data.get('createdAt')
        created_at = None
        if created:
            try:
                created_at = datetime.fromisoformat(created.replace('Z', '+00:00'))
            except ValueError:
                logger.warning('unparseable createdAt %r for task %s', created, data.get('id'))
        return cls(
            id=str(data['id']),
            title=data.get('title') or '',
            # reconstruct as a local calendar day, never via a UTC instant
            due_date=parse_wire_date(data.get('dueDate')),
            completed=bool(data.get('completed', False)),
            created_at=created_at,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'dueDate': format_wire_date(self.due_date),
            'completed': self.completed,
        }


class TaskClient:
    """Thin wrapper over the REST API.

    Every failure is raised as a ``mustdo.errors`` exception: error bodies
    are mapped back by their ``code``; connection problems and bodies that
    cannot be decoded become TransientError. Nothing is retried.
    """

    def __init__(self, session: ClientSession, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, http: Optional[requests.Session] = None,
                 config: Optional[Config] = None):
        if base_url is None or timeout is None:
            config = config or Config()
            base_url = base_url or config.server_url
            timeout = timeout if timeout is not None else config.timeout
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session
        self.http = http or requests.Session()

    # ---- plumbing ----

    def _request(self, method: str, path: str, *, auth: bool = True, **kwargs) -> Any:
        headers = dict(kwargs.pop('headers', None) or {})
        if auth:
            if not self.session.authenticated:
                raise AuthRequired('Please log in first')
            headers.update(self.session.auth_headers())
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning('%s %s failed: %s', method, path, e)
            raise TransientError('Could not reach the server') from e
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if resp.status_code >= 400:
            err = error_from_payload(resp.status_code, payload)
            logger.info('%s %s -> %s %s', method, path, resp.status_code, err.code)
            raise err
        if payload is None:
            raise TransientError('Unexpected response from server')
        return payload

    # ---- auth ----

    def register(self, username: str, password: str) -> dict:
        data = self._request('POST', '/auth/register', auth=False,
                             json={'username': username, 'password': password})
        self.session.start(data['token'], data['user'])
        return data['user']

    def login(self, username: str, password: str) -> dict:
        data = self._request('POST', '/auth/login', auth=False,
                             json={'username': username, 'password': password})
        self.session.start(data['token'], data['user'])
        return data['user']

    def logout(self) -> None:
        self.session.clear()

    def me(self) -> dict:
        return self._request('GET', '/auth/me')

    # ---- tasks ----

    def list_tasks(self) -> List[TaskItem]:
        return [TaskItem.from_wire(t) for t in self._request('GET', '/tasks')]

    def create_task(self, title: str, due_date: Optional[date] = None, completed: bool = False,
                    task_id: Optional[str] = None) -> TaskItem:
        item = TaskItem(id=task_id or str(uuid.uuid4()), title=title, due_date=due_date, completed=completed)
        return TaskItem.from_wire(self._request('POST', '/tasks', json=item.to_wire()))

    def update_task(self, task_id: str, *, title: Any = UNSET, due_date: Any = UNSET,
                    completed: Any = UNSET) -> TaskItem:
        """Send only the fields that were passed; ``due_date=None`` clears it."""
        body: Dict[str, Any] = {}
        if title is not UNSET:
            body['title'] = title
        if due_date is not UNSET:
            body['dueDate'] = format_wire_date(due_date)
        if completed is not UNSET:
            body['completed'] = bool(completed)
        return TaskItem.from_wire(self._request('PUT', f'/tasks/{task_id}', json=body))

    def delete_task(self, task_id: str) -> None:
        self._request('DELETE', f'/tasks/{task_id}')
