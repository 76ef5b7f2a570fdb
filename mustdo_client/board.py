"""View-model behind the task screens.

``TaskBoard`` owns the locally displayed task list. Every change goes to the
server first and the local list is only touched once the server has answered
with the stored task, so a failed call leaves the screen exactly as it was.
Failures are turned into a user-facing message in ``board.error``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from mustdo.dates import is_must_do, label
from mustdo.errors import (
    AuthRequired,
    DuplicateUsername,
    InvalidCredentials,
    MustDoError,
    NotFound,
    ValidationError,
)
from mustdo.overview import partition_tasks

from .client import TaskClient, TaskItem, UNSET

logger = logging.getLogger(__name__)

GENERIC_ERROR = 'Something went wrong. Please try again later.'
LOGIN_REQUIRED = 'Please log in first'


def user_message(exc: MustDoError) -> str:
    """Message to show for a failed operation.

    Validation messages are shown as-is; everything unexpected collapses
    into one generic message so server detail never leaks to the screen.
    """
    if isinstance(exc, ValidationError):
        return exc.message
    if isinstance(exc, InvalidCredentials):
        return 'Invalid username or password'
    if isinstance(exc, DuplicateUsername):
        return 'That username is already taken'
    if isinstance(exc, NotFound):
        return 'That task no longer exists'
    if isinstance(exc, AuthRequired):
        return LOGIN_REQUIRED
    return GENERIC_ERROR


@dataclass
class TaskRow:
    task: TaskItem
    label: Optional[str]
    must_do: bool


@dataclass
class BoardView:
    must_do: List[TaskRow]
    all: List[TaskRow]


class TaskBoard:
    def __init__(self, client: TaskClient, clock: Optional[Callable[[], datetime]] = None):
        self.client = client
        self.tasks: List[TaskItem] = []
        self.error: Optional[str] = None
        self._clock = clock or datetime.now

    def _run(self, op: Callable[[], Any]) -> Any:
        try:
            result = op()
        except MustDoError as e:
            self.error = user_message(e)
            logger.info('board operation failed: %s (%s)', e.code, e.message)
            if isinstance(e, AuthRequired):
                # the stored token is gone or no longer accepted
                self.client.logout()
                self.tasks = []
            return None
        self.error = None
        return result

    def _index(self, task_id: str) -> int:
        for i, t in enumerate(self.tasks):
            if t.id == task_id:
                return i
        return -1

    def _replace(self, updated: TaskItem) -> None:
        i = self._index(updated.id)
        if i >= 0:
            self.tasks[i] = updated
        else:
            self.tasks.append(updated)

    # ---- auth ----

    def login(self, username: str, password: str) -> bool:
        if self._run(lambda: self.client.login(username, password)) is None:
            return False
        return self.refresh()

    def register(self, username: str, password: str) -> bool:
        if self._run(lambda: self.client.register(username, password)) is None:
            return False
        return self.refresh()

    def logout(self) -> None:
        self.client.logout()
        self.tasks = []
        self.error = None

    # ---- tasks ----

    def refresh(self) -> bool:
        tasks = self._run(self.client.list_tasks)
        if tasks is None:
            return False
        self.tasks = list(tasks)
        return True

    def add(self, title: str, due_date: Optional[date] = None) -> Optional[TaskItem]:
        if not title or not title.strip():
            # same rule the server applies; no round trip needed
            self.error = 'Title is required'
            return None
        created = self._run(lambda: self.client.create_task(title.strip(), due_date))
        if created is not None:
            self.tasks.append(created)
        return created

    def edit(self, task_id: str, *, title: Any = UNSET, due_date: Any = UNSET) -> Optional[TaskItem]:
        updated = self._run(lambda: self.client.update_task(task_id, title=title, due_date=due_date))
        if updated is not None:
            self._replace(updated)
        return updated

    def set_completed(self, task_id: str, completed: bool) -> Optional[TaskItem]:
        updated = self._run(lambda: self.client.update_task(task_id, completed=completed))
        if updated is not None:
            self._replace(updated)
        return updated

    def toggle(self, task_id: str) -> Optional[TaskItem]:
        i = self._index(task_id)
        if i < 0:
            self.error = user_message(NotFound())
            return None
        return self.set_completed(task_id, not self.tasks[i].completed)

    def remove(self, task_id: str) -> bool:
        if self._run(lambda: self.client.delete_task(task_id) or True) is None:
            return False
        i = self._index(task_id)
        if i >= 0:
            del self.tasks[i]
        return True

    def find(self, prefix: str) -> Optional[TaskItem]:
        """Task whose id starts with ``prefix``, if exactly one matches."""
        matches = [t for t in self.tasks if t.id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None

    # ---- display ----

    def view(self, now: Optional[datetime] = None) -> BoardView:
        if now is None:
            now = self._clock()
        ov = partition_tasks(self.tasks, now)

        def _row(t: TaskItem) -> TaskRow:
            return TaskRow(task=t, label=label(t.due_date, now), must_do=is_must_do(t.due_date, now))

        return BoardView(must_do=[_row(t) for t in ov.must_do], all=[_row(t) for t in ov.all])
