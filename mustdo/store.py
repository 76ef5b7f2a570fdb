"""Owner-scoped task persistence.

Every query filters on ``owner_id``. A task that belongs to someone else is
indistinguishable from a missing one: reads and updates raise NotFound and
deletes report that nothing was removed.
"""
import logging
import uuid
from datetime import date
from typing import Optional

from sqlmodel import select
from sqlalchemy import delete as sqlalchemy_delete
from sqlalchemy.exc import IntegrityError

from .db import async_session
from .errors import NotFound, ValidationError
from .models import Task, TaskPatch, apply_patch, clean_title
from .utils import now_utc, parse_wire_date

logger = logging.getLogger(__name__)


def new_task_id() -> str:
    return uuid.uuid4().hex


async def list_tasks(owner_id: int) -> list[Task]:
    async with async_session() as sess:
        q = await sess.exec(
            select(Task)
            .where(Task.owner_id == owner_id)
            .order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.asc())
        )
        return list(q.all())


async def get_task(owner_id: int, task_id: str) -> Task:
    async with async_session() as sess:
        q = await sess.exec(select(Task).where(Task.id == task_id, Task.owner_id == owner_id))
        task = q.first()
    if task is None:
        raise NotFound()
    return task


async def create_task(owner_id: int, title: Optional[str], due_date: date | str | None = None,
                      task_id: Optional[str] = None, completed: bool = False) -> Task:
    """Insert a task for ``owner_id``.

    ``due_date`` may be a date or a ``YYYY-MM-DD`` string. Raises
    ValidationError for an empty title or an id that is already taken.
    """
    title = clean_title(title)
    due = parse_wire_date(due_date)
    if task_id is not None:
        task_id = str(task_id).strip()
        if not task_id:
            raise ValidationError('Task id must not be empty')
    task = Task(
        id=task_id or new_task_id(),
        owner_id=owner_id,
        title=title,
        due_date=due,
        completed=bool(completed),
        created_at=now_utc(),
    )
    async with async_session() as sess:
        sess.add(task)
        try:
            await sess.commit()
        except IntegrityError:
            await sess.rollback()
            raise ValidationError('A task with this id already exists')
        await sess.refresh(task)
    logger.info('created task id=%s owner=%s due=%s', task.id, owner_id, task.due_date)
    return task


async def update_task(owner_id: int, task_id: str, patch: TaskPatch) -> Task:
    async with async_session() as sess:
        q = await sess.exec(select(Task).where(Task.id == task_id, Task.owner_id == owner_id))
        task = q.first()
        if task is None:
            raise NotFound()
        apply_patch(task, patch)
        sess.add(task)
        await sess.commit()
        await sess.refresh(task)
    logger.info('updated task id=%s owner=%s fields=%s', task_id, owner_id,
                sorted(patch.model_dump(exclude_unset=True)))
    return task


async def delete_task(owner_id: int, task_id: str) -> bool:
    """Delete a task; returns whether a row was removed."""
    async with async_session() as sess:
        res = await sess.exec(
            sqlalchemy_delete(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        )
        await sess.commit()
    removed = (res.rowcount or 0) > 0
    logger.info('delete task id=%s owner=%s removed=%s', task_id, owner_id, removed)
    return removed
