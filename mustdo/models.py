from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlmodel import SQLModel, Field
from .errors import ValidationError
from .utils import now_utc, parse_wire_date, format_wire_date, isoformat_utc


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, sa_column_kwargs={"unique": True})
    password_hash: str
    created_at: datetime | None = Field(default_factory=now_utc)


class Task(SQLModel, table=True):
    # Opaque id; clients may pick their own (the browser client used uuids),
    # otherwise the store generates one.
    id: str = Field(primary_key=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    title: str
    # Calendar day only; no time-of-day semantics.
    due_date: Optional[date] = Field(default=None, index=True)
    completed: bool = Field(default=False)
    created_at: datetime | None = Field(default_factory=now_utc)


class Credentials(BaseModel):
    """Body of /auth/register and /auth/login.

    Both fields are optional at the schema level so a missing field becomes
    the same friendly validation message the auth layer gives for blanks.
    """
    username: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: int
    username: str


class AuthSession(BaseModel):
    token: str
    user: UserOut


class TaskCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    title: Optional[str] = None
    due_date: Optional[str] = PydanticField(default=None, alias="dueDate")
    # null reads as not completed
    completed: Optional[bool] = False


class TaskPatch(BaseModel):
    """Partial update of a task.

    Only fields present in the request are applied. ``dueDate: null`` clears
    the due date; leaving ``dueDate`` out keeps it. ``completed: null``
    means not completed, the same as on create.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    due_date: Optional[str] = PydanticField(default=None, alias="dueDate")
    completed: Optional[bool] = None


def clean_title(title: Optional[str]) -> str:
    if title is None or not str(title).strip():
        raise ValidationError('Title is required')
    return str(title).strip()


def apply_patch(task: Task, patch: TaskPatch) -> Task:
    """Merge the fields set on ``patch`` into ``task`` in place.

    All values are validated before anything is assigned, so a bad patch
    leaves the task untouched.
    """
    fields = patch.model_dump(exclude_unset=True)
    updates = {}
    if 'title' in fields:
        updates['title'] = clean_title(fields['title'])
    if 'due_date' in fields:
        updates['due_date'] = parse_wire_date(fields['due_date'])
    if 'completed' in fields:
        updates['completed'] = bool(fields['completed'])
    for name, value in updates.items():
        setattr(task, name, value)
    return task


def serialize_task(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "dueDate": format_wire_date(task.due_date),
        "completed": bool(task.completed),
        "createdAt": isoformat_utc(task.created_at),
    }
