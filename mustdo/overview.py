"""Ordering and partitioning of task lists for display.

Both functions accept any objects with ``completed`` and ``due_date``
attributes (server rows and client items alike) and never mutate their
input.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List

from .dates import is_must_do, local_now


def _sort_key(task):
    due = task.due_date
    # None sorts after every real date in the same completion group; the
    # placeholder is only ever compared with other placeholders.
    return (bool(task.completed), due is None, due if due is not None else date.min)


def sort_tasks(tasks: Iterable) -> list:
    """Incomplete before completed, then by due date, undated last.

    Ties keep their input order.
    """
    return sorted(tasks, key=_sort_key)


@dataclass
class Overview:
    must_do: List = field(default_factory=list)
    all: List = field(default_factory=list)


def partition_tasks(tasks: Iterable, now: datetime | None = None) -> Overview:
    """Split tasks into must-do and everything else, each sorted."""
    if now is None:
        now = local_now()
    must_do = []
    rest = []
    for task in tasks:
        if is_must_do(task.due_date, now):
            must_do.append(task)
        else:
            rest.append(task)
    return Overview(must_do=sort_tasks(must_do), all=sort_tasks(rest))
