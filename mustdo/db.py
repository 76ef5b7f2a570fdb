from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy import text
from sqlalchemy.pool import NullPool

import logging

from . import config
from .models import Task

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

# NullPool: every session opens its own connection, which keeps aiosqlite
# connections from outliving the event loop that created them.
engine = create_async_engine(DATABASE_URL, echo=config.SQL_ECHO, future=True, poolclass=NullPool)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# Columns that can be bolted onto an older task table in place.
_ADDITIVE_TASK_COLUMNS = {
    'due_date': "ALTER TABLE task ADD COLUMN due_date DATE",
    'completed': "ALTER TABLE task ADD COLUMN completed BOOLEAN NOT NULL DEFAULT 0",
    'created_at': "ALTER TABLE task ADD COLUMN created_at DATETIME",
}

# Expressions used to fill columns when copying rows out of a legacy table.
_COPY_FALLBACKS = {
    'completed': '0',
    'created_at': 'CURRENT_TIMESTAMP',
}


def _table_columns(conn, table: str) -> dict[str, bool]:
    """Map column name -> NOT NULL flag for ``table`` (empty if missing)."""
    res = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return {row[1]: bool(row[3]) for row in res.fetchall()}


def _rebuild_task_table(conn, legacy_cols: dict[str, bool]) -> None:
    """Recreate the task table with the current schema, keeping every row."""
    conn.execute(text("ALTER TABLE task RENAME TO task_legacy"))
    # indexes follow the renamed table; drop them so the new ones can be created
    res = conn.execute(text(
        "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name='task_legacy' AND sql IS NOT NULL"
    ))
    for (index_name,) in res.fetchall():
        conn.execute(text(f'DROP INDEX IF EXISTS "{index_name}"'))
    Task.__table__.create(conn)

    renamed = {'owner_id': 'user_id'} if 'owner_id' not in legacy_cols else {}
    targets = []
    sources = []
    for column in Task.__table__.columns:
        src = renamed.get(column.name, column.name)
        if src in legacy_cols:
            expr = src
            if column.name in _COPY_FALLBACKS:
                expr = f"COALESCE({src}, {_COPY_FALLBACKS[column.name]})"
        elif column.name in _COPY_FALLBACKS:
            expr = _COPY_FALLBACKS[column.name]
        else:
            continue
        targets.append(column.name)
        sources.append(expr)
    copied = conn.execute(text(
        f"INSERT INTO task ({', '.join(targets)}) SELECT {', '.join(sources)} FROM task_legacy"
    ))
    conn.execute(text("DROP TABLE task_legacy"))
    logger.info('rebuilt task table with current schema, %s rows kept', copied.rowcount)


def migrate_task_table(conn) -> None:
    """Bring an existing task table up to the current schema without data loss.

    Missing optional columns are added in place. Tables whose shape cannot be
    fixed with ALTER TABLE in SQLite (a NOT NULL due_date, the old user_id
    owner column) are rebuilt by copying their rows into a fresh table.
    Runs on a synchronous connection (use ``run_sync`` from async code).
    """
    cols = _table_columns(conn, 'task')
    if not cols:
        return
    legacy_owner = 'owner_id' not in cols and 'user_id' in cols
    if legacy_owner or cols.get('due_date'):
        logger.info('task table has a legacy schema (owner=%s, due_date not null=%s); rebuilding',
                    'user_id' if legacy_owner else 'owner_id', bool(cols.get('due_date')))
        _rebuild_task_table(conn, cols)
        return
    for name, ddl in _ADDITIVE_TASK_COLUMNS.items():
        if name not in cols:
            logger.info('adding missing task column %s', name)
            conn.execute(text(ddl))


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
        await conn.run_sync(migrate_task_table)
