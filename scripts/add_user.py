#!/usr/bin/env python3
"""Admin script to add a user or reset a password in the MustDo DB.

Usage:
    python scripts/add_user.py username [password] [--db ./mustdo.db]

The DB is initialized (and migrated) first. New usernames go through the same
validation as /auth/register; existing users get their password replaced.
"""
# Make the script runnable from the project root or from anywhere by adding
# the project root to sys.path.
import os
import sys
proj_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if proj_root not in sys.path:
    sys.path.insert(0, proj_root)

import argparse
import asyncio
import getpass
from typing import Optional


async def _create_or_update(username: str, password: str) -> Optional['User']:
    # Import lazily: mustdo.db reads DATABASE_URL at import time, and `-h`
    # should work without the runtime dependencies installed.
    from mustdo.db import init_db, async_session
    from mustdo.models import User
    from mustdo.auth import hash_password, validate_registration
    from mustdo.errors import ValidationError
    from sqlmodel import select
    await init_db()
    async with async_session() as sess:
        q = await sess.exec(select(User).where(User.username == username))
        existing = q.first()
        if existing:
            existing.password_hash = hash_password(password)
            sess.add(existing)
            await sess.commit()
            await sess.refresh(existing)
            return existing
        try:
            validate_registration(username, password)
        except ValidationError as e:
            print(e.message, file=sys.stderr)
            return None
        u = User(username=username, password_hash=hash_password(password))
        sess.add(u)
        await sess.commit()
        await sess.refresh(u)
        return u


def parse_args(argv):
    p = argparse.ArgumentParser(description="Create a user or reset a password in the MustDo DB")
    p.add_argument("username", help="username to create/update")
    p.add_argument("password", nargs="?", help="password for the user (omit to prompt)")
    p.add_argument("--db", help="path to sqlite file to use (default: DATABASE_URL or ./mustdo.db)")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv if argv is not None else sys.argv[1:])
    if args.db:
        os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{args.db}"
    password = args.password
    if not password:
        pw = getpass.getpass("Password: ")
        pw2 = getpass.getpass("Confirm password: ")
        if pw != pw2:
            print("Passwords do not match", file=sys.stderr)
            return 2
        password = pw

    user = asyncio.run(_create_or_update(args.username, password))
    if not user:
        print("Operation failed", file=sys.stderr)
        return 2
    print(f"User '{user.username}' saved with id={user.id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
