#!/usr/bin/env python3
"""Terminal front end for MustDo.

Usage:
    mustdo register USERNAME [PASSWORD]
    mustdo login USERNAME [PASSWORD]
    mustdo list
    mustdo add "Buy milk" --due tomorrow
    mustdo done ID | undo ID | delete ID
    mustdo edit ID [--title T] [--due D | --no-due]
    mustdo logout

IDs may be abbreviated to any unique prefix. Passwords are prompted for
when omitted.
"""
import argparse
import getpass
import logging
import sys
from datetime import date, datetime, timedelta
from typing import List, Optional

from mustdo.utils import parse_wire_date
from mustdo.errors import ValidationError

from .board import BoardView, TaskBoard, TaskRow
from .client import TaskClient, UNSET
from .config import Config
from .session import ClientSession

logger = logging.getLogger(__name__)


def parse_due(value: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """Accept ``today``, ``tomorrow``, ``+N`` (days from today) or YYYY-MM-DD."""
    if value is None:
        return None
    today = today or date.today()
    v = value.strip().lower()
    if v == 'today':
        return today
    if v == 'tomorrow':
        return today + timedelta(days=1)
    if v.startswith('+') and v[1:].isdigit():
        return today + timedelta(days=int(v[1:]))
    return parse_wire_date(value)


def _format_row(row: TaskRow) -> str:
    mark = 'x' if row.task.completed else ' '
    due = f"  ({row.label})" if row.label else ''
    return f"[{mark}] {row.task.id[:8]}  {row.task.title}{due}"


def render(view: BoardView) -> List[str]:
    lines = ['Must do']
    lines.extend('  ' + _format_row(r) for r in view.must_do)
    if not view.must_do:
        lines.append('  nothing due today or tomorrow')
    lines.append('All tasks')
    lines.extend('  ' + _format_row(r) for r in view.all)
    if not view.all:
        lines.append('  no other tasks')
    return lines


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='mustdo', description='Personal task tracker')
    p.add_argument('--server', help='API base URL (overrides config)')
    p.add_argument('--config', help='path to client config JSON')
    p.add_argument('-v', '--verbose', action='store_true', help='log HTTP activity')
    sub = p.add_subparsers(dest='command', required=True)

    for name in ('register', 'login'):
        sp = sub.add_parser(name)
        sp.add_argument('username')
        sp.add_argument('password', nargs='?', help='omit to prompt')
    sub.add_parser('logout')
    sub.add_parser('whoami')
    sub.add_parser('list')

    sp = sub.add_parser('add')
    sp.add_argument('title')
    sp.add_argument('--due', help='today, tomorrow, +N or YYYY-MM-DD')

    for name in ('done', 'undo', 'delete'):
        sp = sub.add_parser(name)
        sp.add_argument('id')

    sp = sub.add_parser('edit')
    sp.add_argument('id')
    sp.add_argument('--title')
    group = sp.add_mutually_exclusive_group()
    group.add_argument('--due')
    group.add_argument('--no-due', action='store_true', help='clear the due date')
    return p


def _resolve(board: TaskBoard, prefix: str) -> Optional[str]:
    if not board.refresh():
        return None
    task = board.find(prefix)
    if task is None:
        board.error = f'No single task matches id {prefix!r}'
        return None
    return task.id


def run(args, board: TaskBoard, out=sys.stdout) -> int:
    cmd = args.command
    ok = True
    if cmd in ('register', 'login'):
        password = args.password or getpass.getpass('Password: ')
        action = board.register if cmd == 'register' else board.login
        ok = action(args.username, password)
        if ok:
            print(f"Logged in as {args.username}", file=out)
    elif cmd == 'logout':
        board.logout()
        print('Logged out', file=out)
    elif cmd == 'whoami':
        user = board.client.session.user
        print(user.username if user else 'not logged in', file=out)
    elif cmd == 'list':
        ok = board.refresh()
        if ok:
            print('\n'.join(render(board.view())), file=out)
    elif cmd == 'add':
        try:
            due = parse_due(args.due)
        except ValidationError as e:
            board.error = e.message
            due = None
            ok = False
        if ok:
            task = board.add(args.title, due)
            ok = task is not None
            if ok:
                print(f"Added {task.id[:8]}", file=out)
    elif cmd in ('done', 'undo'):
        task_id = _resolve(board, args.id)
        ok = task_id is not None and board.set_completed(task_id, cmd == 'done') is not None
    elif cmd == 'delete':
        task_id = _resolve(board, args.id)
        ok = task_id is not None and board.remove(task_id)
    elif cmd == 'edit':
        due = UNSET
        try:
            if args.no_due:
                due = None
            elif args.due is not None:
                due = parse_due(args.due)
        except ValidationError as e:
            board.error = e.message
            ok = False
        if ok:
            task_id = _resolve(board, args.id)
            title = args.title if args.title is not None else UNSET
            ok = task_id is not None and board.edit(task_id, title=title, due_date=due) is not None
    if not ok:
        print(board.error or 'Operation failed', file=sys.stderr)
        return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s:%(name)s: %(message)s')
    config = Config(args.config)
    session = ClientSession(config.token_file)
    session.load()
    client = TaskClient(session, base_url=args.server or config.server_url, timeout=config.timeout)
    board = TaskBoard(client, clock=datetime.now)
    return run(args, board)


if __name__ == '__main__':
    raise SystemExit(main())
