from contextlib import asynccontextmanager
from typing import Optional
import logging
import sys
import time

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from . import store
from .auth import authenticate, register, require_login
from .dates import is_must_do, label, local_now
from .db import init_db
from .errors import MustDoError, ValidationError, NotFound
from .models import Credentials, TaskCreate, TaskPatch, User, serialize_task
from .overview import partition_tasks

logger = logging.getLogger(__name__)
# Ensure INFO-level messages from this package appear on the server console
# when no handlers are configured.
_pkg_logger = logging.getLogger('mustdo')
if not _pkg_logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter('%(asctime)s %(levelname)s:%(name)s: %(message)s')
    handler.setFormatter(formatter)
    _pkg_logger.addHandler(handler)
_pkg_logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The application should not start without a proper secret; tokens signed
    # with the public fallback could be forged by anyone.
    if not config.SECRET_KEY or config.SECRET_KEY == config.INSECURE_SECRET_KEY:
        raise RuntimeError("SECRET_KEY not set or insecure fallback in use; set the SECRET_KEY environment variable before starting the server")
    await init_db()
    logger.info('starting server using DATABASE_URL=%s', config.DATABASE_URL)
    yield
    logger.info('server stopped')


app = FastAPI(title='MustDo', lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.middleware('http')
async def timing_middleware(request: Request, call_next):
    start = time.perf_counter()
    resp = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000.0
    logger.info('timing %s %s %s %.1fms', request.method, request.url.path, resp.status_code, duration_ms)
    return resp


# ---------------- error rendering -----------------

@app.exception_handler(MustDoError)
async def _mustdo_error_handler(request: Request, exc: MustDoError):
    headers = {'WWW-Authenticate': 'Bearer'} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = '.'.join(str(p) for p in err.get('loc', ()) if p != 'body')
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get('msg')))
    message = '; '.join(parts) or 'Invalid request'
    return JSONResponse(status_code=400, content=ValidationError(message).to_dict())


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        body = NotFound('Not found').to_dict()
    else:
        body = {'error': str(exc.detail), 'code': 'http_error'}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, 'headers', None))


@app.exception_handler(Exception)
async def _unexpected_error_handler(request: Request, exc: Exception):
    logger.exception('unhandled error on %s %s', request.method, request.url.path)
    return JSONResponse(status_code=500, content=MustDoError('Internal server error').to_dict())


# ---------------- auth -----------------

@app.get('/health')
async def health():
    return {'ok': True}


@app.post('/auth/register', status_code=201)
async def register_user(req: Credentials):
    sess = await register(req.username, req.password)
    return {'message': 'User created successfully', **sess.model_dump()}


@app.post('/auth/login')
async def login(req: Credentials):
    sess = await authenticate(req.username, req.password)
    return {'message': 'Login successful', **sess.model_dump()}


@app.get('/auth/me')
async def whoami(current_user: User = Depends(require_login)):
    return {'id': current_user.id, 'username': current_user.username}


# ---------------- tasks -----------------

@app.get('/tasks')
async def list_tasks(current_user: User = Depends(require_login)):
    tasks = await store.list_tasks(current_user.id)
    return [serialize_task(t) for t in tasks]


@app.post('/tasks', status_code=201)
async def create_task(req: TaskCreate, current_user: User = Depends(require_login)):
    task = await store.create_task(
        current_user.id,
        req.title,
        due_date=req.due_date,
        task_id=req.id,
        completed=req.completed,
    )
    return serialize_task(task)


@app.get('/tasks/overview')
async def tasks_overview(tz: Optional[str] = None, current_user: User = Depends(require_login)):
    """Must-do and remaining tasks, sorted, each with its display label.

    ``tz`` names the IANA zone that decides what "today" is; it defaults to
    the configured server timezone.
    """
    now = local_now(tz or config.DEFAULT_TIMEZONE or None)
    tasks = await store.list_tasks(current_user.id)
    ov = partition_tasks(tasks, now)

    def _row(task):
        row = serialize_task(task)
        row['label'] = label(task.due_date, now)
        row['mustDo'] = is_must_do(task.due_date, now)
        return row

    return {
        'today': now.date().isoformat(),
        'mustDo': [_row(t) for t in ov.must_do],
        'all': [_row(t) for t in ov.all],
    }


@app.get('/tasks/{task_id}')
async def get_task(task_id: str, current_user: User = Depends(require_login)):
    task = await store.get_task(current_user.id, task_id)
    return serialize_task(task)


@app.put('/tasks/{task_id}')
async def update_task(task_id: str, patch: TaskPatch, current_user: User = Depends(require_login)):
    task = await store.update_task(current_user.id, task_id, patch)
    return serialize_task(task)


@app.delete('/tasks/{task_id}')
async def delete_task(task_id: str, current_user: User = Depends(require_login)):
    if not await store.delete_task(current_user.id, task_id):
        raise NotFound()
    return {'message': 'Task deleted successfully'}
