"""Simple runtime configuration for the MustDo server.

Values are read from environment variables so deployments can change them
without code changes.
"""
import os


def _trueish(v: str | None) -> bool:
    if not v:
        return False
    return v.lower() in ('1', 'true', 'yes', 'on')


# SECRET_KEY signs access tokens. The fallback only exists so tests and
# one-off scripts can import the app; the server lifespan refuses to start
# with it.
INSECURE_SECRET_KEY = 'CHANGE_ME_IN_ENV_FOR_TESTS'
SECRET_KEY = os.getenv('SECRET_KEY', INSECURE_SECRET_KEY)

DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite+aiosqlite:///./mustdo.db')

try:
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv('ACCESS_TOKEN_EXPIRE_MINUTES', str(60 * 24)))
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24

# IANA timezone used for "today" when a request does not name one. Empty
# means the server's local time.
DEFAULT_TIMEZONE = os.getenv('DEFAULT_TIMEZONE', '')

# Comma separated list of origins allowed to call the API from a browser.
CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', '*').split(',') if o.strip()]

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Log SQL statements emitted by the engine.
SQL_ECHO = _trueish(os.getenv('SQL_ECHO', '0'))

# Optional local overrides: define variables in mustdo/local_config.py to
# override the defaults above. Keep that file out of version control.
try:
    from .local_config import *  # type: ignore  # noqa: F401,F403
except ImportError:
    pass
