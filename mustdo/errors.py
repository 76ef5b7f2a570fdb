"""Error kinds shared by the server and the client.

Each error carries the HTTP status it maps to and a short machine readable
``code`` that travels in the JSON error body next to the message, so the
client can rebuild the same exception from a response.
"""
from typing import Optional


class MustDoError(Exception):
    status_code = 500
    code = 'error'

    def __init__(self, message: str = 'Internal server error'):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


class ValidationError(MustDoError):
    """Bad input shape, length or pattern. Shown to the user verbatim."""
    status_code = 400
    code = 'validation_error'

    def __init__(self, message: str = 'Invalid request'):
        super().__init__(message)


class InvalidCredentials(MustDoError):
    status_code = 401
    code = 'invalid_credentials'

    def __init__(self, message: str = 'Invalid credentials'):
        super().__init__(message)


class AuthRequired(MustDoError):
    """Missing, malformed or expired bearer token."""
    status_code = 401
    code = 'auth_required'

    def __init__(self, message: str = 'Authentication required'):
        super().__init__(message)


class DuplicateUsername(MustDoError):
    status_code = 400
    code = 'duplicate_username'

    def __init__(self, message: str = 'Username already exists'):
        super().__init__(message)


class NotFound(MustDoError):
    status_code = 404
    code = 'not_found'

    def __init__(self, message: str = 'Task not found'):
        super().__init__(message)


class TransientError(MustDoError):
    """Network or server failure with no detail worth showing."""
    status_code = 500
    code = 'transient_error'


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (ValidationError, InvalidCredentials, AuthRequired, DuplicateUsername, NotFound, TransientError)
}


def error_from_payload(status_code: int, payload: Optional[dict]) -> MustDoError:
    """Rebuild a MustDoError from an HTTP status and a decoded error body."""
    message = None
    code = None
    if isinstance(payload, dict):
        message = payload.get('error') or payload.get('detail')
        code = payload.get('code')
        if not isinstance(message, str):
            message = None
    cls = ERRORS_BY_CODE.get(code)
    if cls is None:
        if status_code >= 500:
            cls = TransientError
        elif status_code == 404:
            cls = NotFound
        elif status_code == 401:
            cls = AuthRequired
        elif 400 <= status_code < 500:
            cls = ValidationError
        else:
            cls = TransientError
    if cls is TransientError:
        # server internals are never passed through
        return TransientError('Server error (%d)' % status_code)
    if not message:
        return cls()
    return cls(message)
