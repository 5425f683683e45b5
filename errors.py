from contextlib import contextmanager
from functools import wraps

from flask import current_app
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from models import db

_DEPTH_KEY = 'atomic_depth'


class LedgerError(Exception):
    kind = 'permanent'
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'status': 'error', 'kind': self.kind, 'message': self.message}


class NotFoundError(LedgerError):
    kind = 'not_found'
    status_code = 404


class TransientError(LedgerError):
    # The database (or the identity provider) failed, retrying may work
    kind = 'transient'
    status_code = 503


class PermanentError(LedgerError):
    kind = 'permanent'
    status_code = 400


class InsufficientPointsError(PermanentError):
    status_code = 409


class AlreadyCollectedError(PermanentError):
    status_code = 409


def classify(exc):
    if isinstance(exc, LedgerError):
        return exc
    if isinstance(exc, (OperationalError, DisconnectionError, PoolTimeoutError)):
        return TransientError(str(exc))
    return PermanentError(str(exc))


def in_atomic_scope():
    return db.session.info.get(_DEPTH_KEY, 0) > 0


@contextmanager
def atomic():
    # Outermost scope commits, any exception rolls everything back.
    # Nested scopes join the outer transaction.
    session = db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth


def data_access(message):
    # LOGGING: every failure is logged under `message`, then re-raised classified
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except LedgerError as e:
                current_app.logger.warning(f'{message}: {e.message}')
                raise
            except SQLAlchemyError as e:
                current_app.logger.error(f'{message}: {e}')
                if not in_atomic_scope():
                    db.session.rollback()
                raise classify(e) from e
        return decorated_function
    return decorator
