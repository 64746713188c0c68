"""Transaction scope for multi-step writes.

Every repository write runs inside ``transaction(session)``: the session is
committed only after the whole block succeeds and rolled back before any
error leaves the block. SQLAlchemy failures are mapped onto the error kinds
in ``errors.py``.
"""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import AppError, StorageError, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(session, what='write'):
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("%s rejected by constraint: %s", what, e.orig)
        raise ValidationError(f"{what} violates a uniqueness or required-field constraint", cause=e) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("%s failed: %s", what, e)
        raise StorageError(f"{what} failed", cause=e) from e
    except AppError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception("%s aborted", what)
        raise
