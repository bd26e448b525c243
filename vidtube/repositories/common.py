import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vidtube.core.errors import Conflict, InternalError

logger = logging.getLogger(__name__)


def commit(db: Session, *, conflict_message: str | None = None) -> None:
    """Commit the unit of work; roll back and raise an ApiError on failure."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if conflict_message:
            raise Conflict(conflict_message) from e
        logger.error("Integrity error on commit: %s", e)
        raise InternalError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database error on commit: %s", e)
        raise InternalError() from e
