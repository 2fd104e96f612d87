# ledger/unit_of_work.py
import logging
from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from ledger.exceptions import StoreAccessError

logger = logging.getLogger(__name__)


@contextmanager
def atomic():
    """
    One commit for a multi-row ledger mutation.
    Anything raised inside the block rolls the whole session back.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Store access failure, unit of work rolled back: {e}", exc_info=True)
        raise StoreAccessError("Store access failure") from e
    except Exception:
        session.rollback()
        raise
