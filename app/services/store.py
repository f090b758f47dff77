from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import StoreError
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.order import Order

logger = get_logger()


def run_in_transaction(db: Session, work, attempts: int = 1):
    """Run ``work()`` and commit. Conflicting concurrent writes
    (version mismatch) and dropped connections are retried; ``work`` must
    re-read whatever rows it mutates."""
    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.commit()
            return result
        except (StaleDataError, OperationalError) as e:
            db.rollback()
            if attempt >= attempts:
                logger.error(f"Store conflict not resolved after {attempts} attempt(s): {e}")
                raise StoreError() from e
            logger.warning(f"Store conflict on attempt {attempt}, retrying: {e}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.opt(exception=e).error("Store write failed")
            raise StoreError() from e


# ---------------------------------------------------------------------
# LOOKUPS BY GATEWAY ORDER ID
# ---------------------------------------------------------------------
def _by_order_id(db: Session, model, order_id: str):
    row = db.query(model).filter(model.gateway_order_id == order_id).first()
    if row is None:
        # order opened with the previous provider
        row = db.query(model).filter(model.legacy_order_id == order_id).first()
    return row


def find_booking_by_order_id(db: Session, order_id: str) -> Booking | None:
    return _by_order_id(db, Booking, order_id)


def find_order_by_order_id(db: Session, order_id: str) -> Order | None:
    return _by_order_id(db, Order, order_id)


def find_booking_by_balance_order_id(db: Session, order_id: str) -> Booking | None:
    return db.query(Booking).filter(Booking.balance_payment_order_id == order_id).first()
