# sharedcart/tasks/expire.py
from datetime import datetime, timedelta, timezone
from typing import List

from sqlalchemy.orm import Session

from sharedcart.celery_worker import celery_app
from sharedcart.data.database import SessionLocal
from sharedcart.domain.states import EXPIRABLE_STATUSES, EXPIRED
from sharedcart.repos.cart_repo import SharedCartRepo
from sharedcart.utils.logging import get_logger
from sharedcart.utils.settings import CART_EXPIRY_SECONDS

logger = get_logger(__name__)


def expire_stale_carts(db: Session, now: datetime | None = None) -> List[int]:
    """Koszyki open/paying starsze niz CART_EXPIRY_SECONDS przechodza na expired, zwraca ich id.

    Koszyki locked pomijamy: inicjator jest juz w bramce platnosci.
    """
    repo = SharedCartRepo(db)
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=CART_EXPIRY_SECONDS)

    carts = repo.get_stale_carts(EXPIRABLE_STATUSES, cutoff)
    logger.info(f"Found {len(carts)} shared carts to expire")

    expired = []
    for cart in carts:
        cart_id, old_version = cart.id, cart.version
        rowcount = repo.update_cart_version(
            cart_id=cart_id,
            old_version=old_version,
            new_data={"status": EXPIRED, "version": old_version + 1},
        )
        if rowcount == 0:
            # ktos zmienil koszyk w miedzyczasie, nastepny przebieg go zobaczy
            logger.warning(f"Cart {cart_id} changed during sweep, skipping")
            continue

        expired.append(cart_id)

    db.commit()

    if expired:
        logger.info(f"Expired shared carts: {expired}")
    return expired


@celery_app.task(name="sharedcart.tasks.expire.expire_shared_carts_task")
def expire_shared_carts_task():
    logger.info("Expire shared carts task started")

    db = SessionLocal()
    try:
        expired = expire_stale_carts(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    return {"expired": expired}
