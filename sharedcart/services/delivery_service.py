# sharedcart/services/delivery_service.py
from datetime import datetime
from typing import Callable, Dict, Any
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from sharedcart.domain.errors import NotADeliveryCart, ZoneInactive
from sharedcart.domain.schemas import Identity
from sharedcart.domain.states import DELIVERY
from sharedcart.services.base import CartCommandService
from sharedcart.services.catalog_client import CatalogClient
from sharedcart.utils.logging import get_logger
from sharedcart.utils.retry import conflict_retry
from sharedcart.utils.settings import PEAK_START_HOUR, PEAK_END_HOUR, DELIVERY_TIMEZONE

logger = get_logger(__name__)


def is_peak_hour(now: datetime, tz: str = DELIVERY_TIMEZONE) -> bool:
    """Czy godzina szczytu: od PEAK_START_HOUR:00 do PEAK_END_HOUR-1:59 czasu lokalnego (domyslnie 18:00-20:59).

    Datetime bez strefy traktujemy jako juz lokalny.
    """
    local = now.astimezone(ZoneInfo(tz)) if now.tzinfo else now
    return PEAK_START_HOUR <= local.hour < PEAK_END_HOUR


class DeliveryFeeService(CartCommandService):
    """
    Strefa dostawy i oplata dla koszykow typu Delivery.
    Oplata liczona w momencie wyboru strefy, potem juz nie przeliczana.
    """

    def __init__(
        self,
        db: Session,
        catalog_client: CatalogClient,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(db, clock)
        self.catalog_client = catalog_client

    @conflict_retry()
    def set_delivery_zone(
        self,
        cart_id: int,
        identity: Identity,
        zone_id: str,
        street_address: str | None = None,
        phone: str | None = None,
    ) -> Dict[str, Any]:
        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            self._require_initiator(cart, identity.user_id, "set the delivery zone")

            if cart.order_type != DELIVERY:
                raise NotADeliveryCart()

            self._require_open(cart)

            zone = self.catalog_client.fetch_delivery_zone(zone_id)
            if not zone or not zone.get("is_active", False):
                raise ZoneInactive()

            peak = is_peak_hour(self.clock())
            fee = int(zone["peak_fee"] if peak else zone["base_fee"])

            self._save_cart(
                cart,
                delivery_zone_id=zone_id,
                delivery_fee=fee,
                delivery_street=street_address,
                delivery_phone=phone,
            )

        logger.info(f"Cart {cart_id}: delivery zone {zone_id}, peak={peak}, fee={fee}")
        return {"zone_id": zone_id, "delivery_fee": fee, "is_peak": peak}
