# sharedcart/services/catalog_client.py
import requests

from sharedcart.utils.retry import http_retry
from sharedcart.utils.settings import CATALOG_SERVICE_URL, HTTP_TIMEOUT_SECONDS
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogClient:
    """
    Klient katalogu menu i stref dostawy.
    Jedyne zrodlo cen, koszyk nigdy nie bierze ceny od klienta.
    """

    def __init__(self, base_url: str | None = None, timeout: int = HTTP_TIMEOUT_SECONDS):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _get(self, path: str) -> dict | None:
        url = f"{self.base_url}{path}"
        logger.info(f"CatalogClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def fetch_menu_item(self, menu_item_id: str) -> dict | None:
        """Zwraca ``{"id", "name", "price", "is_available"}`` albo None gdy pozycji nie ma."""
        return self._get(f"/menu-items/{menu_item_id}")

    def fetch_delivery_zone(self, zone_id: str) -> dict | None:
        """Zwraca ``{"id", "name", "base_fee", "peak_fee", "is_active"}`` albo None gdy strefy nie ma."""
        return self._get(f"/delivery-zones/{zone_id}")
