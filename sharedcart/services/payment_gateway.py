# sharedcart/services/payment_gateway.py
import requests

from sharedcart.domain.errors import PaymentGatewayError
from sharedcart.domain.payments import VerifiedTransaction
from sharedcart.utils.retry import http_retry
from sharedcart.utils.settings import PAYSTACK_SECRET_KEY, PAYSTACK_BASE_URL, HTTP_TIMEOUT_SECONDS
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)


class PaystackClient:
    """
    Weryfikacja transakcji server-to-server.
    Webhookowi nie ufamy: kwota i status zawsze z tego wywolania.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: int = HTTP_TIMEOUT_SECONDS,
    ):
        self.secret_key = secret_key if secret_key is not None else PAYSTACK_SECRET_KEY
        self.base_url = (base_url or PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _get(self, path: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"PaystackClient GET {url}")

        return requests.get(
            url,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            timeout=self.timeout,
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        try:
            resp = self._get(f"/transaction/verify/{reference}")
        except requests.RequestException as e:
            logger.error(f"Paystack verification request for {reference} failed: {e}")
            raise PaymentGatewayError(f"Could not reach payment gateway: {e}")

        if resp.status_code != 200:
            logger.error(f"Paystack verification for {reference} returned HTTP {resp.status_code}")
            raise PaymentGatewayError(f"Payment gateway returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            raise PaymentGatewayError("Payment gateway returned a non-JSON response")

        if not isinstance(body, dict):
            raise PaymentGatewayError("Payment gateway returned an unexpected response")

        data = body.get("data")
        if not body.get("status") or not isinstance(data, dict):
            raise PaymentGatewayError(body.get("message") or "Payment verification failed")

        customer = data.get("customer") or {}
        return VerifiedTransaction(
            reference=data.get("reference") or reference,
            status=data.get("status") or "unknown",
            amount=int(data.get("amount") or 0),
            metadata=data.get("metadata"),
            customer_email=customer.get("email"),
        )
