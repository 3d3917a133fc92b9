# sharedcart/services/webhook_service.py
import hashlib
import hmac
import json
from typing import Dict, Any

from sqlalchemy.orm import Session

from sharedcart.domain.errors import InvalidWebhookSignature, PaymentGatewayError, TamperDetected
from sharedcart.domain.payments import RegularOrderPayment, VerifiedTransaction, parse_payment_metadata
from sharedcart.services.lock_service import LockService
from sharedcart.services.notification_service import NotificationService
from sharedcart.services.payment_gateway import PaystackClient
from sharedcart.services.reconciler import PaymentReconciler
from sharedcart.utils.logging import get_logger
from sharedcart.utils.settings import PAYSTACK_SECRET_KEY

logger = get_logger(__name__)

CHARGE_SUCCESS = "charge.success"


class PaymentWebhookService:
    """
    Wejscie z bramki platnosci.

    Kolejnosc:
    1. podpis HMAC-SHA512 surowego body
    2. weryfikacja transakcji w bramce (poza lockiem i transakcja)
    3. porownanie kwoty z webhooka z kwota zweryfikowana
    4. reconcile pod lockiem koszyka
    """

    def __init__(
        self,
        db: Session,
        gateway: PaystackClient,
        lock_service: LockService,
        notifier: NotificationService | None = None,
        secret_key: str | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.lock_service = lock_service
        self.reconciler = PaymentReconciler(db, notifier=notifier)
        self.secret_key = secret_key if secret_key is not None else PAYSTACK_SECRET_KEY

    def verify_signature(self, raw_body: bytes, signature: str | None) -> None:
        if not signature or not self.secret_key:
            raise InvalidWebhookSignature()

        expected = hmac.new(self.secret_key.encode(), raw_body, hashlib.sha512).hexdigest()
        # porownujemy bajty: compare_digest na str rzuca TypeError dla znakow spoza ASCII
        if not hmac.compare_digest(expected.encode(), signature.encode()):
            logger.warning("Rejected webhook with invalid signature")
            raise InvalidWebhookSignature()

    def handle_event(self, raw_body: bytes, signature: str | None) -> Dict[str, Any]:
        self.verify_signature(raw_body, signature)

        try:
            event = json.loads(raw_body)
        except ValueError:
            raise PaymentGatewayError("Webhook body is not valid JSON")
        if not isinstance(event, dict):
            raise PaymentGatewayError("Webhook body is not a JSON object")

        if event.get("event") != CHARGE_SUCCESS:
            logger.info(f"Ignoring webhook event '{event.get('event')}'")
            return {"result": "ignored"}

        data = event.get("data") or {}
        if not isinstance(data, dict):
            raise PaymentGatewayError("Webhook payload 'data' is not a JSON object")
        reference = data.get("reference")
        if not reference:
            raise PaymentGatewayError("Webhook payload has no transaction reference")

        verified = self.gateway.verify_transaction(reference)
        if not verified.succeeded:
            logger.info(f"Transaction {reference} verified with status '{verified.status}', ignoring")
            return {"result": "ignored"}

        claimed = data.get("amount")
        if claimed is not None:
            try:
                claimed = int(claimed)
            except (TypeError, ValueError):
                raise PaymentGatewayError(f"Webhook amount '{claimed}' is not a number")

        if claimed is not None and claimed != verified.amount:
            logger.error(
                f"Amount mismatch for transaction {reference}: webhook claims {claimed}, "
                f"gateway verified {verified.amount}"
            )
            raise TamperDetected()

        return self._apply_verified(verified, data.get("metadata"))

    def _apply_verified(self, verified: VerifiedTransaction, claimed_metadata: Any) -> Dict[str, Any]:
        # metadata ze zweryfikowanej transakcji ma pierwszenstwo
        metadata = parse_payment_metadata(
            verified.metadata if verified.metadata not in (None, "", {}) else claimed_metadata
        )

        if isinstance(metadata, RegularOrderPayment):
            # zwykle zamowienia obsluguje inny serwis
            logger.info(f"Transaction {verified.reference} belongs to order {metadata.order_id}, not a shared cart")
            return {"result": "ignored"}

        with self.lock_service.cart_lock(metadata.cart_id):
            outcome = self.reconciler.apply_member_payment(
                cart_id=metadata.cart_id,
                user_id=metadata.user_id,
                payment_reference=verified.reference,
                amount_paid=verified.amount,
            )

        cart = self.reconciler.repo.get_cart(metadata.cart_id)
        return {
            "result": "applied" if outcome["applied"] else "duplicate",
            "cart_id": metadata.cart_id,
            "cart_status": cart.status if cart else None,
        }

    def verify_reference(self, reference: str) -> VerifiedTransaction:
        """Sprawdzenie statusu referencji, klient wola to po zamknieciu checkoutu."""
        verified = self.gateway.verify_transaction(reference)
        logger.info(f"Transaction {reference} status '{verified.status}', amount {verified.amount}")
        return verified
