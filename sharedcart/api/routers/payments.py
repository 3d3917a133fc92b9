# sharedcart/api/routers/payments.py
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from sharedcart.api.deps import get_lock_service, get_notifier, get_payment_gateway
from sharedcart.data.database import get_db
from sharedcart.domain.schemas import PaymentVerificationOut, WebhookAckOut
from sharedcart.services.lock_service import LockService
from sharedcart.services.notification_service import NotificationService
from sharedcart.services.payment_gateway import PaystackClient
from sharedcart.services.webhook_service import PaymentWebhookService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_payment_gateway),
    lock_service: LockService = Depends(get_lock_service),
    notifier: NotificationService = Depends(get_notifier),
) -> PaymentWebhookService:
    return PaymentWebhookService(
        db=db,
        gateway=gateway,
        lock_service=lock_service,
        notifier=notifier,
    )


@router.post("/paystack/webhook", response_model=WebhookAckOut)
async def paystack_webhook(
    request: Request,
    x_paystack_signature: str | None = Header(None),
    svc: PaymentWebhookService = Depends(get_service),
):
    """
    Webhook bramki. Podpis liczony z surowego body, wiec czytamy bytes a nie JSON.
    Duplikaty odpowiadaja 200, zeby bramka przestala ponawiac.
    """
    raw_body = await request.body()
    # weryfikacja w bramce, lock w redisie i commit sa blokujace, wiec poza event loopem
    return await run_in_threadpool(svc.handle_event, raw_body, x_paystack_signature)


@router.get("/verify", response_model=PaymentVerificationOut)
def verify_payment(
    reference: str,
    svc: PaymentWebhookService = Depends(get_service),
):
    verified = svc.verify_reference(reference)
    return {"reference": verified.reference, "status": verified.status, "amount": verified.amount}
