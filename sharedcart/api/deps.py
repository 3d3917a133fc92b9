# sharedcart/api/deps.py
from fastapi import Header

from sharedcart.domain.errors import AuthenticationRequired
from sharedcart.domain.schemas import Identity
from sharedcart.services.catalog_client import CatalogClient
from sharedcart.services.lock_service import LockService
from sharedcart.services.notification_service import NotificationService
from sharedcart.services.payment_gateway import PaystackClient


def get_identity(
    x_user_id: str | None = Header(None),
    x_user_email: str | None = Header(None),
) -> Identity:
    # tozsamosc weryfikuje gateway przed nami, tu tylko ja odbieramy
    if not x_user_id:
        raise AuthenticationRequired()
    return Identity(user_id=x_user_id, email=x_user_email)


def get_catalog_client() -> CatalogClient:
    return CatalogClient()


def get_payment_gateway() -> PaystackClient:
    return PaystackClient()


def get_lock_service() -> LockService:
    return LockService()


def get_notifier() -> NotificationService:
    return NotificationService()
