# sharedcart/domain/payments.py
import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sharedcart.domain.errors import InvalidPaymentMetadata


class SharedCartPayment(BaseModel):
    """Metadata platnosci za udzial jednego czlonka we wspolnym koszyku."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cart_id: int = Field(..., alias="cartId")
    user_id: str = Field(..., alias="userId")
    type: Literal["shared_cart_split", "shared_cart_payall"] = "shared_cart_split"


class RegularOrderPayment(BaseModel):
    """Metadata platnosci za zwykle zamowienie jednego klienta."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    order_id: str = Field(..., alias="orderId")


PaymentMetadata = Union[SharedCartPayment, RegularOrderPayment]


def parse_payment_metadata(raw: Any) -> PaymentMetadata:
    # gateway oddaje metadata jako dict albo jako string z jsonem
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise InvalidPaymentMetadata("Payment metadata is not valid JSON")

    if not isinstance(raw, dict):
        raise InvalidPaymentMetadata()

    try:
        if "cartId" in raw or "cart_id" in raw:
            return SharedCartPayment.model_validate(raw)
        if "orderId" in raw or "order_id" in raw:
            return RegularOrderPayment.model_validate({"orderId": str(raw.get("orderId", raw.get("order_id")))})
    except ValidationError as e:
        raise InvalidPaymentMetadata(f"Invalid payment metadata: {e.errors()[0]['msg']}")

    raise InvalidPaymentMetadata()


class VerifiedTransaction(BaseModel):
    """Transakcja tak jak ja zwraca weryfikacja server-to-server w bramce."""

    reference: str
    status: str
    amount: int
    metadata: dict | str | None = None
    customer_email: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class PaymentInitiation(BaseModel):
    """To czego klient potrzebuje, zeby otworzyc checkout bramki dla jednego placacego."""

    amount: int
    email: str
    reference: str
    metadata: SharedCartPayment

    def to_gateway_payload(self) -> dict:
        return {
            "amount": self.amount,
            "email": self.email,
            "reference": self.reference,
            "metadata": self.metadata.model_dump(by_alias=True),
        }
