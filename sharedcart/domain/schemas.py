# sharedcart/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from datetime import datetime


PaymentModeLiteral = Literal["split", "payAll"]
OrderTypeLiteral = Literal["Delivery", "Dine-In", "Take-out"]


class Identity(BaseModel):
    """Tozsamosc wywolujacego, juz zweryfikowana przez gateway auth."""

    user_id: str
    email: str | None = None


class CreateCartIn(BaseModel):
    """Schema dla tworzenia wspolnego koszyka."""

    branch_id: str | None = Field(None, description="ID oddzialu")
    payment_mode: PaymentModeLiteral = "split"
    order_type: OrderTypeLiteral


class CreateCartOut(BaseModel):
    cart_id: int
    invite_code: str


class JoinCartIn(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=32)


class JoinCartOut(BaseModel):
    cart_id: int
    already_member: bool


class ItemIn(BaseModel):
    """Schema dla dodawania pozycji do koszyka."""

    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., description="Ilosc (musi byc > 0)")


class ItemAdjustIn(BaseModel):
    """Zmiana ilosci: dodatnia zwieksza, ujemna zmniejsza."""

    menu_item_id: str = Field(..., min_length=1)
    delta: int


class RemoveItemOut(BaseModel):
    removed: bool


class PaymentModeIn(BaseModel):
    payment_mode: PaymentModeLiteral


class DeliveryZoneIn(BaseModel):
    zone_id: str = Field(..., min_length=1)
    street_address: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=32)


class DeliveryQuoteOut(BaseModel):
    zone_id: str
    delivery_fee: int
    is_peak: bool


class CartMemberOut(BaseModel):
    user_id: str
    payment_status: str
    amount_due: int
    amount_paid: int | None = None
    payment_reference: str | None = None
    is_initiator: bool

    model_config = ConfigDict(from_attributes=True)


class CartItemOut(BaseModel):
    id: int
    user_id: str
    menu_item_id: str
    name: str | None = None
    quantity: int
    unit_price: int

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int
    initiator_id: str
    branch_id: str | None = None
    order_type: str
    status: str
    payment_mode: str
    invite_code: str | None = None
    total_amount: int
    delivery_zone_id: str | None = None
    delivery_fee: int | None = None
    delivery_street: str | None = None
    delivery_phone: str | None = None
    created_at: datetime
    members: List[CartMemberOut]
    items: List[CartItemOut]

    model_config = ConfigDict(from_attributes=True)


class CartSummaryOut(BaseModel):
    cart_id: int
    initiator_id: str
    status: str
    payment_mode: str
    order_type: str
    total_amount: int
    created_at: datetime


class StatusOut(BaseModel):
    cart_id: int
    status: str


class PaymentInitiationOut(BaseModel):
    amount: int
    email: str
    reference: str
    metadata: dict


class WebhookAckOut(BaseModel):
    result: str
    cart_id: int | None = None
    cart_status: str | None = None


class PaymentVerificationOut(BaseModel):
    reference: str
    status: str
    amount: int
