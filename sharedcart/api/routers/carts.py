# sharedcart/api/routers/carts.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sharedcart.api.deps import get_catalog_client, get_identity
from sharedcart.data.database import get_db
from sharedcart.domain.schemas import (
    CartOut,
    CartSummaryOut,
    CreateCartIn,
    CreateCartOut,
    DeliveryQuoteOut,
    DeliveryZoneIn,
    Identity,
    ItemAdjustIn,
    ItemIn,
    JoinCartIn,
    JoinCartOut,
    PaymentInitiationOut,
    PaymentModeIn,
    RemoveItemOut,
    StatusOut,
)
from sharedcart.services.cart_service import CartQueryService
from sharedcart.services.catalog_client import CatalogClient
from sharedcart.services.delivery_service import DeliveryFeeService
from sharedcart.services.item_ledger import ItemLedgerService
from sharedcart.services.membership_service import MembershipService
from sharedcart.services.settlement_service import SettlementService

router = APIRouter(prefix="/shared-carts", tags=["shared-carts"])


@router.post("/", response_model=CreateCartOut, status_code=201)
def create_cart(
    payload: CreateCartIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """
    Tworzy wspolny koszyk. Wywolujacy zostaje inicjatorem i pierwszym czlonkiem.
    """
    return MembershipService(db).create_cart(
        identity,
        branch_id=payload.branch_id,
        payment_mode=payload.payment_mode,
        order_type=payload.order_type,
    )


@router.post("/join", response_model=JoinCartOut)
def join_cart(
    payload: JoinCartIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return MembershipService(db).join_cart(identity, payload.invite_code)


@router.get("/", response_model=List[CartSummaryOut])
def list_my_carts(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return CartQueryService(db).list_user_carts(identity)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(
    cart_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return CartQueryService(db).get_cart(cart_id, identity)


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item(
    cart_id: int,
    payload: ItemIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    ItemLedgerService(db, catalog).add_item(cart_id, identity, payload.menu_item_id, payload.quantity)
    return CartQueryService(db).get_cart(cart_id, identity)


@router.patch("/{cart_id}/items", response_model=CartOut)
def adjust_item(
    cart_id: int,
    payload: ItemAdjustIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """
    Zmienia ilosc pozycji wywolujacego o delta. Ilosc <= 0 usuwa pozycje.
    """
    ItemLedgerService(db, catalog).adjust_item(cart_id, identity, payload.menu_item_id, payload.delta)
    return CartQueryService(db).get_cart(cart_id, identity)


@router.delete("/items/{item_id}", response_model=RemoveItemOut)
def remove_item(
    item_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    result = ItemLedgerService(db, catalog).remove_item(item_id, identity)
    return {"removed": result["removed"]}


@router.put("/{cart_id}/payment-mode", response_model=CartOut)
def set_payment_mode(
    cart_id: int,
    payload: PaymentModeIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    MembershipService(db).set_payment_mode(cart_id, identity, payload.payment_mode)
    return CartQueryService(db).get_cart(cart_id, identity)


@router.put("/{cart_id}/delivery", response_model=DeliveryQuoteOut)
def set_delivery_zone(
    cart_id: int,
    payload: DeliveryZoneIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """
    Wybor strefy dostawy. Oplata (zwykla albo peak) liczona teraz i zapamietana.
    """
    return DeliveryFeeService(db, catalog).set_delivery_zone(
        cart_id,
        identity,
        payload.zone_id,
        street_address=payload.street_address,
        phone=payload.phone,
    )


@router.post("/{cart_id}/pay/split", response_model=PaymentInitiationOut)
def start_split_payment(
    cart_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return SettlementService(db).start_split_payment(cart_id, identity).to_gateway_payload()


@router.post("/{cart_id}/pay/all", response_model=PaymentInitiationOut)
def start_pay_all(
    cart_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return SettlementService(db).start_pay_all(cart_id, identity).to_gateway_payload()


@router.post("/{cart_id}/cancel", response_model=StatusOut)
def cancel_cart(
    cart_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return SettlementService(db).cancel_cart(cart_id, identity)
