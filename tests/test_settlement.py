import pytest

from sharedcart.domain.errors import (
    AuthenticationRequired,
    CartAlreadyClosed,
    CartNotJoinable,
    CartNotOpen,
    DeliveryZoneRequired,
    EmptyCart,
    MemberAlreadyPaid,
    NotAMember,
    PermissionDenied,
    WrongPaymentMode,
)
from sharedcart.domain.schemas import Identity
from sharedcart.domain.states import CANCELLED, COMPLETED, LOCKED, PAYING
from sharedcart.repos.cart_repo import SharedCartRepo
from sharedcart.services.delivery_service import DeliveryFeeService
from sharedcart.services.membership_service import MembershipService
from sharedcart.services.reconciler import PaymentReconciler
from sharedcart.services.settlement_service import SettlementService, new_payment_reference, split_amount_due


@pytest.mark.parametrize(
    "payable, members, expected",
    [
        (1000, 2, 500),
        (1000, 3, 334),
        (1, 4, 1),
        (999, 1, 999),
    ],
)
def test_split_amount_rounds_up(payable, members, expected):
    share = split_amount_due(payable, members)
    assert share == expected
    assert share * members >= payable


def test_split_amount_with_no_members():
    with pytest.raises(ValueError):
        split_amount_due(1000, 0)


def test_payment_references_are_unique():
    refs = {new_payment_reference(1, "user_alice") for _ in range(50)}
    assert len(refs) == 50
    assert all(r.startswith("sc_1_user_a") for r in refs)


def test_first_split_payer_freezes_shares(db, clock, alice, bob, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 2), (bob, "plantain", 2)])
    svc = SettlementService(db, clock)

    initiation = svc.start_split_payment(cart_id, alice)

    assert initiation.amount == 500
    assert initiation.email == alice.email
    assert initiation.metadata.cart_id == cart_id
    assert initiation.metadata.user_id == alice.user_id
    assert initiation.metadata.type == "shared_cart_split"

    cart = svc.repo.get_cart(cart_id)
    assert cart.status == PAYING
    assert cart.total_amount == 1000
    assert [m.amount_due for m in svc.repo.get_members(cart_id)] == [500, 500]


def test_later_payer_reuses_stored_share(db, clock, alice, bob, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 2), (bob, "plantain", 2)])
    svc = SettlementService(db, clock)
    first = svc.start_split_payment(cart_id, alice)

    second = svc.start_split_payment(cart_id, bob)

    assert second.amount == 500
    assert second.reference != first.reference
    assert svc.repo.get_cart(cart_id).status == PAYING


def test_split_start_retries_after_version_conflict(db, clock, alice, bob, make_cart, monkeypatch):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 2), (bob, "plantain", 2)])
    svc = SettlementService(db, clock)
    version = svc.repo.get_cart(cart_id).version

    original = SharedCartRepo.update_cart_version
    calls = {"n": 0}

    def flaky_update(self, cart_id, old_version, new_data):
        calls["n"] += 1
        if calls["n"] == 1:
            return 0
        return original(self, cart_id, old_version, new_data)

    monkeypatch.setattr(SharedCartRepo, "update_cart_version", flaky_update)

    initiation = svc.start_split_payment(cart_id, alice)

    assert calls["n"] == 2
    assert initiation.amount == 500
    cart = svc.repo.get_cart(cart_id)
    assert cart.status == PAYING
    assert cart.version == version + 1
    assert [m.amount_due for m in svc.repo.get_members(cart_id)] == [500, 500]


def test_uneven_split_covers_total(db, clock, alice, bob, carol, make_cart):
    cart_id = make_cart(alice, members=[bob, carol], items=[(alice, "jollof", 1), (bob, "plantain", 2)])

    initiation = SettlementService(db, clock).start_split_payment(cart_id, carol)

    assert initiation.amount == 234
    assert initiation.amount * 3 >= 700


def test_delivery_fee_is_shared_between_members(db, catalog, clock, alice, bob, make_cart):
    cart_id = make_cart(
        alice,
        members=[bob],
        items=[(alice, "jollof", 2), (bob, "plantain", 2)],
        order_type="Delivery",
    )
    DeliveryFeeService(db, catalog, clock).set_delivery_zone(cart_id, alice, "marian")

    initiation = SettlementService(db, clock).start_split_payment(cart_id, bob)

    # (1000 + 1600) / 2
    assert initiation.amount == 1300


def test_delivery_cart_needs_zone_before_payment(db, clock, alice, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)], order_type="Delivery")

    with pytest.raises(DeliveryZoneRequired):
        SettlementService(db, clock).start_split_payment(cart_id, alice)


def test_empty_cart_cannot_start_payment(db, clock, alice, make_cart):
    cart_id = make_cart(alice)
    svc = SettlementService(db, clock)

    with pytest.raises(EmptyCart):
        svc.start_split_payment(cart_id, alice)

    assert svc.repo.get_cart(cart_id).status == "open"


def test_split_requires_split_mode(db, clock, alice, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)], payment_mode="payAll")

    with pytest.raises(WrongPaymentMode):
        SettlementService(db, clock).start_split_payment(cart_id, alice)


def test_split_requires_membership(db, clock, alice, bob, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)])

    with pytest.raises(NotAMember):
        SettlementService(db, clock).start_split_payment(cart_id, bob)


def test_split_requires_email(db, clock, alice, make_cart):
    anonymous = Identity(user_id="user_dave")
    cart_id = make_cart(alice, members=[anonymous], items=[(alice, "jollof", 1)])

    with pytest.raises(AuthenticationRequired):
        SettlementService(db, clock).start_split_payment(cart_id, anonymous)


def test_member_who_paid_cannot_start_again(db, clock, alice, bob, notifier, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 2), (bob, "plantain", 2)])
    svc = SettlementService(db, clock)
    initiation = svc.start_split_payment(cart_id, alice)
    PaymentReconciler(db, notifier).apply_member_payment(cart_id, alice.user_id, initiation.reference, 500)

    with pytest.raises(MemberAlreadyPaid):
        svc.start_split_payment(cart_id, alice)


def test_join_after_split_started_is_rejected(db, clock, alice, bob, carol, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 2), (bob, "plantain", 2)])
    svc = SettlementService(db, clock)
    svc.start_split_payment(cart_id, alice)
    invite_code = svc.repo.get_cart(cart_id).invite_code

    with pytest.raises(CartNotJoinable):
        MembershipService(db, clock).join_cart(carol, invite_code)

    assert len(svc.repo.get_members(cart_id)) == 2


def test_pay_all_locks_cart_and_charges_initiator_everything(db, catalog, clock, alice, bob, make_cart):
    cart_id = make_cart(
        alice,
        members=[bob],
        items=[(alice, "jollof", 2), (bob, "plantain", 2)],
        payment_mode="payAll",
        order_type="Delivery",
    )
    DeliveryFeeService(db, catalog, clock).set_delivery_zone(cart_id, alice, "marian")
    svc = SettlementService(db, clock)

    initiation = svc.start_pay_all(cart_id, alice)

    assert initiation.amount == 2600
    assert initiation.reference.startswith(f"sc_all_{cart_id}_")
    assert initiation.metadata.type == "shared_cart_payall"

    cart = svc.repo.get_cart(cart_id)
    assert cart.status == LOCKED
    assert cart.total_amount == 1000
    assert svc.repo.get_member(cart_id, alice.user_id).amount_due == 2600
    assert svc.repo.get_member(cart_id, bob.user_id).amount_due == 0


def test_pay_all_only_by_initiator(db, clock, alice, bob, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(bob, "jollof", 1)], payment_mode="payAll")

    with pytest.raises(PermissionDenied):
        SettlementService(db, clock).start_pay_all(cart_id, bob)


def test_pay_all_twice_fails_once_locked(db, clock, alice, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)], payment_mode="payAll")
    svc = SettlementService(db, clock)
    svc.start_pay_all(cart_id, alice)

    with pytest.raises(CartNotOpen):
        svc.start_pay_all(cart_id, alice)


def test_pay_all_requires_pay_all_mode(db, clock, alice, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)])

    with pytest.raises(WrongPaymentMode):
        SettlementService(db, clock).start_pay_all(cart_id, alice)


def test_cancel_from_paying(db, clock, alice, bob, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 1)])
    svc = SettlementService(db, clock)
    svc.start_split_payment(cart_id, bob)

    assert svc.cancel_cart(cart_id, alice) == {"cart_id": cart_id, "status": CANCELLED}
    assert svc.repo.get_cart(cart_id).status == CANCELLED


def test_only_initiator_cancels(db, clock, alice, bob, make_cart):
    cart_id = make_cart(alice, members=[bob])

    with pytest.raises(PermissionDenied):
        SettlementService(db, clock).cancel_cart(cart_id, bob)


def test_cancelled_cart_stays_cancelled(db, clock, alice, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)])
    svc = SettlementService(db, clock)
    svc.cancel_cart(cart_id, alice)

    with pytest.raises(CartAlreadyClosed):
        svc.cancel_cart(cart_id, alice)
    with pytest.raises(CartNotOpen):
        svc.start_split_payment(cart_id, alice)


def test_completed_cart_cannot_be_cancelled(db, clock, alice, notifier, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)])
    svc = SettlementService(db, clock)
    initiation = svc.start_split_payment(cart_id, alice)
    PaymentReconciler(db, notifier).apply_member_payment(cart_id, alice.user_id, initiation.reference, 300)
    assert svc.repo.get_cart(cart_id).status == COMPLETED

    with pytest.raises(CartAlreadyClosed):
        svc.cancel_cart(cart_id, alice)
