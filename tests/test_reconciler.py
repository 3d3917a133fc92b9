from sharedcart.domain.states import CANCELLED, COMPLETED, LOCKED, PAID, PAYING, PENDING
from sharedcart.repos.cart_repo import SharedCartRepo
from sharedcart.services.reconciler import PaymentReconciler
from sharedcart.services.settlement_service import SettlementService


def _split_cart(db, clock, make_cart, alice, bob):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 2), (bob, "plantain", 2)])
    SettlementService(db, clock).start_split_payment(cart_id, alice)
    return cart_id


def _snapshot(repo, cart_id):
    cart = repo.get_cart(cart_id)
    members = [(m.user_id, m.payment_status, m.payment_reference, m.amount_paid) for m in repo.get_members(cart_id)]
    return cart.status, cart.total_amount, members


def test_split_happy_path(db, clock, notifier, alice, bob, make_cart):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    reconciler = PaymentReconciler(db, notifier)

    first = reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)
    assert first["applied"] is True
    assert first["completed"] is False
    assert reconciler.repo.get_cart(cart_id).status == PAYING

    second = reconciler.apply_member_payment(cart_id, bob.user_id, "ref_b", 500)
    assert second["completed"] is True
    assert reconciler.repo.get_cart(cart_id).status == COMPLETED
    assert notifier.sent == [(cart_id, alice.user_id, 1000)]

    bob_row = reconciler.repo.get_member(cart_id, bob.user_id)
    assert bob_row.payment_status == PAID
    assert bob_row.payment_reference == "ref_b"
    assert bob_row.amount_paid == 500


def test_completion_retries_after_version_conflict_and_notifies_once(
    db, clock, notifier, alice, bob, make_cart, monkeypatch
):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    reconciler = PaymentReconciler(db, notifier)
    reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)
    version = reconciler.repo.get_cart(cart_id).version

    original = SharedCartRepo.update_cart_version
    calls = {"n": 0}

    def flaky_update(self, cart_id, old_version, new_data):
        calls["n"] += 1
        if calls["n"] == 1:
            return 0
        return original(self, cart_id, old_version, new_data)

    monkeypatch.setattr(SharedCartRepo, "update_cart_version", flaky_update)

    result = reconciler.apply_member_payment(cart_id, bob.user_id, "ref_b", 500)

    assert calls["n"] == 2
    assert result["applied"] is True
    assert result["completed"] is True
    cart = reconciler.repo.get_cart(cart_id)
    assert cart.status == COMPLETED
    assert cart.version == version + 1
    assert reconciler.repo.get_member(cart_id, bob.user_id).payment_reference == "ref_b"
    assert notifier.sent == [(cart_id, alice.user_id, 1000)]


def test_same_event_applied_many_times_equals_once(db, clock, notifier, alice, bob, make_cart):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    reconciler = PaymentReconciler(db, notifier)

    reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)
    once = _snapshot(reconciler.repo, cart_id)

    for _ in range(3):
        result = reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)
        assert result["applied"] is False

    assert _snapshot(reconciler.repo, cart_id) == once


def test_completion_notifies_exactly_once(db, clock, notifier, alice, bob, make_cart):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    reconciler = PaymentReconciler(db, notifier)

    reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)
    reconciler.apply_member_payment(cart_id, bob.user_id, "ref_b", 500)
    reconciler.apply_member_payment(cart_id, bob.user_id, "ref_b", 500)

    assert len(notifier.sent) == 1


def test_failed_notification_does_not_undo_completion(db, clock, alice, failing_notifier, make_cart):
    cart_id = make_cart(alice, items=[(alice, "jollof", 1)])
    SettlementService(db, clock).start_split_payment(cart_id, alice)
    notifier = failing_notifier

    result = PaymentReconciler(db, notifier).apply_member_payment(cart_id, alice.user_id, "ref_a", 300)

    assert result["completed"] is True
    assert notifier.sent
    assert PaymentReconciler(db, notifier).repo.get_cart(cart_id).status == COMPLETED


def test_unknown_member_is_a_noop(db, clock, notifier, alice, bob, carol, make_cart):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    reconciler = PaymentReconciler(db, notifier)
    before = _snapshot(reconciler.repo, cart_id)

    result = reconciler.apply_member_payment(cart_id, carol.user_id, "ref_c", 500)

    assert result["applied"] is False
    assert _snapshot(reconciler.repo, cart_id) == before


def test_pay_all_covers_every_other_member(db, clock, notifier, alice, bob, carol, make_cart):
    cart_id = make_cart(
        alice,
        members=[bob, carol],
        items=[(alice, "jollof", 2), (bob, "plantain", 2)],
        payment_mode="payAll",
    )
    SettlementService(db, clock).start_pay_all(cart_id, alice)
    reconciler = PaymentReconciler(db, notifier)
    assert reconciler.repo.get_cart(cart_id).status == LOCKED

    result = reconciler.apply_member_payment(cart_id, alice.user_id, "ref_all", 1000)

    assert result["completed"] is True
    assert reconciler.repo.get_cart(cart_id).status == COMPLETED
    members = {m.user_id: m for m in reconciler.repo.get_members(cart_id)}
    assert members[alice.user_id].amount_paid == 1000
    assert members[alice.user_id].payment_reference == "ref_all"
    for other in (bob, carol):
        assert members[other.user_id].payment_status == PAID
        assert members[other.user_id].amount_paid == 0
        assert members[other.user_id].payment_reference == "covered_by_ref_all"
    assert notifier.sent == [(cart_id, alice.user_id, 1000)]


def test_pay_all_by_non_initiator_does_not_complete(db, clock, notifier, alice, bob, make_cart):
    cart_id = make_cart(alice, members=[bob], items=[(alice, "jollof", 1)], payment_mode="payAll")
    SettlementService(db, clock).start_pay_all(cart_id, alice)
    reconciler = PaymentReconciler(db, notifier)

    result = reconciler.apply_member_payment(cart_id, bob.user_id, "ref_b", 300)

    assert result["completed"] is False
    assert reconciler.repo.get_cart(cart_id).status == LOCKED
    assert reconciler.repo.get_member(cart_id, alice.user_id).payment_status == PENDING


def test_payment_for_cancelled_cart_is_recorded_without_transition(db, clock, notifier, alice, bob, make_cart):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    SettlementService(db, clock).cancel_cart(cart_id, alice)
    reconciler = PaymentReconciler(db, notifier)

    reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)
    reconciler.apply_member_payment(cart_id, bob.user_id, "ref_b", 500)

    assert reconciler.repo.get_cart(cart_id).status == CANCELLED
    assert reconciler.repo.get_member(cart_id, bob.user_id).payment_status == PAID
    assert notifier.sent == []


def test_every_payment_bumps_version(db, clock, notifier, alice, bob, make_cart):
    cart_id = _split_cart(db, clock, make_cart, alice, bob)
    reconciler = PaymentReconciler(db, notifier)
    before = reconciler.repo.get_cart(cart_id).version

    reconciler.apply_member_payment(cart_id, alice.user_id, "ref_a", 500)

    assert reconciler.repo.get_cart(cart_id).version == before + 1
