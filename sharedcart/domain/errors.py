# sharedcart/domain/errors.py
"""
Typowane bledy rdzenia wspolnego koszyka.

Kazdy blad niesie status HTTP, ktorym odpowiada API, i staly ``code`` dla klienta.
Bledy dostepu sa tez ``PermissionError``, a naruszenia regul ``ValueError``,
wiec kod ktory zna tylko wbudowane wyjatki dalej je lapie.
"""


class SharedCartError(Exception):
    status_code = 400
    code = "shared_cart_error"
    default_message = "Shared cart operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationRequired(SharedCartError):
    status_code = 401
    code = "authentication_required"
    default_message = "Authentication required"


# --- access ---

class AccessError(SharedCartError, PermissionError):
    status_code = 403


class NotAMember(AccessError):
    code = "not_a_member"
    default_message = "You are not a member of this cart"


class PermissionDenied(AccessError):
    code = "permission_denied"
    default_message = "Permission denied"


# --- lookups ---

class NotFoundError(SharedCartError, LookupError):
    status_code = 404


class CartNotFound(NotFoundError):
    code = "cart_not_found"
    default_message = "Cart not found"


class InvalidInviteCode(NotFoundError):
    code = "invalid_invite_code"
    default_message = "Invalid invite code"


class CartItemNotFound(NotFoundError):
    code = "cart_item_not_found"
    default_message = "Item not found in cart"


# --- state machine preconditions ---

class CartStateError(SharedCartError, ValueError):
    status_code = 409


class CartNotOpen(CartStateError):
    code = "cart_not_open"
    default_message = "Cart is not open"


class CartNotJoinable(CartStateError):
    code = "cart_not_joinable"
    default_message = "This cart is no longer open for joining"


class WrongPaymentMode(CartStateError):
    code = "wrong_payment_mode"
    default_message = "Cart is not in the required payment mode"


class CartAlreadyClosed(CartStateError):
    code = "cart_already_closed"
    default_message = "Cart is already closed"


class MemberAlreadyPaid(CartStateError):
    code = "member_already_paid"
    default_message = "You have already paid your share"


class ConcurrencyConflict(CartStateError):
    code = "concurrency_conflict"
    default_message = "Cart was modified by another operation"


# --- business rules ---

class BusinessRuleError(SharedCartError, ValueError):
    status_code = 422


class ItemUnavailable(BusinessRuleError):
    code = "item_unavailable"
    default_message = "Menu item is not available or does not exist"


class ZoneInactive(BusinessRuleError):
    code = "zone_inactive"
    default_message = "Selected delivery zone is not valid or inactive"


class InvalidQuantity(BusinessRuleError):
    code = "invalid_quantity"
    default_message = "Quantity must be greater than 0"


class NotADeliveryCart(BusinessRuleError):
    code = "not_a_delivery_cart"
    default_message = "Delivery details can only be set on delivery carts"


class DeliveryZoneRequired(BusinessRuleError):
    code = "delivery_zone_required"
    default_message = "Select a delivery zone before starting payment"


class EmptyCart(BusinessRuleError):
    code = "empty_cart"
    default_message = "Cannot start payment for an empty cart"


class InvalidPaymentMetadata(BusinessRuleError):
    code = "invalid_payment_metadata"
    default_message = "Payment metadata does not identify a cart or an order"


# --- payments ---

class InvalidWebhookSignature(SharedCartError):
    status_code = 401
    code = "invalid_webhook_signature"
    default_message = "Invalid webhook signature"


class TamperDetected(SharedCartError):
    code = "tamper_detected"
    default_message = "Verified payment does not match the webhook payload"


class PaymentGatewayError(SharedCartError):
    status_code = 502
    code = "payment_gateway_error"
    default_message = "Payment gateway verification failed"
