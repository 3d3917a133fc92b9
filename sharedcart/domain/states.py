# sharedcart/domain/states.py

# cart status
OPEN = "open"
PAYING = "paying"
LOCKED = "locked"
COMPLETED = "completed"
CANCELLED = "cancelled"
EXPIRED = "expired"

ACTIVE_STATUSES = (OPEN, PAYING, LOCKED)
TERMINAL_STATUSES = (COMPLETED, CANCELLED, EXPIRED)
EXPIRABLE_STATUSES = (OPEN, PAYING)

# payment mode
SPLIT = "split"
PAY_ALL = "payAll"

# member payment status
PENDING = "pending"
PAID = "paid"

# order type
DELIVERY = "Delivery"
DINE_IN = "Dine-In"
TAKE_OUT = "Take-out"
