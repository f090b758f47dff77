from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class RefundStatus(str, Enum):
    NONE = "none"
    INITIATED = "initiated"
    PROCESSED = "processed"
    FAILED = "failed"


class DeliveryStatus(str, Enum):
    ORDER_CONFIRMED = "order_confirmed"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    PENDING_APPROVAL = "pending_approval"


# Payment ledger (payments table)
class LedgerRefundStatus(str, Enum):
    NEVER = "never"
    PARTIAL = "partial"
    FULL = "full"


class OrderType(str, Enum):
    BOOKING = "booking"
    DIY = "diy"


# Bookings in these states hold their slot
SLOT_HOLDING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

# A late "failed" never overrides these
TERMINAL_PAYMENT_STATUSES = (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value)
