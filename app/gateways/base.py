"""
Payment gateway port.

The reconciliation code in ``app.services`` is written once against
``PaymentGateway``; Razorpay and Cashfree adapters translate their own
payloads into the normalized records below. Amounts are always minor units.
"""
import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


# Normalized webhook event kinds
PAYMENT_SUCCESS = "payment_success"
PAYMENT_FAILED = "payment_failed"
REFUND = "refund"


@dataclass(frozen=True)
class Customer:
    customer_id: str
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str          # gateway order id
    session_handle: str    # what the checkout page needs to open
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayPayment:
    payment_id: str
    order_id: str
    status: str            # provider's own status string
    captured: bool
    amount: int
    currency: str
    method: str | None = None
    email: str | None = None
    contact: str | None = None
    # card_last4 / card_network / card_type / card_issuer / upi_vpa / bank / wallet_name ...
    details: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayRefund:
    refund_id: str
    amount: int
    status: str            # initiated | processed | failed
    payment_id: str | None = None
    order_id: str | None = None
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookEvent:
    kind: str | None       # PAYMENT_SUCCESS | PAYMENT_FAILED | REFUND | None (ignored)
    name: str              # provider's event name
    order_id: str | None = None
    payment: GatewayPayment | None = None
    refund: GatewayRefund | None = None


def hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signatures_match(expected: str, supplied: str | None) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected, supplied)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "gateway"

    @abstractmethod
    def create_order(
        self,
        bill_id: str,
        amount: int,
        currency: str,
        customer: Customer,
        notify_url: str,
        return_url: str | None = None,
        notes: dict | None = None,
    ) -> GatewayOrder:
        """Open a checkout session; ``bill_id`` is our idempotency key."""

    @abstractmethod
    def fetch_payment(self, order_id: str, payment_id: str) -> GatewayPayment:
        """Authoritative payment status lookup."""

    @abstractmethod
    def create_refund(
        self,
        order_id: str,
        payment_id: str | None,
        amount: int,
        refund_id: str,
        note: str,
    ) -> GatewayRefund:
        ...

    @abstractmethod
    def list_refunds(self, order_id: str, payment_id: str | None = None) -> list[GatewayRefund]:
        ...

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str | None) -> bool:
        """HMAC-SHA256 of ``order_id|payment_id``. Providers without a client
        side signature override this."""
        expected = hmac_sha256_hex(self.signing_secret, f"{order_id}|{payment_id}".encode("utf-8"))
        return signatures_match(expected, signature)

    @property
    def requires_payment_signature(self) -> bool:
        return True

    @property
    @abstractmethod
    def signing_secret(self) -> str:
        ...

    @abstractmethod
    def verify_webhook_signature(self, raw_body: bytes, headers) -> bool:
        """Authenticate a webhook over the exact bytes received."""

    @abstractmethod
    def parse_webhook(self, payload: dict) -> WebhookEvent:
        ...
