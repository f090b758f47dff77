import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError as RazorpayGatewayError, ServerError

from app.core.errors import GatewayError
from app.core.logging_config import get_logger
from app.gateways.base import (
    PAYMENT_FAILED,
    PAYMENT_SUCCESS,
    REFUND,
    GatewayOrder,
    GatewayPayment,
    GatewayRefund,
    PaymentGateway,
    WebhookEvent,
    hmac_sha256_hex,
    signatures_match,
)

logger = get_logger()

_REFUND_STATUS = {
    "pending": "initiated",
    "created": "initiated",
    "processed": "processed",
    "failed": "failed",
}

_EVENTS = {
    "payment.captured": PAYMENT_SUCCESS,
    "order.paid": PAYMENT_SUCCESS,
    "payment.failed": PAYMENT_FAILED,
    "refund.created": REFUND,
    "refund.processed": REFUND,
    "refund.failed": REFUND,
}


class _TimeoutSession(requests.Session):
    """requests session that never waits forever on Razorpay."""

    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, **kwargs)


def _payment_details(entity: dict) -> dict:
    card = entity.get("card") or {}
    acquirer = entity.get("acquirer_data") or {}
    return {
        "card_last4": card.get("last4"),
        "card_network": card.get("network"),
        "card_type": card.get("type"),
        "card_issuer": card.get("issuer"),
        "upi_vpa": entity.get("vpa"),
        "bank_transaction_id": acquirer.get("rrn") or acquirer.get("upi_transaction_id"),
        "bank": entity.get("bank"),
        "wallet_name": entity.get("wallet"),
    }


def _to_payment(entity: dict) -> GatewayPayment:
    return GatewayPayment(
        payment_id=entity["id"],
        order_id=entity.get("order_id"),
        status=entity.get("status"),
        captured=entity.get("status") == "captured",
        amount=int(entity.get("amount") or 0),
        currency=entity.get("currency") or "INR",
        method=entity.get("method"),
        email=entity.get("email"),
        contact=entity.get("contact"),
        details=_payment_details(entity),
        raw=entity,
    )


def _to_refund(entity: dict) -> GatewayRefund:
    return GatewayRefund(
        refund_id=entity["id"],
        amount=int(entity.get("amount") or 0),
        status=_REFUND_STATUS.get(entity.get("status"), "initiated"),
        payment_id=entity.get("payment_id"),
        raw=entity,
    )


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, key_id: str, key_secret: str, webhook_secret: str | None = None,
                 timeout: float = 15):
        self.key_id = key_id
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret
        self.client = razorpay.Client(session=_TimeoutSession(timeout), auth=(key_id, key_secret))

    @property
    def signing_secret(self) -> str:
        return self._key_secret

    # -----------------------------------------------------------------
    def _call(self, action: str, fn, *args):
        try:
            return fn(*args)
        except (BadRequestError, RazorpayGatewayError, ServerError) as e:
            logger.bind(log_type="payment").warning(f"Razorpay {action} rejected: {e}")
            raise GatewayError(str(e) or f"Razorpay {action} failed")
        except requests.RequestException as e:
            logger.bind(log_type="payment").error(f"Razorpay {action} unreachable: {e}")
            raise GatewayError(f"Payment gateway unreachable: {e}")

    def create_order(self, bill_id, amount, currency, customer, notify_url,
                     return_url=None, notes=None) -> GatewayOrder:
        # Razorpay takes the callback from the dashboard webhook config;
        # notify_url is kept in notes for traceability.
        payload_notes = {
            "customer_name": customer.name,
            "customer_email": customer.email,
            "customer_phone": customer.phone,
            "notify_url": notify_url,
        }
        payload_notes.update({k: str(v) for k, v in (notes or {}).items()})

        order = self._call("order create", self.client.order.create, {
            "amount": amount,
            "currency": currency,
            "receipt": bill_id,
            "notes": payload_notes,
        })
        # Checkout opens with the order id itself
        return GatewayOrder(order_id=order["id"], session_handle=order["id"], raw=order)

    def fetch_payment(self, order_id, payment_id) -> GatewayPayment:
        entity = self._call(
            "payment fetch", self.client.payment.fetch, payment_id, {"expand[]": "card"}
        )
        return _to_payment(entity)

    def create_refund(self, order_id, payment_id, amount, refund_id, note) -> GatewayRefund:
        if not payment_id:
            raise GatewayError("Cannot refund a payment without a payment id")
        entity = self._call("refund create", self.client.payment.refund, payment_id, {
            "amount": amount,
            "receipt": refund_id,
            "notes": {"reason": note, "refund_id": refund_id, "order_id": order_id},
        })
        return _to_refund(entity)

    def list_refunds(self, order_id, payment_id=None) -> list[GatewayRefund]:
        if not payment_id:
            return []
        result = self._call(
            "refund list", self.client.payment.fetch_multiple_refund, payment_id
        )
        return [_to_refund(item) for item in result.get("items", [])]

    # -----------------------------------------------------------------
    def verify_webhook_signature(self, raw_body: bytes, headers) -> bool:
        if not self._webhook_secret:
            return False
        expected = hmac_sha256_hex(self._webhook_secret, raw_body)
        return signatures_match(expected, headers.get("x-razorpay-signature"))

    def parse_webhook(self, payload: dict) -> WebhookEvent:
        name = payload.get("event") or ""
        kind = _EVENTS.get(name)
        body = payload.get("payload") or {}

        payment = None
        refund = None
        payment_entity = (body.get("payment") or {}).get("entity")
        if payment_entity:
            payment = _to_payment(payment_entity)
        refund_entity = (body.get("refund") or {}).get("entity")
        if refund_entity:
            refund = _to_refund(refund_entity)

        order_id = payment.order_id if payment else None
        if not order_id:
            order_id = ((body.get("order") or {}).get("entity") or {}).get("id")
        return WebhookEvent(kind=kind, name=name, order_id=order_id, payment=payment, refund=refund)
