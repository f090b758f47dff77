import base64
import hashlib
import hmac
from dataclasses import replace

import requests

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
    signatures_match,
)
from app.utils.money import to_major_units, to_minor_units

logger = get_logger()

BASE_URLS = {
    "production": "https://api.cashfree.com/pg",
    "sandbox": "https://sandbox.cashfree.com/pg",
}

ALLOWED_PAYMENT_METHODS = "cc,dc,upi,nb,app"

_REFUND_STATUS = {
    "SUCCESS": "processed",
    "PENDING": "initiated",
    "ONHOLD": "initiated",
    "FAILED": "failed",
    "CANCELLED": "failed",
}

_EVENTS = {
    "PAYMENT_SUCCESS_WEBHOOK": PAYMENT_SUCCESS,
    "PAYMENT_FAILED_WEBHOOK": PAYMENT_FAILED,
    "PAYMENT_USER_DROPPED_WEBHOOK": PAYMENT_FAILED,
    "REFUND_STATUS_WEBHOOK": REFUND,
}


def _payment_details(method: dict) -> dict:
    card = method.get("card") or {}
    upi = method.get("upi") or {}
    netbanking = method.get("netbanking") or {}
    app = method.get("app") or {}
    card_number = card.get("card_number") or ""
    return {
        "card_last4": card_number[-4:] or None,
        "card_network": card.get("card_network"),
        "card_type": card.get("card_type"),
        "card_issuer": card.get("card_bank_name"),
        "upi_vpa": upi.get("upi_id"),
        "bank": netbanking.get("netbanking_bank_name"),
        "wallet_name": app.get("provider"),
    }


def _to_payment(entity: dict, order_id: str | None = None) -> GatewayPayment:
    status = entity.get("payment_status") or ""
    details = _payment_details(entity.get("payment_method") or {})
    details["bank_transaction_id"] = entity.get("bank_reference")
    return GatewayPayment(
        payment_id=str(entity.get("cf_payment_id")),
        order_id=entity.get("order_id") or order_id,
        status=status,
        captured=status == "SUCCESS",
        amount=to_minor_units(entity.get("payment_amount") or 0),
        currency=entity.get("payment_currency") or "INR",
        method=entity.get("payment_group"),
        details=details,
        raw=entity,
    )


def _to_refund(entity: dict) -> GatewayRefund:
    return GatewayRefund(
        refund_id=entity.get("refund_id"),
        amount=to_minor_units(entity.get("refund_amount") or 0),
        status=_REFUND_STATUS.get(entity.get("refund_status"), "initiated"),
        payment_id=str(entity["cf_payment_id"]) if entity.get("cf_payment_id") else None,
        order_id=entity.get("order_id"),
        raw=entity,
    )


class CashfreeGateway(PaymentGateway):
    name = "cashfree"

    def __init__(self, app_id: str, secret_key: str, environment: str = "sandbox",
                 api_version: str = "2023-08-01", timeout: float = 15):
        self.base_url = BASE_URLS.get(environment, BASE_URLS["sandbox"])
        self._secret_key = secret_key
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "x-client-id": app_id,
            "x-client-secret": secret_key,
            "x-api-version": api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    @property
    def signing_secret(self) -> str:
        return self._secret_key

    @property
    def requires_payment_signature(self) -> bool:
        return False

    def verify_payment_signature(self, order_id, payment_id, signature) -> bool:
        # Cashfree checkout returns no client signature; the verifier always
        # fetches the authoritative status instead.
        if signature:
            return super().verify_payment_signature(order_id, payment_id, signature)
        return True

    # -----------------------------------------------------------------
    def _request(self, method: str, path: str, action: str, json: dict | None = None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.Timeout:
            logger.bind(log_type="payment").error(f"Cashfree {action} timed out")
            raise GatewayError("Payment gateway timed out. Please try again.")
        except requests.RequestException as e:
            logger.bind(log_type="payment").error(f"Cashfree {action} unreachable: {e}")
            raise GatewayError(f"Payment gateway unreachable: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            message = data.get("message") if isinstance(data, dict) else None
            logger.bind(log_type="payment").warning(
                f"Cashfree {action} rejected ({response.status_code}): {data}"
            )
            raise GatewayError(message or f"Cashfree {action} failed", payload=data)
        return data

    def create_order(self, bill_id, amount, currency, customer, notify_url,
                     return_url=None, notes=None) -> GatewayOrder:
        order_meta = {"notify_url": notify_url, "payment_methods": ALLOWED_PAYMENT_METHODS}
        if return_url:
            order_meta["return_url"] = return_url

        body = {
            "order_id": bill_id,
            "order_amount": to_major_units(amount),
            "order_currency": currency,
            "customer_details": {
                "customer_id": customer.customer_id,
                "customer_name": customer.name,
                "customer_email": customer.email,
                "customer_phone": customer.phone,
            },
            "order_meta": order_meta,
        }
        if notes:
            body["order_tags"] = {k: str(v)[:255] for k, v in notes.items()}

        data = self._request("POST", "/orders", "order create", json=body)
        session_id = data.get("payment_session_id")
        if not session_id:
            raise GatewayError("Payment gateway returned no payment session", payload=data)
        return GatewayOrder(order_id=data.get("order_id") or bill_id, session_handle=session_id, raw=data)

    def fetch_payment(self, order_id, payment_id) -> GatewayPayment:
        data = self._request("GET", f"/orders/{order_id}/payments/{payment_id}", "payment fetch")
        return _to_payment(data, order_id)

    def create_refund(self, order_id, payment_id, amount, refund_id, note) -> GatewayRefund:
        data = self._request("POST", f"/orders/{order_id}/refunds", "refund create", json={
            "refund_amount": to_major_units(amount),
            "refund_id": refund_id,
            "refund_note": note[:100],
            "refund_speed": "STANDARD",
        })
        return _to_refund(data)

    def list_refunds(self, order_id, payment_id=None) -> list[GatewayRefund]:
        data = self._request("GET", f"/orders/{order_id}/refunds", "refund list")
        return [_to_refund(item) for item in data or []]

    # -----------------------------------------------------------------
    def verify_webhook_signature(self, raw_body: bytes, headers) -> bool:
        timestamp = headers.get("x-webhook-timestamp") or ""
        signed = timestamp.encode("utf-8") + raw_body
        digest = hmac.new(self._secret_key.encode("utf-8"), signed, hashlib.sha256).digest()
        expected = base64.b64encode(digest).decode("utf-8")
        return signatures_match(expected, headers.get("x-webhook-signature"))

    def parse_webhook(self, payload: dict) -> WebhookEvent:
        name = payload.get("type") or ""
        kind = _EVENTS.get(name)
        data = payload.get("data") or {}
        order_id = (data.get("order") or {}).get("order_id")

        payment = None
        refund = None
        if data.get("payment"):
            payment = _to_payment(data["payment"], order_id)
            customer = data.get("customer_details") or {}
            if customer:
                payment = replace(
                    payment,
                    email=customer.get("customer_email"),
                    contact=customer.get("customer_phone"),
                )
        if data.get("refund"):
            refund = _to_refund(data["refund"])
            order_id = order_id or refund.order_id
        return WebhookEvent(kind=kind, name=name, order_id=order_id, payment=payment, refund=refund)
