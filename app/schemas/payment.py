from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class VerifyPaymentRequest(BaseModel):
    """Razorpay checkout posts razorpay_* names; Cashfree only has the order id."""

    order_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("order_id", "razorpay_order_id")
    )
    payment_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("payment_id", "razorpay_payment_id", "cf_payment_id")
    )
    signature: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("signature", "razorpay_signature")
    )
