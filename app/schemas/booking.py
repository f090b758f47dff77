from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, EmailStr, Field


class SlotDetails(BaseModel):
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    selected_activities: List[str] = []
    combo_name: Optional[str] = None
    participants: int = Field(default=1, ge=1)
    notes: Optional[str] = None


class CreateOrderRequest(BaseModel):
    # major units, e.g. 19.99 or "19.99"
    amount: Optional[Union[str, float, int]] = None
    slot_details: Optional[SlotDetails] = None


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None
    # guest bookings: the e-mail the booking was made with
    email: Optional[EmailStr] = None


class UpdateBookingRequest(BaseModel):
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    new_activity_name: Optional[str] = None
    new_activity_price: Optional[Union[str, float, int]] = None
    email: Optional[EmailStr] = None


class BookingOut(BaseModel):
    id: int
    internal_bill_id: str
    gateway_provider: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None

    user_name: str
    user_email: str
    user_phone: str

    activity_name: str
    combo_name: Optional[str] = None
    selected_activities: List[str] = []
    booking_date: date
    booking_time_slot: str
    participants: int

    amount: int
    currency: str
    status: str
    payment_status: str
    payment_method: Optional[str] = None

    refund_id: Optional[str] = None
    refund_status: str
    refund_amount: int
    refund_reason: Optional[str] = None
    refund_initiated_at: Optional[datetime] = None
    refund_processed_at: Optional[datetime] = None

    is_updated: bool = False
    original_booking_date: Optional[date] = None
    original_booking_time_slot: Optional[str] = None
    balance_amount: Optional[int] = None
    balance_payment_order_id: Optional[str] = None
    balance_payment_status: Optional[str] = None

    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
