from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import DeliveryStatus


class OrderItem(BaseModel):
    name: str
    quantity: int = Field(default=1, ge=1)
    unit_price: Union[str, float, int]
    total: Optional[Union[str, float, int]] = None


class OrderData(BaseModel):
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    items: List[OrderItem] = []
    subtotal: Optional[Union[str, float, int]] = None


class CreateDiyOrderRequest(BaseModel):
    amount: Optional[Union[str, float, int]] = None
    order_data: Optional[OrderData] = None


class DeliveryStatusUpdate(BaseModel):
    delivery_status: DeliveryStatus
    delivery_time: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    internal_bill_id: str
    gateway_provider: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None

    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    items: list = []
    subtotal: int
    gst: int

    amount: int
    currency: str
    payment_status: str
    payment_method: Optional[str] = None

    delivery_status: str
    delivery_time: Optional[str] = None
    delivery_status_updated_at: Optional[datetime] = None

    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
