from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel


class ActivityIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class ActivityOut(BaseModel):
    id: int
    name: str
    description: str
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DiyKitIn(BaseModel):
    name: Optional[str] = None
    # major units, e.g. "499" or 499.5
    price: Optional[Union[str, float, int]] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class DiyKitOut(BaseModel):
    id: int
    name: str
    price: int
    description: str
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
