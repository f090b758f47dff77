from typing import Optional, Union

from pydantic import BaseModel, Field


class CartAdd(BaseModel):
    kit_name: Optional[str] = Field(default=None, alias="kitName")
    price: Optional[Union[str, float, int]] = None
    quantity: int = Field(default=1, ge=1)

    model_config = {"populate_by_name": True}


class CartUpdate(BaseModel):
    kit_name: Optional[str] = Field(default=None, alias="kitName")
    quantity: Optional[int] = None

    model_config = {"populate_by_name": True}


class CartRemove(BaseModel):
    kit_name: Optional[str] = Field(default=None, alias="kitName")

    model_config = {"populate_by_name": True}


class CartItemOut(BaseModel):
    id: int
    kit_name: str
    price: int
    quantity: int

    model_config = {"from_attributes": True}
