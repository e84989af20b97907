import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .utils.time import clock_label, parse_clock, parse_day

RESERVATION_STATUSES = ("pending", "confirmed", "cancelled", "completed")
ORDER_STATUSES = ("pending", "confirmed", "preparing", "ready", "completed", "cancelled")


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)


class CreateReservationRequest(_Request):
    """Public booking request. Any 'status' sent by the caller is dropped."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=32)
    date: datetime.date
    time: str
    guests: int = Field(..., gt=0, strict=True)
    special_requests: str | None = Field(None, max_length=500, alias="specialRequests")

    @field_validator("date", mode="before")
    @classmethod
    def parse_reservation_day(cls, v):
        if isinstance(v, str):
            return parse_day(v)
        if isinstance(v, datetime.date):
            return v
        raise ValueError("Date must be a YYYY-MM-DD string.")

    @field_validator("time")
    @classmethod
    def normalise_slot_label(cls, v: str):
        try:
            return clock_label(parse_clock(v))
        except ValueError:
            raise ValueError("Time must be an HH:MM slot label.")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str):
        return v.lower()


class ReservationStatusUpdate(_Request):
    status: Literal["pending", "confirmed", "cancelled", "completed"]


class CustomerInfo(_Request):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=32)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str):
        return v.lower()


class OrderLineRequest(_Request):
    menu_item_id: int = Field(..., alias="menuItemId")
    quantity: int = Field(..., ge=1)
    special_instructions: str | None = Field(None, max_length=200, alias="specialInstructions")


class DeliveryAddress(_Request):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20, alias="zipCode")


class PaymentInfo(_Request):
    method: str = Field("card", min_length=1, max_length=32)
    last_four: str = Field(..., pattern=r"^\d{4}$", alias="lastFour")


class CreateOrderRequest(_Request):
    customer: CustomerInfo
    items: list[OrderLineRequest] = Field(..., min_length=1)
    type: Literal["pickup", "delivery"]
    delivery_address: DeliveryAddress | None = Field(None, alias="deliveryAddress")
    payment: PaymentInfo
    special_instructions: str | None = Field(None, max_length=500, alias="specialInstructions")

    @model_validator(mode="after")
    def address_only_for_delivery(self):
        if self.type == "delivery" and self.delivery_address is None:
            raise ValueError("Delivery address is required for delivery orders.")
        if self.type == "pickup":
            self.delivery_address = None
        return self


class OrderStatusUpdate(_Request):
    status: Literal["pending", "confirmed", "preparing", "ready", "completed", "cancelled"]
