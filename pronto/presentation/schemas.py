from pydantic import BaseModel, Field
from typing import List, Optional

from pronto.domain.models import (
    BusinessSnapshot,
    CartItem,
    DeliveryPerson,
    Location,
    Order,
    OrderStatus,
    Profile,
    UserRole,
)


class CreateOrderRequest(BaseModel):
    client_id: str
    business: BusinessSnapshot
    items: List[CartItem] = Field(min_length=1)
    delivery_address: str
    delivery_location: Location
    special_notes: Optional[str] = None
    total_price: Optional[float] = None


class OrderResponse(Order):
    @classmethod
    def from_domain(cls, order: Order):
        return cls.model_validate(order.model_dump())


class TransitionRequest(BaseModel):
    status: OrderStatus
    preparation_time_minutes: Optional[int] = None
    delivery_person: Optional[DeliveryPerson] = None
    actor_name: str = ""
    expected_status: Optional[OrderStatus] = None


class SendMessageRequest(BaseModel):
    sender_id: str
    recipient_id: str
    message: str
    confirm_to_sender: bool = False


class MarkReadRequest(BaseModel):
    reader_id: str


class RatingRequest(BaseModel):
    business_rating: int = Field(ge=1, le=5)
    delivery_rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None


class BoundsResponse(BaseModel):
    south: float
    west: float
    north: float
    east: float


class TrackingResponse(BaseModel):
    order_id: str
    status: OrderStatus
    client: Optional[Location] = None
    business: Optional[Location] = None
    delivery: Optional[Location] = None
    bounds: Optional[BoundsResponse] = None
    center: Optional[Location] = None
    zoom: Optional[int] = None

    @classmethod
    def from_view(cls, tracking):
        bounds = tracking.view.bounds
        return cls(
            order_id=tracking.order_id,
            status=tracking.status,
            client=tracking.client,
            business=tracking.business,
            delivery=tracking.delivery,
            bounds=BoundsResponse(
                south=bounds.south, west=bounds.west, north=bounds.north, east=bounds.east
            ) if bounds else None,
            center=tracking.view.center,
            zoom=tracking.view.zoom,
        )


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=6)
    role: UserRole
    phone: Optional[str] = None
    location: Optional[Location] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    location: Optional[Location] = None
    is_active: Optional[bool] = None


class ProfileResponse(Profile):
    pass


class QuickMessagesResponse(BaseModel):
    role: UserRole
    messages: List[str]


class ErrorResponse(BaseModel):
    detail: str
