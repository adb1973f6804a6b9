from datetime import datetime
from enum import Enum
from typing import Optional, List
import uuid

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    VISITOR = "VISITOR"
    CLIENT = "CLIENT"
    BUSINESS = "BUSINESS"
    DELIVERY = "DELIVERY"
    ADMIN = "ADMIN"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    IN_PREPARATION = "IN_PREPARATION"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    ON_THE_WAY = "ON_THE_WAY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.REJECTED, OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    NEW_ORDER = "new_order"


class NotificationEvent(str, Enum):
    ORDER_CREATED = "order.created"
    ORDER_ACCEPTED = "order.accepted"
    ORDER_REJECTED = "order.rejected"
    ORDER_READY_FOR_PICKUP = "order.ready_for_pickup"
    ORDER_ON_THE_WAY = "order.on_the_way"
    ORDER_PICKED_UP = "order.picked_up"
    ORDER_DELIVERED = "order.delivered"
    ORDER_CANCELLED = "order.cancelled"
    ORDER_RATED = "order.rated"
    MESSAGE_RECEIVED = "message.received"
    MESSAGE_SENT = "message.sent"


class Location(BaseModel):
    """Value Object: координаты"""
    lat: float
    lng: float


class Product(BaseModel):
    id: str
    business_id: str
    name: str
    price: float = Field(ge=0)
    description: str = ""
    image: str = ""
    category: str = ""


class CartItem(BaseModel):
    product: Product
    quantity: int = Field(ge=1)


class BusinessSnapshot(BaseModel):
    """Value Object: данные бизнеса на момент оформления заказа"""
    id: str
    name: str
    delivery_fee: float = Field(default=0, ge=0)
    location: Optional[Location] = None
    address: str = ""


class DeliveryPerson(BaseModel):
    id: str
    name: str
    phone: str = ""
    email: str = ""
    vehicle: str = "Moto"
    rating: float = 0
    rating_count: int = 0
    is_online: bool = True
    location: Location
    current_deliveries: int = 0


class QuickMessage(BaseModel):
    """Короткое сообщение, неизменяемое после создания"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    order_id: str
    sender_id: str
    recipient_id: str
    message: str
    created_at: datetime
    is_read: bool = False


class Rating(BaseModel):
    business_rating: int = Field(ge=1, le=5)
    delivery_rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None


class Order(BaseModel):
    """Domain Entity: заказ"""
    id: str
    client_id: str
    business_id: str
    business: Optional[BusinessSnapshot] = None
    delivery_person_id: Optional[str] = None
    delivery_person: Optional[DeliveryPerson] = None
    items: List[CartItem]
    total_price: float
    status: OrderStatus = OrderStatus.PENDING
    delivery_address: str
    delivery_location: Location
    special_notes: Optional[str] = None
    preparation_time: Optional[int] = None
    is_rated: bool = False
    rating: Optional[Rating] = None
    messages: List[QuickMessage] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    version: int = 0

    @property
    def short_id(self) -> str:
        return self.id[-6:]

    def calculate_total(self) -> float:
        """Бизнес-правило: сумма позиций плюс стоимость доставки"""
        subtotal = sum(item.product.price * item.quantity for item in self.items)
        delivery_fee = self.business.delivery_fee if self.business else 0
        return round(subtotal + delivery_fee, 2)

    def is_trackable(self) -> bool:
        return self.status in (
            OrderStatus.ACCEPTED,
            OrderStatus.IN_PREPARATION,
            OrderStatus.READY_FOR_PICKUP,
            OrderStatus.ON_THE_WAY,
        )

    def can_be_rated(self) -> bool:
        """Бизнес-правило: оценить можно только доставленный и еще не оцененный заказ"""
        return self.status == OrderStatus.DELIVERED and not self.is_rated


class Profile(BaseModel):
    id: str
    name: str
    role: UserRole
    email: str
    phone: Optional[str] = None
    location: Optional[Location] = None
    is_active: bool = True


class UserRecord(Profile):
    """Пользователь в хранилище, с хэшем пароля"""
    password_hash: str

    def to_profile(self) -> Profile:
        return Profile(**self.model_dump(exclude={"password_hash"}))


class Notification(BaseModel):
    """Событие для дашбордов одной роли. Шина его не хранит."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    message: str
    role: UserRole
    event: NotificationEvent
    type: NotificationType = NotificationType.INFO
    order_id: Optional[str] = Field(default=None, alias="orderId")
    order: Optional[Order] = None
    icon: Optional[str] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
