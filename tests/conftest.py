import uuid
from datetime import datetime, timedelta, timezone

import pytest

from pronto.config import Settings
from pronto.container import Container
from pronto.domain.models import (
    BusinessSnapshot,
    CartItem,
    DeliveryPerson,
    Location,
    Order,
    OrderStatus,
    Product,
    UserRecord,
    UserRole,
)
from pronto.infrastructure.security import hash_password

BUSINESS_LOCATION = Location(lat=19.4300, lng=-99.1300)
CLIENT_LOCATION = Location(lat=19.4350, lng=-99.1350)
COURIER_LOCATION = Location(lat=19.4280, lng=-99.1380)
DEFAULT_CENTER = Location(lat=19.4326, lng=-99.1332)

TAQUERIA = BusinessSnapshot(
    id="b1",
    name="Taquería El Pastor",
    delivery_fee=30,
    location=BUSINESS_LOCATION,
    address="Av. Juárez 10",
)


def make_product(price=45.0, product_id="p1", business_id="b1"):
    return Product(id=product_id, business_id=business_id, name="Tacos al pastor", price=price)


def make_order(status=OrderStatus.PENDING, created_at=None, **overrides) -> Order:
    now = created_at or datetime.now(timezone.utc)
    items = [CartItem(product=make_product(), quantity=3)]
    data = dict(
        id=f"order-{uuid.uuid4()}",
        client_id="client-1",
        business_id=TAQUERIA.id,
        business=TAQUERIA,
        items=items,
        total_price=165.0,
        status=status,
        delivery_address="Calle Madero 1",
        delivery_location=CLIENT_LOCATION,
        created_at=now,
        updated_at=now,
    )
    if status in (OrderStatus.ACCEPTED, OrderStatus.IN_PREPARATION, OrderStatus.READY_FOR_PICKUP):
        data["preparation_time"] = 15
    if status in (OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED):
        data["preparation_time"] = 15
        data["delivery_person_id"] = "delivery-1"
        data["delivery_person"] = make_courier()
    data.update(overrides)
    return Order(**data)


def make_courier(**overrides) -> DeliveryPerson:
    data = dict(
        id="delivery-1",
        name="Pedro Repartidor",
        location=COURIER_LOCATION,
        vehicle="Moto",
        rating=4.9,
        is_online=True,
    )
    data.update(overrides)
    return DeliveryPerson(**data)


def make_user(user_id, role, name, email, password="password123", is_active=True) -> UserRecord:
    return UserRecord(
        id=user_id,
        name=name,
        role=role,
        email=email,
        is_active=is_active,
        password_hash=hash_password(password, iterations=1_000),
    )


def seed_order(store, order: Order) -> Order:
    store.orders[order.id] = order.model_dump(mode="json")
    return order


def seed_user(store, user: UserRecord) -> UserRecord:
    store.users[user.id] = user.model_dump(mode="json")
    return user


def hours_ago(hours: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=hours)


class Recorder:
    """Подписчик шины, запоминающий все уведомления"""

    def __init__(self):
        self.items = []

    def __call__(self, notification):
        self.items.append(notification)

    def for_role(self, role: UserRole):
        return [n for n in self.items if n.role == role]


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL_RAW="",
        KAFKA_BOOTSTRAP_SERVERS="",
        PREPARATION_SECONDS_PER_MINUTE=0,
        LOCATION_TICK_SECONDS=3600,
        STORE_LATENCY_MIN_MS=0,
        STORE_LATENCY_MAX_MS=0,
    )


@pytest.fixture
def container(test_settings):
    return Container(test_settings)


@pytest.fixture
def recorder(container):
    rec = Recorder()
    container.bus.subscribe(rec)
    return rec


@pytest.fixture
def users(container):
    store = container.store
    return {
        UserRole.CLIENT: seed_user(store, make_user("client-1", UserRole.CLIENT, "Ana Cliente", "ana@cliente.com")),
        UserRole.BUSINESS: seed_user(store, make_user("b1", UserRole.BUSINESS, "Taquería El Pastor", "elpastor@negocio.com")),
        UserRole.DELIVERY: seed_user(store, make_user("delivery-1", UserRole.DELIVERY, "Pedro Repartidor", "pedro@repartidor.com")),
        UserRole.ADMIN: seed_user(store, make_user("admin-1", UserRole.ADMIN, "Super Admin", "admin@pronto.com", "admin123")),
    }
