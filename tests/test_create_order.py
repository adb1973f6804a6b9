import asyncio

import pytest
from pydantic import ValidationError

from pronto.application.create_order import CreateOrderDTO
from pronto.domain.exceptions import PreconditionFailedError
from pronto.domain.models import CartItem, NotificationType, OrderStatus, UserRole

from conftest import CLIENT_LOCATION, TAQUERIA, make_product


def make_dto(**overrides):
    data = dict(
        client_id="client-1",
        business=TAQUERIA,
        items=[
            CartItem(product=make_product(price=45.0), quantity=2),
            CartItem(product=make_product(price=25.5, product_id="p2"), quantity=1),
        ],
        delivery_address="Calle Madero 1",
        delivery_location=CLIENT_LOCATION,
    )
    data.update(overrides)
    return CreateOrderDTO(**data)


def test_total_computed_on_server(container):
    order = asyncio.run(container.create_order(make_dto()))

    # 45*2 + 25.5 + 30 доставки
    assert order.total_price == pytest.approx(145.5)
    assert order.status == OrderStatus.PENDING
    assert order.version == 0
    assert container.store.orders[order.id]["total_price"] == pytest.approx(145.5)


def test_matching_client_total_accepted(container):
    order = asyncio.run(container.create_order(make_dto(total_price=145.5)))
    assert order.total_price == pytest.approx(145.5)


def test_mismatched_client_total_rejected(container):
    with pytest.raises(PreconditionFailedError):
        asyncio.run(container.create_order(make_dto(total_price=10)))
    assert container.store.orders == {}


def test_foreign_product_rejected(container):
    dto = make_dto(items=[CartItem(product=make_product(business_id="b2"), quantity=1)])
    with pytest.raises(PreconditionFailedError):
        asyncio.run(container.create_order(dto))


def test_empty_cart_invalid():
    with pytest.raises(ValidationError):
        make_dto(items=[])


def test_business_notified_about_new_order(container, recorder):
    order = asyncio.run(container.create_order(make_dto()))

    [note] = recorder.items
    assert note.role == UserRole.BUSINESS
    assert note.type == NotificationType.NEW_ORDER
    assert note.title == "¡Nuevo Pedido!"
    assert note.order_id == order.id
    assert order.short_id in note.message
