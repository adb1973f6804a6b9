import asyncio

import pytest

from pronto.application.transition_order import TransitionOrderDTO
from pronto.domain.exceptions import OrderNotFoundError, PreconditionFailedError
from pronto.domain.geo import step_towards
from pronto.domain.models import OrderStatus

from conftest import BUSINESS_LOCATION, CLIENT_LOCATION, COURIER_LOCATION, make_order, seed_order


def test_tick_moves_courier_towards_client(container):
    order = seed_order(container.store, make_order(status=OrderStatus.ON_THE_WAY))
    tracker = container.tracker

    async def scenario():
        moved = await tracker.tick()
        assert moved == 1
        first = tracker.position(order.id)
        assert first == step_towards(COURIER_LOCATION, CLIENT_LOCATION)

        await tracker.tick()
        assert tracker.position(order.id) == step_towards(first, CLIENT_LOCATION)

    asyncio.run(scenario())


def test_tick_does_not_write_position_to_order(container):
    order = seed_order(container.store, make_order(status=OrderStatus.ON_THE_WAY))

    async def scenario():
        await container.tracker.tick()
        stored = await container.get_order(order.id)
        assert stored.delivery_person.location == COURIER_LOCATION
        assert stored.version == order.version

    asyncio.run(scenario())


def test_tick_ignores_orders_not_on_the_way(container):
    seed_order(container.store, make_order(status=OrderStatus.READY_FOR_PICKUP))
    assert asyncio.run(container.tracker.tick()) == 0


def test_position_dropped_after_delivery(container):
    order = seed_order(container.store, make_order(status=OrderStatus.ON_THE_WAY))
    tracker = container.tracker

    async def scenario():
        await tracker.tick()
        assert tracker.position(order.id) is not None

        await container.transition_order(TransitionOrderDTO(order_id=order.id, status=OrderStatus.DELIVERED))
        await tracker.tick()
        assert tracker.position(order.id) is None

    asyncio.run(scenario())


def test_snapshot_on_the_way_includes_courier(container):
    order = seed_order(container.store, make_order(status=OrderStatus.ON_THE_WAY))

    async def scenario():
        await container.tracker.tick()
        return await container.tracker.snapshot(order.id)

    view = asyncio.run(scenario())
    assert view.delivery == container.tracker.position(order.id)
    assert view.client == CLIENT_LOCATION
    assert view.business == BUSINESS_LOCATION
    for point in (view.client, view.business, view.delivery):
        assert view.view.bounds.contains(point)


def test_snapshot_before_pickup_has_no_courier(container):
    order = seed_order(container.store, make_order(status=OrderStatus.IN_PREPARATION))

    view = asyncio.run(container.tracker.snapshot(order.id))

    assert view.delivery is None
    assert view.view.bounds.contains(CLIENT_LOCATION)
    assert view.view.bounds.contains(BUSINESS_LOCATION)


def test_snapshot_unknown_order(container):
    with pytest.raises(OrderNotFoundError):
        asyncio.run(container.tracker.snapshot("missing"))


@pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.DELIVERED, OrderStatus.CANCELLED])
def test_snapshot_refused_for_untrackable_order(container, status):
    order = seed_order(container.store, make_order(status=status))
    with pytest.raises(PreconditionFailedError):
        asyncio.run(container.tracker.snapshot(order.id))
