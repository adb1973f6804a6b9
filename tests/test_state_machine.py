import pytest

from pronto.domain.exceptions import (
    InvalidTransitionError,
    NoDeliveryPersonAssignedError,
    PreconditionFailedError,
)
from pronto.domain.models import NotificationEvent, NotificationType, OrderStatus, UserRole
from pronto.domain.state_machine import TRANSITIONS, TransitionMetadata, transition

from conftest import make_courier, make_order

FULL_METADATA = TransitionMetadata(preparation_time_minutes=15, delivery_person=make_courier())


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("target", list(OrderStatus))
def test_transition_only_follows_table(current, target):
    order = make_order(status=current)
    if target in TRANSITIONS[current]:
        result = transition(order, target, FULL_METADATA, "Taquería El Pastor")
        assert result.order.status == target
        assert result.previous_status == current
    else:
        with pytest.raises(InvalidTransitionError):
            transition(order, target, FULL_METADATA, "Taquería El Pastor")


def test_pending_to_on_the_way_is_invalid():
    order = make_order()
    with pytest.raises(InvalidTransitionError) as exc:
        transition(order, OrderStatus.ON_THE_WAY, FULL_METADATA)
    assert exc.value.current == OrderStatus.PENDING
    assert exc.value.target == OrderStatus.ON_THE_WAY


@pytest.mark.parametrize("terminal", [OrderStatus.REJECTED, OrderStatus.DELIVERED, OrderStatus.CANCELLED])
def test_terminal_statuses_have_no_exits(terminal):
    assert terminal.is_terminal
    assert TRANSITIONS[terminal] == frozenset()


def test_every_non_terminal_status_can_be_cancelled():
    for status in OrderStatus:
        if not status.is_terminal:
            assert OrderStatus.CANCELLED in TRANSITIONS[status]


@pytest.mark.parametrize("minutes", [None, 0, -5])
def test_accept_requires_positive_preparation_time(minutes):
    order = make_order()
    with pytest.raises(PreconditionFailedError):
        transition(order, OrderStatus.ACCEPTED, TransitionMetadata(preparation_time_minutes=minutes))


def test_in_preparation_requires_preparation_time():
    order = make_order(status=OrderStatus.ACCEPTED)
    with pytest.raises(PreconditionFailedError):
        transition(order, OrderStatus.IN_PREPARATION)


def test_accept_stores_preparation_time():
    order = make_order()
    result = transition(order, OrderStatus.ACCEPTED, TransitionMetadata(preparation_time_minutes=20))
    assert result.order.preparation_time == 20


def test_on_the_way_requires_delivery_person():
    order = make_order(status=OrderStatus.READY_FOR_PICKUP)
    with pytest.raises(NoDeliveryPersonAssignedError):
        transition(order, OrderStatus.ON_THE_WAY, TransitionMetadata())


def test_on_the_way_rejects_offline_delivery_person():
    order = make_order(status=OrderStatus.READY_FOR_PICKUP)
    with pytest.raises(PreconditionFailedError):
        transition(
            order,
            OrderStatus.ON_THE_WAY,
            TransitionMetadata(delivery_person=make_courier(is_online=False)),
        )


def test_on_the_way_binds_delivery_person():
    order = make_order(status=OrderStatus.READY_FOR_PICKUP)
    courier = make_courier()
    result = transition(order, OrderStatus.ON_THE_WAY, TransitionMetadata(delivery_person=courier))
    assert result.order.delivery_person_id == courier.id
    assert result.order.delivery_person == courier


def test_failed_transition_does_not_touch_order():
    order = make_order()
    before = order.model_dump()
    with pytest.raises(PreconditionFailedError):
        transition(order, OrderStatus.ACCEPTED, TransitionMetadata())
    assert order.model_dump() == before


def test_successful_transition_returns_copy():
    order = make_order()
    result = transition(order, OrderStatus.REJECTED, actor_name="Taquería El Pastor")
    assert order.status == OrderStatus.PENDING
    assert result.order.status == OrderStatus.REJECTED
    assert result.order is not order


@pytest.mark.parametrize(
    "current,target,expected",
    [
        (OrderStatus.PENDING, OrderStatus.ACCEPTED, [(UserRole.CLIENT, "Pedido Confirmado")]),
        (OrderStatus.PENDING, OrderStatus.REJECTED, [(UserRole.CLIENT, "Pedido Rechazado")]),
        (
            OrderStatus.IN_PREPARATION,
            OrderStatus.READY_FOR_PICKUP,
            [(UserRole.DELIVERY, "Pedido Listo para Recoger"), (UserRole.CLIENT, "¡Tu pedido está listo!")],
        ),
        (
            OrderStatus.READY_FOR_PICKUP,
            OrderStatus.ON_THE_WAY,
            [(UserRole.CLIENT, "¡Tu pedido está en camino!"), (UserRole.BUSINESS, "Pedido Recogido")],
        ),
        (
            OrderStatus.ON_THE_WAY,
            OrderStatus.DELIVERED,
            [(UserRole.CLIENT, "¡Pedido Entregado!"), (UserRole.BUSINESS, "¡Pedido Entregado!")],
        ),
        (OrderStatus.ACCEPTED, OrderStatus.IN_PREPARATION, []),
    ],
)
def test_notifications_per_transition(current, target, expected):
    order = make_order(status=current)
    result = transition(order, target, FULL_METADATA, "Taquería El Pastor")

    assert [(n.role, n.title) for n in result.notifications] == expected
    for notification in result.notifications:
        assert notification.order_id == order.id
        assert notification.order.status == target
    # ровно одно уведомление на роль
    roles = [n.role for n in result.notifications]
    assert len(roles) == len(set(roles))


def test_accepted_notification_mentions_preparation_time():
    order = make_order()
    result = transition(
        order, OrderStatus.ACCEPTED, TransitionMetadata(preparation_time_minutes=15), "Taquería El Pastor"
    )
    [note] = result.notifications
    assert "15 min" in note.message
    assert "Taquería El Pastor" in note.message
    assert note.type == NotificationType.SUCCESS
    assert note.event == NotificationEvent.ORDER_ACCEPTED


def test_cancel_notifies_client_and_business():
    order = make_order(status=OrderStatus.READY_FOR_PICKUP)
    result = transition(order, OrderStatus.CANCELLED)
    assert {n.role for n in result.notifications} == {UserRole.CLIENT, UserRole.BUSINESS}
    assert all(n.event == NotificationEvent.ORDER_CANCELLED for n in result.notifications)


def test_notification_ids_are_unique():
    order = make_order(status=OrderStatus.IN_PREPARATION)
    first = transition(order, OrderStatus.READY_FOR_PICKUP).notifications
    second = transition(order, OrderStatus.READY_FOR_PICKUP).notifications
    ids = [n.id for n in first + second]
    assert len(ids) == len(set(ids))


def test_notification_wire_shape():
    order = make_order()
    result = transition(order, OrderStatus.REJECTED, actor_name="Taquería El Pastor")
    wire = result.notifications[0].to_wire()
    assert wire["orderId"] == order.id
    assert wire["role"] == "CLIENT"
    assert wire["type"] == "error"
    assert wire["order"]["status"] == "REJECTED"
    assert {"id", "title", "message"} <= set(wire)
