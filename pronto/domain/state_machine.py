"""Машина состояний заказа.

Чистые функции: принимают заказ и возвращают его обновленную копию вместе
с уведомлениями, которые нужно разослать после сохранения.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel

from pronto.domain.exceptions import (
    InvalidTransitionError,
    NoDeliveryPersonAssignedError,
    PreconditionFailedError,
)
from pronto.domain.models import (
    DeliveryPerson,
    Notification,
    NotificationEvent,
    NotificationType,
    Order,
    OrderStatus,
    UserRole,
)


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.IN_PREPARATION, OrderStatus.CANCELLED}),
    OrderStatus.IN_PREPARATION: frozenset({OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED}),
    OrderStatus.READY_FOR_PICKUP: frozenset({OrderStatus.ON_THE_WAY, OrderStatus.CANCELLED}),
    OrderStatus.ON_THE_WAY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Статусы, из которых отложенная задача переводит заказ в READY_FOR_PICKUP
PREPARING_STATUSES = frozenset({OrderStatus.ACCEPTED, OrderStatus.IN_PREPARATION})


class TransitionMetadata(BaseModel):
    preparation_time_minutes: Optional[int] = None
    delivery_person: Optional[DeliveryPerson] = None


@dataclass
class TransitionResult:
    order: Order
    previous_status: OrderStatus
    notifications: List[Notification] = field(default_factory=list)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def transition(
    order: Order,
    target: OrderStatus,
    metadata: Optional[TransitionMetadata] = None,
    actor_name: str = "",
) -> TransitionResult:
    """Проверить и применить переход. Исходный заказ не изменяется."""
    metadata = metadata or TransitionMetadata()

    if not can_transition(order.status, target):
        raise InvalidTransitionError(order.id, order.status, target)

    updates = {"status": target, "updated_at": datetime.now(timezone.utc)}

    if target in PREPARING_STATUSES:
        minutes = metadata.preparation_time_minutes
        if minutes is None or minutes <= 0:
            raise PreconditionFailedError(
                f"Для статуса {target.value} нужно положительное время приготовления"
            )
        updates["preparation_time"] = minutes

    if target == OrderStatus.ON_THE_WAY:
        person = metadata.delivery_person
        if person is None:
            raise NoDeliveryPersonAssignedError(f"Заказу {order.id} не назначен курьер")
        if not person.is_online:
            raise PreconditionFailedError(f"Курьер {person.id} не в сети")
        updates["delivery_person_id"] = person.id
        updates["delivery_person"] = person

    updated = order.model_copy(update=updates, deep=True)
    notifications = build_notifications(order.status, target, updated, actor_name)
    return TransitionResult(order=updated, previous_status=order.status, notifications=notifications)


def build_notifications(
    previous: OrderStatus,
    new: OrderStatus,
    order: Order,
    actor_name: str,
) -> List[Notification]:
    """Уведомления для перехода previous -> new"""

    def note(role, title, message, event, type_=NotificationType.INFO, icon=None):
        return Notification(
            role=role,
            title=title,
            message=message,
            event=event,
            type=type_,
            order_id=order.id,
            order=order,
            icon=icon,
        )

    business_name = order.business.name if order.business else actor_name
    actor = actor_name or business_name

    if new == OrderStatus.ACCEPTED:
        return [
            note(
                UserRole.CLIENT,
                "Pedido Confirmado",
                f"¡{actor} ha aceptado tu pedido y lo está preparando! "
                f"Tiempo estimado: {order.preparation_time} min.",
                NotificationEvent.ORDER_ACCEPTED,
                NotificationType.SUCCESS,
                "check",
            )
        ]

    if new == OrderStatus.REJECTED:
        return [
            note(
                UserRole.CLIENT,
                "Pedido Rechazado",
                f"Lo sentimos, {actor} no pudo aceptar tu pedido en este momento.",
                NotificationEvent.ORDER_REJECTED,
                NotificationType.ERROR,
                "x",
            )
        ]

    if new == OrderStatus.READY_FOR_PICKUP:
        return [
            note(
                UserRole.DELIVERY,
                "Pedido Listo para Recoger",
                f"El pedido #{order.short_id} de {business_name} está listo.",
                NotificationEvent.ORDER_READY_FOR_PICKUP,
                icon="package",
            ),
            note(
                UserRole.CLIENT,
                "¡Tu pedido está listo!",
                f"Tu pedido de {business_name} está listo y esperando a un repartidor.",
                NotificationEvent.ORDER_READY_FOR_PICKUP,
                icon="package",
            ),
        ]

    if new == OrderStatus.ON_THE_WAY:
        courier = order.delivery_person.name if order.delivery_person else actor_name
        return [
            note(
                UserRole.CLIENT,
                "¡Tu pedido está en camino!",
                f"{courier} ha recogido tu pedido de {business_name}.",
                NotificationEvent.ORDER_ON_THE_WAY,
                icon="bike",
            ),
            note(
                UserRole.BUSINESS,
                "Pedido Recogido",
                f"El repartidor {courier} ha recogido el pedido #{order.short_id}.",
                NotificationEvent.ORDER_PICKED_UP,
                icon="bike",
            ),
        ]

    if new == OrderStatus.DELIVERED:
        courier = order.delivery_person.name if order.delivery_person else actor_name
        return [
            note(
                UserRole.CLIENT,
                "¡Pedido Entregado!",
                f"Tu pedido de {business_name} ha sido entregado por {courier}. ¡Buen provecho!",
                NotificationEvent.ORDER_DELIVERED,
                NotificationType.SUCCESS,
                "package-check",
            ),
            note(
                UserRole.BUSINESS,
                "¡Pedido Entregado!",
                f"El pedido #{order.short_id} ha sido entregado.",
                NotificationEvent.ORDER_DELIVERED,
                NotificationType.SUCCESS,
                "package-check",
            ),
        ]

    if new == OrderStatus.CANCELLED:
        return [
            note(
                role,
                "Pedido Cancelado",
                f"El pedido #{order.short_id} ha sido cancelado.",
                NotificationEvent.ORDER_CANCELLED,
                NotificationType.WARNING,
            )
            for role in (UserRole.CLIENT, UserRole.BUSINESS)
        ]

    # IN_PREPARATION: клиента уже уведомили при ACCEPTED
    return []
