import logging
from datetime import datetime, timezone
from pydantic import BaseModel

from pronto.domain.models import (
    Notification,
    NotificationEvent,
    Order,
    QuickMessage,
    UserRole,
)
from pronto.domain.exceptions import (
    OrderNotFoundError,
    PreconditionFailedError,
    UserNotFoundError,
)
from pronto.application.interfaces import NotificationPublisher

logger = logging.getLogger(__name__)

MESSAGE_TITLES = {
    UserRole.DELIVERY: "Mensaje del Repartidor",
    UserRole.CLIENT: "Mensaje del Cliente",
    UserRole.BUSINESS: "Mensaje del Negocio",
}

QUICK_MESSAGES_DELIVERY = [
    "Estoy en la puerta",
    "Llego en 15 minutos",
    "Llego en 10 minutos",
    "No encuentro el domicilio",
]

QUICK_MESSAGES_CLIENT = [
    "Espero en la puerta",
    "Llamar al llegar",
    "Entregar en recepción",
]


class SendMessageDTO(BaseModel):
    order_id: str
    sender_id: str
    recipient_id: str
    message: str
    confirm_to_sender: bool = False


class SendQuickMessageUseCase:
    def __init__(self, unit_of_work, publisher: NotificationPublisher):
        self._uow = unit_of_work
        self._publisher = publisher

    async def __call__(self, dto: SendMessageDTO) -> Order:
        text = dto.message.strip()
        if not text:
            raise PreconditionFailedError("Пустое сообщение")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(dto.order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {dto.order_id} не найден")
            sender = await uow.users.get_by_id(dto.sender_id)
            if not sender:
                raise UserNotFoundError(f"Пользователь {dto.sender_id} не найден")
            recipient = await uow.users.get_by_id(dto.recipient_id)
            if not recipient:
                raise UserNotFoundError(f"Пользователь {dto.recipient_id} не найден")

            message = QuickMessage(
                order_id=order.id,
                sender_id=sender.id,
                recipient_id=recipient.id,
                message=text,
                created_at=datetime.now(timezone.utc),
            )
            # Только добавление в конец, без сортировки по времени
            updated = order.model_copy(
                update={"messages": [*order.messages, message], "updated_at": message.created_at}
            )
            saved = await uow.orders.save(updated, expected_status=order.status)
            await uow.commit()

        logger.info(f"Сообщение {message.id} по заказу {order.id}: {sender.id} -> {recipient.id}")

        self._publisher.publish(
            Notification(
                role=recipient.role,
                title=MESSAGE_TITLES.get(sender.role, "Nuevo Mensaje"),
                message=f'{sender.name}: "{text}"',
                event=NotificationEvent.MESSAGE_RECEIVED,
                order_id=order.id,
                icon="message-square",
            )
        )
        if dto.confirm_to_sender:
            self._publisher.publish(
                Notification(
                    role=sender.role,
                    title="Mensaje Enviado",
                    message=f'Tu mensaje "{text}" fue enviado a {recipient.name}.',
                    event=NotificationEvent.MESSAGE_SENT,
                    order_id=order.id,
                    icon="check",
                )
            )
        return saved


class MarkMessagesReadUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, reader_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            messages = [
                m.model_copy(update={"is_read": True}) if m.recipient_id == reader_id and not m.is_read else m
                for m in order.messages
            ]
            if messages == order.messages:
                return order
            saved = await uow.orders.save(
                order.model_copy(update={"messages": messages}), expected_status=order.status
            )
            await uow.commit()
            return saved
