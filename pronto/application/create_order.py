import logging
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from pronto.domain.models import (
    BusinessSnapshot,
    CartItem,
    Location,
    Notification,
    NotificationEvent,
    NotificationType,
    Order,
    OrderStatus,
    UserRole,
)
from pronto.domain.exceptions import PreconditionFailedError
from pronto.application.interfaces import NotificationPublisher


logger = logging.getLogger(__name__)


class CreateOrderDTO(BaseModel):
    client_id: str
    business: BusinessSnapshot
    items: List[CartItem] = Field(min_length=1)
    delivery_address: str
    delivery_location: Location
    special_notes: Optional[str] = None
    # Сумма, которую показал клиент; только сверяется
    total_price: Optional[float] = None


class CreateOrderUseCase:
    def __init__(self, unit_of_work, publisher: NotificationPublisher):
        self._uow = unit_of_work
        self._publisher = publisher

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        logger.info(f"Создание заказа для клиента {order_data.client_id}, бизнес {order_data.business.id}")

        foreign = [item.product.id for item in order_data.items if item.product.business_id != order_data.business.id]
        if foreign:
            raise PreconditionFailedError(f"Товары {foreign} не принадлежат бизнесу {order_data.business.id}")

        now = datetime.now(timezone.utc)
        order = Order(
            id=str(uuid.uuid4()),
            client_id=order_data.client_id,
            business_id=order_data.business.id,
            business=order_data.business,
            items=order_data.items,
            total_price=0,
            status=OrderStatus.PENDING,
            delivery_address=order_data.delivery_address,
            delivery_location=order_data.delivery_location,
            special_notes=order_data.special_notes,
            created_at=now,
            updated_at=now,
        )
        # Сумма всегда считается на сервере
        order.total_price = order.calculate_total()
        if order_data.total_price is not None and abs(order_data.total_price - order.total_price) > 0.01:
            raise PreconditionFailedError(
                f"Сумма заказа {order_data.total_price} не совпадает с расчетной {order.total_price}"
            )

        async with self._uow() as uow:
            await uow.orders.create(order)
            await uow.commit()
        logger.info(f"Заказ создан: {order.id}, сумма {order.total_price}")

        self._publisher.publish(
            Notification(
                role=UserRole.BUSINESS,
                title="¡Nuevo Pedido!",
                message=f"Nuevo pedido #{order.short_id} por ${order.total_price:.2f}.",
                event=NotificationEvent.ORDER_CREATED,
                type=NotificationType.NEW_ORDER,
                order_id=order.id,
                order=order,
            )
        )
        return order
