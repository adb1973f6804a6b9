import logging
from typing import Optional
from pydantic import BaseModel, Field

from pronto.domain.models import Notification, NotificationEvent, NotificationType, Order, Rating, UserRole
from pronto.domain.exceptions import OrderNotFoundError, PreconditionFailedError
from pronto.application.interfaces import NotificationPublisher

logger = logging.getLogger(__name__)


class RateOrderDTO(BaseModel):
    order_id: str
    business_rating: int = Field(ge=1, le=5)
    delivery_rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None


class RateOrderUseCase:
    def __init__(self, unit_of_work, publisher: NotificationPublisher):
        self._uow = unit_of_work
        self._publisher = publisher

    async def __call__(self, dto: RateOrderDTO) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(dto.order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {dto.order_id} не найден")
            if not order.can_be_rated():
                raise PreconditionFailedError(
                    f"Заказ {order.id} нельзя оценить (статус {order.status.value}, оценен: {order.is_rated})"
                )
            if order.delivery_person_id and dto.delivery_rating is None:
                raise PreconditionFailedError("Нужно оценить и бизнес, и курьера")

            rating = Rating(
                business_rating=dto.business_rating,
                delivery_rating=dto.delivery_rating,
                comment=dto.comment,
            )

            saved = await uow.orders.save(
                order.model_copy(update={"is_rated": True, "rating": rating}), expected_status=order.status
            )
            await uow.commit()

        logger.info(
            f"Заказ {order.id} оценен: бизнес {dto.business_rating}, курьер {dto.delivery_rating}"
        )
        self._publisher.publish(
            Notification(
                role=UserRole.CLIENT,
                title="¡Gracias por tu opinión!",
                message="Tu calificación ha sido registrada.",
                event=NotificationEvent.ORDER_RATED,
                type=NotificationType.SUCCESS,
                order_id=order.id,
                icon="thumbs-up",
            )
        )
        return saved
