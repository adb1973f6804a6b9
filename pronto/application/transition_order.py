import logging
from typing import Optional
from pydantic import BaseModel

from pronto.domain.models import DeliveryPerson, Order, OrderStatus, UserRole
from pronto.domain.exceptions import (
    ConcurrentUpdateError,
    OrderNotFoundError,
    PreconditionFailedError,
    UserNotFoundError,
)
from pronto.domain.state_machine import (
    PREPARING_STATUSES,
    TransitionMetadata,
    TransitionResult,
    transition,
)
from pronto.application.interfaces import NotificationPublisher, TaskScheduler


logger = logging.getLogger(__name__)


class TransitionOrderDTO(BaseModel):
    order_id: str
    status: OrderStatus
    preparation_time_minutes: Optional[int] = None
    delivery_person: Optional[DeliveryPerson] = None
    actor_name: str = ""
    expected_status: Optional[OrderStatus] = None


class TransitionOrderUseCase:
    def __init__(
        self,
        unit_of_work,
        publisher: NotificationPublisher,
        scheduler: TaskScheduler,
        seconds_per_minute: float = 60,
    ):
        self._uow = unit_of_work
        self._publisher = publisher
        self._scheduler = scheduler
        self._seconds_per_minute = seconds_per_minute

    async def __call__(self, dto: TransitionOrderDTO) -> Order:
        logger.info(f"Переход заказа {dto.order_id} -> {dto.status.value} ({dto.actor_name or 'system'})")
        metadata = TransitionMetadata(
            preparation_time_minutes=dto.preparation_time_minutes,
            delivery_person=dto.delivery_person,
        )
        result = await self._apply(dto.order_id, dto.status, metadata, dto.actor_name, dto.expected_status)
        self._reschedule(result)
        return result.order

    async def _apply(
        self,
        order_id: str,
        target: OrderStatus,
        metadata: Optional[TransitionMetadata],
        actor_name: str,
        expected_status: Optional[OrderStatus] = None,
    ) -> TransitionResult:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            if expected_status is not None and order.status != expected_status:
                raise ConcurrentUpdateError(order_id, expected_status, order.status)

            result = transition(order, target, metadata, actor_name)
            if target == OrderStatus.ON_THE_WAY:
                result.order.delivery_person = await self._bind_delivery_person(uow, result.order)
            saved = await uow.orders.save(result.order, expected_status=result.previous_status)
            await uow.commit()

        # Уведомления только после успешной записи
        result.order = saved
        for notification in result.notifications:
            notification.order = saved
        self._publisher.publish_all(result.notifications)
        for notification in result.notifications:
            logger.info(
                f"Отправлено уведомление '{notification.title}' ({notification.role.value}) для {order_id}"
            )
        logger.info(f"Заказ {order_id}: {result.previous_status.value} -> {saved.status.value}")
        return result

    async def _bind_delivery_person(self, uow, order: Order) -> DeliveryPerson:
        """Курьер должен быть активным пользователем DELIVERY без другой доставки в пути"""
        person = order.delivery_person
        user = await uow.users.get_by_id(person.id)
        if not user:
            raise UserNotFoundError(f"Пользователь {person.id} не найден")
        if user.role != UserRole.DELIVERY or not user.is_active:
            raise PreconditionFailedError(f"Пользователь {person.id} не является активным курьером")

        active = await uow.orders.list(delivery_person_id=person.id, status=OrderStatus.ON_THE_WAY)
        if active:
            raise PreconditionFailedError(
                f"Курьер {person.id} уже везет заказ {active[0].id}"
            )
        return person.model_copy(update={"current_deliveries": 1})

    def _reschedule(self, result: TransitionResult) -> None:
        order = result.order
        if order.status == OrderStatus.ACCEPTED:
            self._schedule_ready(order)
        elif order.status == OrderStatus.IN_PREPARATION:
            # Отсчет идет с момента принятия заказа
            if not self._scheduler.is_scheduled(order.id):
                self._schedule_ready(order)
        elif result.previous_status in PREPARING_STATUSES:
            if self._scheduler.cancel(order.id):
                logger.info(f"Автоготовность заказа {order.id} отменена ({order.status.value})")

    def _schedule_ready(self, order: Order) -> None:
        delay = order.preparation_time * self._seconds_per_minute
        order_id = order.id
        self._scheduler.schedule(order_id, delay, lambda: self.auto_ready_for_pickup(order_id))

    async def auto_ready_for_pickup(self, order_id: str) -> Optional[Order]:
        """Отложенный переход в READY_FOR_PICKUP.

        Статус перепроверяется: если заказ уже ушел из ACCEPTED/IN_PREPARATION,
        вызов ничего не делает.
        """
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)

        if not order:
            logger.warning(f"Автоготовность: заказ {order_id} не найден")
            return None
        if order.status not in PREPARING_STATUSES:
            logger.warning(f"Автоготовность: заказ {order_id} уже в статусе {order.status.value}, пропуск")
            return None

        actor_name = order.business.name if order.business else ""
        try:
            if order.status == OrderStatus.ACCEPTED:
                await self._apply(
                    order_id,
                    OrderStatus.IN_PREPARATION,
                    TransitionMetadata(preparation_time_minutes=order.preparation_time),
                    actor_name,
                    expected_status=OrderStatus.ACCEPTED,
                )
            result = await self._apply(
                order_id,
                OrderStatus.READY_FOR_PICKUP,
                None,
                actor_name,
                expected_status=OrderStatus.IN_PREPARATION,
            )
        except ConcurrentUpdateError as e:
            logger.warning(f"Автоготовность: {e}, пропуск")
            return None

        return result.order
