"""Симуляция движения курьеров.

Вместо настоящей GPS-телеметрии позиция курьера каждые tick_seconds
сдвигается к адресу доставки. Координаты нужны только для карты и в заказ
не записываются.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from pronto.domain.geo import MapView, compute_bounds, step_towards
from pronto.domain.models import Location, Order, OrderStatus
from pronto.domain.exceptions import OrderNotFoundError, PreconditionFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingView:
    order_id: str
    status: OrderStatus
    client: Optional[Location]
    business: Optional[Location]
    delivery: Optional[Location]
    view: MapView


class LocationTracker:
    def __init__(
        self,
        unit_of_work,
        default_center: Location,
        default_zoom: int = 13,
        step_fraction: float = 0.05,
        tick_seconds: float = 2.0,
    ):
        self._uow = unit_of_work
        self._default_center = default_center
        self._default_zoom = default_zoom
        self._step_fraction = step_fraction
        self._tick_seconds = tick_seconds
        # order_id -> текущая позиция курьера
        self._positions: Dict[str, Location] = {}

    def position(self, order_id: str) -> Optional[Location]:
        return self._positions.get(order_id)

    async def tick(self) -> int:
        """Один шаг симуляции. Возвращает количество сдвинутых курьеров."""
        async with self._uow() as uow:
            orders = await uow.orders.list(status=OrderStatus.ON_THE_WAY)

        active = {order.id: order for order in orders if order.delivery_person}
        for order_id in list(self._positions):
            if order_id not in active:
                del self._positions[order_id]

        for order_id, order in active.items():
            current = self._positions.get(order_id, order.delivery_person.location)
            self._positions[order_id] = step_towards(current, order.delivery_location, self._step_fraction)
        return len(active)

    async def run(self) -> None:
        logger.info("Location tracker запущен")
        while True:
            try:
                moved = await self.tick()
                if moved:
                    logger.debug(f"Сдвинуто курьеров: {moved}")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Ошибка в location tracker: {e}", exc_info=True)
            await asyncio.sleep(self._tick_seconds)

    async def snapshot(self, order_id: str) -> TrackingView:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
        if not order:
            raise OrderNotFoundError(f"Заказ {order_id} не найден")
        if not order.is_trackable():
            raise PreconditionFailedError(f"Заказ {order_id} в статусе {order.status.value} не отслеживается")
        return self.view_for(order)

    def view_for(self, order: Order) -> TrackingView:
        business = order.business.location if order.business else None
        delivery = None
        if order.status == OrderStatus.ON_THE_WAY and order.delivery_person:
            delivery = self._positions.get(order.id, order.delivery_person.location)

        return TrackingView(
            order_id=order.id,
            status=order.status,
            client=order.delivery_location,
            business=business,
            delivery=delivery,
            view=compute_bounds(
                order.delivery_location,
                business,
                delivery,
                default_center=self._default_center,
                default_zoom=self._default_zoom,
            ),
        )
