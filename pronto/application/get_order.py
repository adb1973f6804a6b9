from typing import List, Optional

from pronto.domain.models import Order, OrderStatus
from pronto.domain.exceptions import OrderNotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            return order


class ListOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self,
        client_id: Optional[str] = None,
        business_id: Optional[str] = None,
        delivery_person_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        """Заказы по фильтрам, новые первыми"""
        async with self._uow() as uow:
            return await uow.orders.list(
                client_id=client_id,
                business_id=business_id,
                delivery_person_id=delivery_person_id,
                status=status,
            )
