from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterable, Optional, List

from pronto.domain.models import Notification, Order, OrderStatus, UserRecord


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list(
        self,
        client_id: Optional[str] = None,
        business_id: Optional[str] = None,
        delivery_person_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def save(self, order: Order, expected_status: OrderStatus) -> Order:
        """Записать заказ, если его статус в хранилище равен expected_status"""
        pass


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def list(self) -> List[UserRecord]:
        pass

    @abstractmethod
    async def create(self, user: UserRecord) -> None:
        pass

    @abstractmethod
    async def save(self, user: UserRecord) -> None:
        pass


class NotificationPublisher(ABC):
    @abstractmethod
    def publish(self, notification: Notification) -> None:
        pass

    def publish_all(self, notifications: Iterable[Notification]) -> None:
        for notification in notifications:
            self.publish(notification)


class TaskScheduler(ABC):
    @abstractmethod
    def schedule(self, key: str, delay: float, action: Callable[[], Awaitable[object]]) -> None:
        pass

    @abstractmethod
    def cancel(self, key: str) -> bool:
        pass

    @abstractmethod
    def is_scheduled(self, key: str) -> bool:
        pass
