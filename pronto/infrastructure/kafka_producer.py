import asyncio
import json
import logging
from typing import Callable, Optional, Set

from aiokafka import AIOKafkaProducer

from pronto.domain.models import Notification

logger = logging.getLogger(__name__)


class KafkaNotificationRelay:
    """Подписчик шины, пересылающий уведомления в Kafka"""

    def __init__(self, bootstrap_servers: str, topic: str, producer: Optional[AIOKafkaProducer] = None):
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._producer = producer
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._in_flight: Set[asyncio.Task] = set()

    async def start(self, bus) -> None:
        if not self._producer:
            self._producer = AIOKafkaProducer(
                bootstrap_servers=self._bootstrap_servers
            )
        await self._producer.start()
        self._unsubscribe = bus.subscribe(self.handle)
        logger.info("Kafka relay started")

    async def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka relay stopped")

    def handle(self, notification: Notification) -> None:
        # Шина вызывает обработчики синхронно, отправка уходит в отдельную задачу
        task = asyncio.get_running_loop().create_task(self.send(notification))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def send(self, notification: Notification) -> bool:
        if not self._producer:
            logger.error("Kafka producer not started")
            return False

        try:
            key = (notification.order_id or notification.id).encode()
            await self._producer.send_and_wait(
                topic=self._topic,
                key=key,
                value=json.dumps(notification.to_wire()).encode()
            )
            logger.info(f"Published {notification.event.value} for order {notification.order_id}")
            return True

        except Exception as e:
            logger.error(f"Failed to publish {notification.event.value}: {e}")
            return False
