"""Сборка зависимостей приложения.

Хранилище, шина и планировщик создаются один раз при старте и передаются
в use cases.
"""
import asyncio
import logging
from typing import Optional

from pronto.config import Settings
from pronto.domain.models import Location
from pronto.application.create_order import CreateOrderUseCase
from pronto.application.get_order import GetOrderUseCase, ListOrdersUseCase
from pronto.application.rate_order import RateOrderUseCase
from pronto.application.send_message import MarkMessagesReadUseCase, SendQuickMessageUseCase
from pronto.application.track_location import LocationTracker
from pronto.application.transition_order import TransitionOrderUseCase
from pronto.application.users import (
    ListUsersUseCase,
    LoginUseCase,
    RegisterUserUseCase,
    UpdateUserUseCase,
)
from pronto.infrastructure.kafka_producer import KafkaNotificationRelay
from pronto.infrastructure.memory import InMemoryStore, InMemoryUnitOfWork
from pronto.infrastructure.notification_bus import NotificationBus
from pronto.infrastructure.scheduler import AsyncioTaskScheduler

logger = logging.getLogger(__name__)


class Container:
    def __init__(self, settings: Settings, store: Optional[InMemoryStore] = None):
        self.settings = settings
        self.bus = NotificationBus()
        self.scheduler = AsyncioTaskScheduler()
        self.engine = None
        self.store = None

        if settings.use_database:
            from pronto.infrastructure.database import SQLAlchemyUnitOfWork, build_engine

            self.engine = build_engine(settings.DATABASE_URL)
            self.uow = SQLAlchemyUnitOfWork.from_engine(self.engine)
        else:
            self.store = store or InMemoryStore(
                latency_min_ms=settings.STORE_LATENCY_MIN_MS,
                latency_max_ms=settings.STORE_LATENCY_MAX_MS,
            )
            self.uow = InMemoryUnitOfWork(self.store)

        self.kafka_relay = None
        if settings.KAFKA_BOOTSTRAP_SERVERS:
            self.kafka_relay = KafkaNotificationRelay(
                settings.KAFKA_BOOTSTRAP_SERVERS, settings.NOTIFICATIONS_TOPIC
            )

        self.tracker = LocationTracker(
            self.uow,
            default_center=Location(lat=settings.DEFAULT_CENTER_LAT, lng=settings.DEFAULT_CENTER_LNG),
            default_zoom=settings.DEFAULT_ZOOM,
            step_fraction=settings.LOCATION_STEP_FRACTION,
            tick_seconds=settings.LOCATION_TICK_SECONDS,
        )
        self._tracker_task: Optional[asyncio.Task] = None

        # Use cases
        self.create_order = CreateOrderUseCase(self.uow, self.bus)
        self.get_order = GetOrderUseCase(self.uow)
        self.list_orders = ListOrdersUseCase(self.uow)
        self.transition_order = TransitionOrderUseCase(
            self.uow, self.bus, self.scheduler, settings.PREPARATION_SECONDS_PER_MINUTE
        )
        self.send_message = SendQuickMessageUseCase(self.uow, self.bus)
        self.mark_messages_read = MarkMessagesReadUseCase(self.uow)
        self.rate_order = RateOrderUseCase(self.uow, self.bus)
        self.register_user = RegisterUserUseCase(self.uow)
        self.login = LoginUseCase(self.uow)
        self.list_users = ListUsersUseCase(self.uow)
        self.update_user = UpdateUserUseCase(self.uow)

    async def start(self) -> None:
        if self.engine is not None:
            from pronto.infrastructure.database import create_schema

            await create_schema(self.engine)
        if self.kafka_relay:
            await self.kafka_relay.start(self.bus)
        self._tracker_task = asyncio.create_task(self.tracker.run())
        logger.info("Контейнер запущен")

    async def stop(self) -> None:
        if self._tracker_task:
            self._tracker_task.cancel()
            await asyncio.gather(self._tracker_task, return_exceptions=True)
            self._tracker_task = None
        await self.scheduler.shutdown()
        if self.kafka_relay:
            await self.kafka_relay.stop()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Контейнер остановлен")
