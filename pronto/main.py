import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from pronto.config import Settings, settings as default_settings
from pronto.container import Container
from pronto.presentation.api import router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения"""
        app.state.container = container or Container(settings)
        await app.state.container.start()
        logger.info("Pronto запущен")

        yield

        logger.info("Приложение останавливается...")
        await app.state.container.stop()

    app = FastAPI(
        title="Pronto Orders",
        description="Жизненный цикл заказов, уведомления по ролям и трекинг доставки",
        version="1.0.0",
        lifespan=lifespan
    )
    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        return {"message": "Pronto Orders работает"}

    @app.get("/health")
    async def health():
        state = app.state.container
        return {
            "status": "healthy",
            "storage": "database" if state.engine is not None else "memory",
            "kafka": "running" if state.kafka_relay else "disabled",
            "subscribers": state.bus.subscriber_count,
        }

    return app


logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = create_app()
