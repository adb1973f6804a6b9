import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    DATABASE_URL_RAW: str = os.getenv("DATABASE_URL", "")

    # Kafka
    KAFKA_BOOTSTRAP_SERVERS: str = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "")
    NOTIFICATIONS_TOPIC: str = os.getenv("NOTIFICATIONS_TOPIC", "pronto-notifications")

    # Симуляция
    PREPARATION_SECONDS_PER_MINUTE: float = float(os.getenv("PREPARATION_SECONDS_PER_MINUTE", "60"))
    LOCATION_TICK_SECONDS: float = float(os.getenv("LOCATION_TICK_SECONDS", "2.0"))
    LOCATION_STEP_FRACTION: float = float(os.getenv("LOCATION_STEP_FRACTION", "0.05"))
    STORE_LATENCY_MIN_MS: int = int(os.getenv("STORE_LATENCY_MIN_MS", "0"))
    STORE_LATENCY_MAX_MS: int = int(os.getenv("STORE_LATENCY_MAX_MS", "0"))

    # Карта (Zócalo, CDMX)
    DEFAULT_CENTER_LAT: float = float(os.getenv("DEFAULT_CENTER_LAT", "19.4326"))
    DEFAULT_CENTER_LNG: float = float(os.getenv("DEFAULT_CENTER_LNG", "-99.1332"))
    DEFAULT_ZOOM: int = int(os.getenv("DEFAULT_ZOOM", "13"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Неизвестная настройка: {key}")
            setattr(self, key, value)

    @property
    def DATABASE_URL(self) -> str:
        """Асинхронный URL для приложения"""
        return self.DATABASE_URL_RAW.replace("postgres://", "postgresql+asyncpg://", 1)

    @property
    def use_database(self) -> bool:
        return bool(self.DATABASE_URL_RAW)


settings = Settings()
