import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

from pronto.application.interfaces import TaskScheduler

logger = logging.getLogger(__name__)


class AsyncioTaskScheduler(TaskScheduler):
    """Отложенные задачи по ключу (id заказа), которые можно отменить"""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, key: str, delay: float, action: Callable[[], Awaitable[object]]) -> None:
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._run(key, delay, action))
        self._tasks[key] = task
        logger.info(f"Задача {key} запланирована через {delay} с")

    async def _run(self, key: str, delay: float, action: Callable[[], Awaitable[object]]) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.info(f"Задача {key} отменена")
            raise
        # Задача уже выполняется: больше ее не отменяем
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        try:
            await action()
        except Exception:
            logger.error(f"Ошибка в отложенной задаче {key}", exc_info=True)

    def cancel(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def is_scheduled(self, key: str) -> bool:
        return key in self._tasks

    def pending(self) -> List[asyncio.Task]:
        return list(self._tasks.values())

    async def join(self) -> None:
        """Дождаться всех запланированных задач, включая поставленные по ходу"""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
