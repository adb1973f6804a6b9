"""Шина уведомлений в памяти процесса.

Обработчик без ролей получает все уведомления и фильтрует сам (например,
дашборд администратора). Обработчик с набором ролей попадает в индекс по
ролям. Доставка синхронная, в порядке регистрации, без очереди: если
подписчиков нет, уведомление теряется.
"""
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from pronto.application.interfaces import NotificationPublisher
from pronto.domain.models import Notification, UserRole

logger = logging.getLogger(__name__)

Handler = Callable[[Notification], None]


@dataclass(eq=False)
class _Subscription:
    seq: int
    handler: Handler
    roles: Optional[FrozenSet[UserRole]]
    active: bool = True


class NotificationBus(NotificationPublisher):
    def __init__(self):
        self._seq = itertools.count()
        self._broadcast: List[_Subscription] = []
        self._by_role: Dict[UserRole, List[_Subscription]] = {role: [] for role in UserRole}

    @property
    def subscriber_count(self) -> int:
        subs = set(self._broadcast)
        for role_subs in self._by_role.values():
            subs.update(role_subs)
        return len(subs)

    def subscribe(self, handler: Handler, roles: Optional[Iterable[UserRole]] = None) -> Callable[[], None]:
        sub = _Subscription(
            seq=next(self._seq),
            handler=handler,
            roles=frozenset(roles) if roles is not None else None,
        )
        if sub.roles is None:
            self._broadcast.append(sub)
        else:
            for role in sub.roles:
                self._by_role[role].append(sub)

        def unsubscribe() -> None:
            if not sub.active:
                return
            sub.active = False
            # Новые списки, чтобы не трогать снимок текущей рассылки
            if sub.roles is None:
                self._broadcast = [s for s in self._broadcast if s is not sub]
            else:
                for role in sub.roles:
                    self._by_role[role] = [s for s in self._by_role[role] if s is not sub]

        return unsubscribe

    def publish(self, notification: Notification) -> None:
        targets = sorted(
            self._broadcast + self._by_role[notification.role],
            key=lambda s: s.seq,
        )
        if not targets:
            logger.debug(f"Нет подписчиков для уведомления '{notification.title}' ({notification.role.value})")
            return

        for sub in targets:
            try:
                sub.handler(notification)
            except Exception:
                logger.error(
                    f"Ошибка обработчика уведомления '{notification.title}' для {notification.order_id}",
                    exc_info=True,
                )
