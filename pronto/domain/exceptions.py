class DomainException(Exception):
    pass


class InvalidTransitionError(DomainException):
    def __init__(self, order_id: str, current, target):
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(
            f"Недопустимый переход заказа {order_id}: {current.value} -> {target.value}"
        )


class PreconditionFailedError(DomainException):
    pass


class NoDeliveryPersonAssignedError(PreconditionFailedError):
    pass


class NotFoundError(DomainException):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class DuplicateEmailError(DomainException):
    pass


class AuthFailureError(DomainException):
    pass


class ConcurrentUpdateError(DomainException):
    def __init__(self, order_id: str, expected, actual):
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Заказ {order_id} уже изменен: ожидался статус {expected.value}, текущий {actual.value}"
        )
