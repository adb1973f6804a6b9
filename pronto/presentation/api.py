import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status

from pronto.container import Container
from pronto.presentation.schemas import (
    CreateOrderRequest,
    ErrorResponse,
    LoginRequest,
    MarkReadRequest,
    OrderResponse,
    ProfileResponse,
    QuickMessagesResponse,
    RatingRequest,
    RegisterRequest,
    SendMessageRequest,
    TrackingResponse,
    TransitionRequest,
    UpdateUserRequest,
)
from pronto.application.create_order import CreateOrderDTO
from pronto.application.rate_order import RateOrderDTO
from pronto.application.send_message import (
    QUICK_MESSAGES_CLIENT,
    QUICK_MESSAGES_DELIVERY,
    SendMessageDTO,
)
from pronto.application.transition_order import TransitionOrderDTO
from pronto.application.users import RegisterUserDTO, UpdateUserDTO
from pronto.domain.exceptions import (
    AuthFailureError,
    ConcurrentUpdateError,
    DomainException,
    DuplicateEmailError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
)
from pronto.domain.models import OrderStatus, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


def get_container(request: Request) -> Container:
    return request.app.state.container


def _to_http(e: DomainException) -> HTTPException:
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (InvalidTransitionError, ConcurrentUpdateError, DuplicateEmailError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, PreconditionFailedError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(e, AuthFailureError):
        code = status.HTTP_401_UNAUTHORIZED
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(e))


@router.post(
    "/orders",
    response_model=OrderResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_order(request: CreateOrderRequest, container: Container = Depends(get_container)):
    """Оформить заказ (checkout клиента)"""
    try:
        order = await container.create_order(CreateOrderDTO(**request.model_dump()))
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise _to_http(e)


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    client_id: Optional[str] = None,
    business_id: Optional[str] = None,
    delivery_person_id: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    container: Container = Depends(get_container),
):
    orders = await container.list_orders(
        client_id=client_id,
        business_id=business_id,
        delivery_person_id=delivery_person_id,
        status=status,
    )
    return [OrderResponse.from_domain(order) for order in orders]


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_order(order_id: str, container: Container = Depends(get_container)):
    try:
        order = await container.get_order(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise _to_http(e)


@router.post(
    "/orders/{order_id}/transition",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}
)
async def transition_order(
    order_id: str,
    request: TransitionRequest,
    container: Container = Depends(get_container),
):
    """Сменить статус заказа"""
    try:
        dto = TransitionOrderDTO(order_id=order_id, **request.model_dump())
        order = await container.transition_order(dto)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        logger.warning(f"Переход заказа {order_id} отклонен: {e}")
        raise _to_http(e)


@router.post(
    "/orders/{order_id}/messages",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}
)
async def send_message(
    order_id: str,
    request: SendMessageRequest,
    container: Container = Depends(get_container),
):
    try:
        order = await container.send_message(SendMessageDTO(order_id=order_id, **request.model_dump()))
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise _to_http(e)


@router.post("/orders/{order_id}/messages/read", response_model=OrderResponse)
async def mark_messages_read(
    order_id: str,
    request: MarkReadRequest,
    container: Container = Depends(get_container),
):
    try:
        order = await container.mark_messages_read(order_id, request.reader_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise _to_http(e)


@router.post("/orders/{order_id}/rating", response_model=OrderResponse)
async def rate_order(
    order_id: str,
    request: RatingRequest,
    container: Container = Depends(get_container),
):
    try:
        order = await container.rate_order(RateOrderDTO(order_id=order_id, **request.model_dump()))
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise _to_http(e)


@router.get("/orders/{order_id}/tracking", response_model=TrackingResponse)
async def order_tracking(order_id: str, container: Container = Depends(get_container)):
    """Позиции клиента, бизнеса и курьера плюс рамка для карты"""
    try:
        tracking = await container.tracker.snapshot(order_id)
        return TrackingResponse.from_view(tracking)
    except DomainException as e:
        raise _to_http(e)


@router.get("/quick-messages/{role}", response_model=QuickMessagesResponse)
async def quick_messages(role: UserRole):
    if role == UserRole.DELIVERY:
        return QuickMessagesResponse(role=role, messages=QUICK_MESSAGES_DELIVERY)
    if role == UserRole.CLIENT:
        return QuickMessagesResponse(role=role, messages=QUICK_MESSAGES_CLIENT)
    return QuickMessagesResponse(role=role, messages=[])


@router.post(
    "/auth/register",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}}
)
async def register(request: RegisterRequest, container: Container = Depends(get_container)):
    try:
        profile = await container.register_user(RegisterUserDTO(**request.model_dump()))
        return ProfileResponse(**profile.model_dump())
    except DomainException as e:
        raise _to_http(e)


@router.post("/auth/login", response_model=ProfileResponse, responses={401: {"model": ErrorResponse}})
async def login(request: LoginRequest, container: Container = Depends(get_container)):
    try:
        profile = await container.login(request.email, request.password)
        return ProfileResponse(**profile.model_dump())
    except DomainException as e:
        logger.info(f"Неудачный вход для {request.email}: {e}")
        raise _to_http(e)


@router.get("/users", response_model=List[ProfileResponse])
async def list_users(role: Optional[UserRole] = None, container: Container = Depends(get_container)):
    profiles = await container.list_users(role)
    return [ProfileResponse(**profile.model_dump()) for profile in profiles]


@router.patch("/users/{user_id}", response_model=ProfileResponse, responses={404: {"model": ErrorResponse}})
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    container: Container = Depends(get_container),
):
    try:
        dto = UpdateUserDTO(**request.model_dump(exclude_unset=True))
        profile = await container.update_user(user_id, dto)
        return ProfileResponse(**profile.model_dump())
    except DomainException as e:
        raise _to_http(e)


@router.websocket("/ws/notifications")
async def notifications_ws(websocket: WebSocket, role: Optional[UserRole] = None):
    """Push уведомлений для дашборда; без role все роли (админ)"""
    container: Container = websocket.app.state.container
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = container.bus.subscribe(queue.put_nowait, roles=[role] if role else None)
    await websocket.accept()
    label = role.value if role else "ALL"
    logger.info(f"WebSocket подключен ({label})")

    async def push():
        while True:
            notification = await queue.get()
            await websocket.send_json(notification.to_wire())

    sender = asyncio.create_task(push())
    try:
        # Входящие сообщения не нужны, чтение только ловит закрытие соединения
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"WebSocket отключен ({label})")
    finally:
        unsubscribe()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
