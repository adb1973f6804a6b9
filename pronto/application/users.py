import logging
from typing import List, Optional
import uuid
from pydantic import BaseModel

from pronto.domain.models import Location, Profile, UserRecord, UserRole
from pronto.domain.exceptions import AuthFailureError, DuplicateEmailError, UserNotFoundError
from pronto.infrastructure.security import hash_password, verify_password

logger = logging.getLogger(__name__)

# Zócalo, CDMX
DEFAULT_USER_LOCATION = Location(lat=19.4326, lng=-99.1332)

LOGIN_FAILED = "Неверный email или пароль"


class RegisterUserDTO(BaseModel):
    name: str
    email: str
    password: str
    role: UserRole
    phone: Optional[str] = None
    location: Optional[Location] = None


class UpdateUserDTO(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    location: Optional[Location] = None
    is_active: Optional[bool] = None


class RegisterUserUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: RegisterUserDTO) -> Profile:
        async with self._uow() as uow:
            if await uow.users.get_by_email(dto.email):
                raise DuplicateEmailError(f"Email {dto.email} уже зарегистрирован")

            user = UserRecord(
                id=f"user-{uuid.uuid4()}",
                name=dto.name,
                email=dto.email,
                role=dto.role,
                phone=dto.phone,
                location=dto.location or DEFAULT_USER_LOCATION,
                is_active=True,
                password_hash=hash_password(dto.password),
            )
            await uow.users.create(user)
            await uow.commit()

        logger.info(f"Зарегистрирован пользователь {user.id} ({user.role.value})")
        return user.to_profile()


class LoginUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, email: str, password: str) -> Profile:
        async with self._uow() as uow:
            user = await uow.users.get_by_email(email)

        # Любой отказ дает одну и ту же ошибку
        if not user or not verify_password(password, user.password_hash) or not user.is_active:
            raise AuthFailureError(LOGIN_FAILED)

        logger.info(f"Вход пользователя {user.id}")
        return user.to_profile()


class ListUsersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, role: Optional[UserRole] = None) -> List[Profile]:
        async with self._uow() as uow:
            users = await uow.users.list()
        return [user.to_profile() for user in users if role is None or user.role == role]


class UpdateUserUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, dto: UpdateUserDTO) -> Profile:
        async with self._uow() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise UserNotFoundError(f"Пользователь {user_id} не найден")

            changes = dto.model_dump(exclude_unset=True)
            updated = UserRecord.model_validate({**user.model_dump(), **changes})
            await uow.users.save(updated)
            await uow.commit()

        logger.info(f"Пользователь {user_id} обновлен: {sorted(changes)}")
        return updated.to_profile()
