import logging
from typing import List

from storefront.domain.models import User
from storefront.domain.exceptions import UserNotFoundError, UserNotDeletableError

logger = logging.getLogger(__name__)


class ListUsersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> List[User]:
        async with self._uow() as uow:
            return await uow.users.list_all()


class ToggleUserActiveUseCase:
    """Deactivated users fail authentication until switched back on"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> bool:
        async with self._uow() as uow:
            is_active = await uow.users.toggle_active(user_id)
            if is_active is None:
                raise UserNotFoundError(user_id)
            await uow.commit()

        logger.info(f"User {user_id} is now {'active' if is_active else 'deactivated'}")
        return is_active


class DeleteUserUseCase:
    """Removes a deactivated customer together with their cart.

    Admins are never deleted. Customers with placed orders are kept so the
    order ledger and revenue stay intact.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> None:
        async with self._uow() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise UserNotFoundError(user_id)
            if user.is_admin:
                raise UserNotDeletableError(user_id, "admin users cannot be deleted")
            if not user.can_be_deleted():
                raise UserNotDeletableError(user_id, "deactivate the user before deleting")
            if await uow.orders.count_for_user(user_id):
                raise UserNotDeletableError(user_id, "the user has placed orders")

            await uow.users.delete(user_id)
            await uow.commit()

        logger.info(f"User {user_id} deleted")
